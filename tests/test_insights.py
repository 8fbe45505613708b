"""
Unit tests for SDK layer.

Tests the AI collaborator wrapper and its graceful degradation.
"""

from unittest.mock import Mock, patch

import pytest

from sales_tracker.sdk.insights import (
    INSIGHT_ERROR,
    INSIGHT_UNAVAILABLE,
    SENTIMENT_ERROR,
    SENTIMENT_UNAVAILABLE,
    SalesInsightClient,
)
from sales_tracker.storage.models import CustomerType, Inquiry


def _completion(text):
    response = Mock()
    response.choices = [Mock()]
    response.choices[0].message.content = text
    return response


def _inquiry(n):
    return Inquiry(
        id=f"i{n}",
        user_id="u1",
        date="2024-01-01",
        customer_type=CustomerType.HOT,
        customer_name=f"Customer {n}",
        contact_person="",
        mobile1="9000000000",
        feedback=f"feedback {n}",
    )


class TestSalesInsightClient:
    """Test SalesInsightClient wrapper."""

    @pytest.fixture(autouse=True)
    def _no_env_key(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)

    @patch('sales_tracker.sdk.insights.OpenAI')
    def test_init_with_key(self, mock_openai_class):
        client = SalesInsightClient(model="gpt-4o-mini", api_key="sk-test")

        assert client.configured
        mock_openai_class.assert_called_once_with(api_key="sk-test")

    @patch('sales_tracker.sdk.insights.OpenAI')
    def test_init_reads_env_key(self, mock_openai_class, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")

        client = SalesInsightClient()

        assert client.configured
        assert client.api_key == "sk-env"

    @patch('sales_tracker.sdk.insights.OpenAI')
    def test_init_without_key_is_unconfigured(self, mock_openai_class):
        client = SalesInsightClient()

        assert not client.configured
        mock_openai_class.assert_not_called()

    def test_init_missing_model(self):
        with pytest.raises(ValueError, match="model is required"):
            SalesInsightClient(model="")

    def test_unconfigured_sentinels(self):
        client = SalesInsightClient()

        assert client.summarize_sentiment("great call") == SENTIMENT_UNAVAILABLE
        assert client.generate_insight([_inquiry(1)]) == INSIGHT_UNAVAILABLE

    @patch('sales_tracker.sdk.insights.OpenAI')
    def test_sentiment_label(self, mock_openai_class):
        mock_client = Mock()
        mock_client.chat.completions.create.return_value = _completion(" Positive\n")
        mock_openai_class.return_value = mock_client

        client = SalesInsightClient(model="gpt-4o-mini", api_key="sk-test")

        assert client.summarize_sentiment("Loved the demo") == "Positive"
        kwargs = mock_client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert "Loved the demo" in kwargs["messages"][0]["content"]

    @patch('sales_tracker.sdk.insights.OpenAI')
    def test_sentiment_error_sentinel(self, mock_openai_class):
        mock_client = Mock()
        mock_client.chat.completions.create.side_effect = Exception("API Error")
        mock_openai_class.return_value = mock_client

        client = SalesInsightClient(api_key="sk-test")

        assert client.summarize_sentiment("Loved the demo") == SENTIMENT_ERROR

    @patch('sales_tracker.sdk.insights.OpenAI')
    def test_insight_uses_first_inquiries_up_to_limit(self, mock_openai_class):
        mock_client = Mock()
        mock_client.chat.completions.create.return_value = _completion("Focus on hot leads.")
        mock_openai_class.return_value = mock_client

        client = SalesInsightClient(api_key="sk-test")
        advice = client.generate_insight([_inquiry(n) for n in range(25)], limit=20)

        assert advice == "Focus on hot leads."
        prompt = mock_client.chat.completions.create.call_args.kwargs["messages"][0]["content"]
        assert "feedback 19" in prompt
        assert "feedback 20" not in prompt
        assert prompt.count("- Type: HOT") == 20

    @patch('sales_tracker.sdk.insights.OpenAI')
    def test_insight_error_sentinel(self, mock_openai_class):
        mock_client = Mock()
        mock_client.chat.completions.create.side_effect = Exception("API Error")
        mock_openai_class.return_value = mock_client

        client = SalesInsightClient(api_key="sk-test")

        assert client.generate_insight([_inquiry(1)]) == INSIGHT_ERROR
