"""
AI sales assistant client.

Thin wrapper over OpenAI chat completions for feedback sentiment and
team-level advice. Every failure degrades to a fixed sentinel string;
nothing here ever raises into the caller.
"""

import logging
import os
from typing import List, Optional, Sequence

from openai import OpenAI

from ..storage.models import Inquiry

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_INSIGHT_LIMIT = 20

SENTIMENT_UNAVAILABLE = "AI Unavailable"
SENTIMENT_ERROR = "Error"
INSIGHT_UNAVAILABLE = "AI insights unavailable due to missing API Key."
INSIGHT_ERROR = "Could not generate insights."


class SalesInsightClient:
    """Sentiment labels and sales advice from an OpenAI model.

    The client is considered unconfigured when no API key is given and
    ``OPENAI_API_KEY`` is unset.
    """

    def __init__(self, model: str = DEFAULT_MODEL, api_key: Optional[str] = None):
        """Initialize the client.

        Args:
            model: OpenAI model name (required)
            api_key: API key; falls back to the ``OPENAI_API_KEY`` env var

        Raises:
            ValueError: If model is missing/empty
        """
        if not model or not model.strip():
            raise ValueError("model is required and cannot be empty")

        self.model = model
        self.api_key = api_key or os.environ.get("OPENAI_API_KEY")
        self.client = OpenAI(api_key=self.api_key) if self.api_key else None
        if self.client is None:
            logger.warning("OpenAI API key is missing. AI features will be disabled.")

    @property
    def configured(self) -> bool:
        return self.client is not None

    def _complete(self, prompt: str) -> str:
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
        )
        return response.choices[0].message.content or ""

    def summarize_sentiment(self, text: str) -> str:
        """One-word sentiment label (Positive, Negative or Neutral) for feedback."""
        if not self.configured:
            return SENTIMENT_UNAVAILABLE

        try:
            return self._complete(
                "Analyze the sentiment of this sales feedback in one word "
                f'(Positive, Negative, or Neutral): "{text}"'
            ).strip()
        except Exception as e:
            logger.error("AI sentiment call failed: %s", e)
            return SENTIMENT_ERROR

    def generate_insight(
        self,
        inquiries: Sequence[Inquiry],
        limit: int = DEFAULT_INSIGHT_LIMIT,
    ) -> str:
        """Two-sentence strategic advice from the first ``limit`` inquiries."""
        if not self.configured:
            return INSIGHT_UNAVAILABLE

        lines: List[str] = [
            f"- Type: {i.customer_type.value}, Feedback: {i.feedback}"
            for i in list(inquiries)[:limit]
        ]
        prompt = (
            "You are a sales manager assistant. Here is a list of recent customer inquiries:\n"
            + "\n".join(lines)
            + "\n\nProvide a concise 2-sentence strategic advice for the sales team based on this data."
        )

        try:
            return self._complete(prompt)
        except Exception as e:
            logger.error("AI insight call failed: %s", e)
            return INSIGHT_ERROR
