"""
Unit tests for report queries.
"""

import pytest

from sales_tracker.core.reports import (
    filter_conveyances,
    filter_inquiries,
    inquiries_to_csv,
    pending_conveyances,
    resolve_user_name,
    total_expense,
)
from sales_tracker.storage.models import (
    Conveyance,
    CustomerType,
    Inquiry,
    Role,
    TravelType,
    User,
    UserStatus,
)


def _inquiry(inquiry_id, user_id, date, feedback="ok"):
    return Inquiry(
        id=inquiry_id,
        user_id=user_id,
        date=date,
        customer_type=CustomerType.COLD,
        customer_name=f"Customer {inquiry_id}",
        contact_person="",
        mobile1="9000000000",
        feedback=feedback,
    )


def _conveyance(conveyance_id, user_id, date, sub_total, approved=False):
    return Conveyance(
        id=conveyance_id,
        user_id=user_id,
        date=date,
        description="",
        travel_type=TravelType.BUS,
        from_km=0,
        to_km=0,
        total_km=0,
        rate_per_km=10,
        fooding_cost=sub_total,
        loading_cost=0,
        other_cost=0,
        sub_total=sub_total,
        approved=approved,
    )


@pytest.fixture
def inquiries():
    return [
        _inquiry("i1", "u1", "2024-01-01"),
        _inquiry("i2", "u2", "2024-01-15"),
        _inquiry("i3", "u1", "2024-01-31"),
        _inquiry("i4", "u2", "2024-02-01"),
    ]


@pytest.fixture
def conveyances():
    return [
        _conveyance("c1", "u1", "2024-01-01", 520.0),
        _conveyance("c2", "u2", "2024-01-10", 100.5, approved=True),
        _conveyance("c3", "u1", "2024-02-03", 770.0),
    ]


class TestFilters:
    """Test user and inclusive date-range filtering."""

    def test_no_filter_returns_everything_in_order(self, inquiries):
        assert filter_inquiries(inquiries) == inquiries
        assert filter_inquiries(inquiries, "", "", "") == inquiries

    def test_filter_by_user(self, inquiries):
        result = filter_inquiries(inquiries, user_id="u1")

        assert [i.id for i in result] == ["i1", "i3"]

    def test_date_range_is_inclusive(self, inquiries):
        result = filter_inquiries(inquiries, start="2024-01-01", end="2024-01-31")

        assert [i.id for i in result] == ["i1", "i2", "i3"]

    def test_open_ended_ranges(self, inquiries):
        assert [i.id for i in filter_inquiries(inquiries, start="2024-01-15")] == ["i2", "i3", "i4"]
        assert [i.id for i in filter_inquiries(inquiries, end="2024-01-15")] == ["i1", "i2"]

    def test_user_and_range_combined(self, inquiries, conveyances):
        assert [i.id for i in filter_inquiries(inquiries, "u2", "2024-01-01", "2024-01-31")] == ["i2"]
        assert [c.id for c in filter_conveyances(conveyances, "u1", "2024-01-01", "2024-01-31")] == ["c1"]

    def test_unknown_user_matches_nothing(self, conveyances):
        assert filter_conveyances(conveyances, user_id="nobody") == []


class TestAggregation:
    """Test expense totals and pending lists."""

    def test_total_expense(self, conveyances):
        assert total_expense(conveyances) == 520.0 + 100.5 + 770.0

    def test_total_expense_of_filtered_set(self, conveyances):
        assert total_expense(filter_conveyances(conveyances, user_id="u1")) == 1290.0

    def test_total_expense_empty(self):
        assert total_expense([]) == 0.0

    def test_pending_conveyances(self, conveyances):
        assert [c.id for c in pending_conveyances(conveyances)] == ["c1", "c3"]


class TestUserNames:
    """Test name lookup with fallback."""

    def test_resolves_known_user(self):
        users = [User("u1", "alice", "Alice A", Role.OWNER, UserStatus.APPROVED, "2024-01-01")]

        assert resolve_user_name(users, "u1") == "Alice A"

    def test_missing_user_uses_fallback(self):
        assert resolve_user_name([], "u9") == "Unknown"
        assert resolve_user_name([], "u9", fallback="-") == "-"


class TestCsvExport:
    """Test the inquiry CSV export."""

    def test_header_and_rows(self):
        csv_text = inquiries_to_csv([_inquiry("i1", "u1", "2024-01-01", feedback="Call back")])

        assert csv_text.split("\n") == [
            "Date,Type,Name,Mobile,Feedback",
            "2024-01-01,COLD,Customer i1,9000000000,Call back",
        ]

    def test_empty_export_has_header_only(self):
        assert inquiries_to_csv([]) == "Date,Type,Name,Mobile,Feedback"

    def test_commas_are_not_escaped(self):
        csv_text = inquiries_to_csv([_inquiry("i1", "u1", "2024-01-01", feedback="price high, call later")])

        row = csv_text.split("\n")[1]
        assert len(row.split(",")) == 6
