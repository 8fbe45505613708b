"""
Report queries over a store snapshot.

Pure functions: callers pass in the lists they just read from the store,
nothing is cached.
"""

from typing import Iterable, List, Optional, Sequence, TypeVar

from ..storage.models import Conveyance, Inquiry, User

UNKNOWN_USER_LABEL = "Unknown"
CSV_HEADERS = ["Date", "Type", "Name", "Mobile", "Feedback"]

R = TypeVar("R", Inquiry, Conveyance)


def _matches(record, user_id: Optional[str], start: Optional[str], end: Optional[str]) -> bool:
    # ISO dates compare correctly as strings
    if user_id and record.user_id != user_id:
        return False
    if start and record.date < start:
        return False
    if end and record.date > end:
        return False
    return True


def filter_records(
    records: Iterable[R],
    user_id: Optional[str] = None,
    start: Optional[str] = None,
    end: Optional[str] = None,
) -> List[R]:
    """Filter by exact user id and inclusive date range.

    Any empty criterion is ignored, so no criteria returns every record
    in stored order.
    """
    return [r for r in records if _matches(r, user_id, start, end)]


def filter_inquiries(
    inquiries: Iterable[Inquiry],
    user_id: Optional[str] = None,
    start: Optional[str] = None,
    end: Optional[str] = None,
) -> List[Inquiry]:
    return filter_records(inquiries, user_id, start, end)


def filter_conveyances(
    conveyances: Iterable[Conveyance],
    user_id: Optional[str] = None,
    start: Optional[str] = None,
    end: Optional[str] = None,
) -> List[Conveyance]:
    return filter_records(conveyances, user_id, start, end)


def total_expense(conveyances: Iterable[Conveyance]) -> float:
    """Sum of ``sub_total`` over the given claims."""
    return sum((c.sub_total for c in conveyances), 0.0)


def pending_conveyances(conveyances: Iterable[Conveyance]) -> List[Conveyance]:
    """Claims still waiting for owner approval."""
    return [c for c in conveyances if not c.approved]


def resolve_user_name(
    users: Sequence[User],
    user_id: str,
    fallback: str = UNKNOWN_USER_LABEL,
) -> str:
    """Full name for ``user_id``, or ``fallback`` if no such user exists."""
    for user in users:
        if user.id == user_id:
            return user.full_name
    return fallback


def inquiries_to_csv(inquiries: Iterable[Inquiry]) -> str:
    """Render inquiries as CSV text.

    Values are joined with commas as-is, without quoting. A feedback value
    that contains a comma will spill into extra columns.
    """
    lines = [",".join(CSV_HEADERS)]
    for inquiry in inquiries:
        row = [
            inquiry.date,
            inquiry.customer_type.value,
            inquiry.customer_name,
            inquiry.mobile1,
            inquiry.feedback,
        ]
        lines.append(",".join(row))
    return "\n".join(lines)
