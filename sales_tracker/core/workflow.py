"""
Approval workflows and record submission.

User approval: PENDING -> APPROVED | REJECTED, and an owner may revoke an
approved account back to REJECTED. The store accepts any status write.

Conveyance approval: pending (approved=False) -> approved (approved=True),
one way only.

These functions do not check who is calling. Owner-only actions must be
guarded at the call site with ``require_owner``.
"""

import dataclasses
import logging
import math
import uuid
from typing import Callable, Optional, Union

from ..storage.models import (
    AppSettings,
    Conveyance,
    CustomerType,
    Inquiry,
    TravelType,
    User,
    UserStatus,
)
from ..storage.repository import EntityStore
from .errors import InvalidAmount, InvalidRate, MissingRequiredField
from .expense import compute_subtotal, compute_total_km

logger = logging.getLogger(__name__)

SENTIMENT_NOT_APPLICABLE = "N/A"
SENTIMENT_UNAVAILABLE = "AI Unavailable"

SentimentAnalyzer = Callable[[str], str]


def set_user_status(store: EntityStore, user_id: str, status: UserStatus) -> Optional[User]:
    """Write a new approval status for a user.

    Args:
        store: Entity store
        user_id: Target user id
        status: New status

    Returns:
        The updated user, or None if the id is unknown (no write happens)
    """
    user = store.find_user(user_id)
    if user is None:
        logger.warning("Status change for unknown user %s ignored", user_id)
        return None

    updated = dataclasses.replace(user, status=status)
    store.upsert_user(updated)
    logger.info("User %s status %s -> %s", user.username, user.status.value, status.value)
    return updated


def approve_conveyance(store: EntityStore, conveyance_id: str) -> Optional[Conveyance]:
    """Mark a conveyance approved for reimbursement.

    Idempotent: approving an approved claim changes nothing. Unknown ids
    are a no-op.

    Returns:
        The approved conveyance, or None if the id is unknown
    """
    conveyance = store.find_conveyance(conveyance_id)
    if conveyance is None:
        logger.warning("Approval for unknown conveyance %s ignored", conveyance_id)
        return None
    if conveyance.approved:
        return conveyance

    approved = dataclasses.replace(conveyance, approved=True)
    store.upsert_conveyance(approved)
    logger.info("Conveyance %s approved (%.2f)", conveyance_id, approved.sub_total)
    return approved


def submit_conveyance(
    store: EntityStore,
    user_id: str,
    date: str,
    travel_type: Union[TravelType, str],
    from_km: float,
    to_km: float,
    description: str = "",
    fooding_cost: float = 0,
    loading_cost: float = 0,
    other_cost: float = 0,
) -> Conveyance:
    """Validate and store a new expense claim.

    The current global rate is copied onto the record, and the distance
    and sub-total are computed from it once. Nothing is stored if any
    check fails.

    Raises:
        MissingRequiredField: If user id, date or a valid travel type is missing
        InvalidAmount: If a reading or cost is negative or not finite
        InvalidRoute: If ``to_km`` is below ``from_km``
    """
    if not user_id:
        raise MissingRequiredField("User")
    if not date:
        raise MissingRequiredField("Date")
    try:
        travel_type = TravelType(travel_type)
    except ValueError:
        raise MissingRequiredField("Travel Mode")

    for label, value in (
        ("From KM", from_km),
        ("To KM", to_km),
        ("Fooding cost", fooding_cost),
        ("Loading cost", loading_cost),
        ("Other cost", other_cost),
    ):
        if not math.isfinite(value):
            raise InvalidAmount(f"{label} must be a finite number")
        if value < 0:
            raise InvalidAmount(f"{label} cannot be negative")

    total_km = compute_total_km(from_km, to_km)
    rate = store.get_settings().per_km_rate

    conveyance = Conveyance(
        id=str(uuid.uuid4()),
        user_id=user_id,
        date=date,
        description=description or "",
        travel_type=travel_type,
        from_km=from_km,
        to_km=to_km,
        total_km=total_km,
        rate_per_km=rate,
        fooding_cost=fooding_cost,
        loading_cost=loading_cost,
        other_cost=other_cost,
        sub_total=compute_subtotal(total_km, rate, fooding_cost, loading_cost, other_cost),
        approved=False,
    )
    store.append_conveyance(conveyance)
    return conveyance


def submit_inquiry(
    store: EntityStore,
    user_id: str,
    date: str,
    customer_type: Union[CustomerType, str],
    customer_name: str,
    mobile1: str,
    contact_person: str = "",
    mobile2: Optional[str] = None,
    feedback: str = "",
    sentiment_analyzer: Optional[SentimentAnalyzer] = None,
) -> Inquiry:
    """Validate and store a new customer inquiry.

    Required fields are checked before the sentiment call and before an id
    is generated. Empty feedback gets ``"N/A"`` without calling the
    analyzer.

    Raises:
        MissingRequiredField: If user, date, customer name or mobile1 is blank
    """
    if not user_id:
        raise MissingRequiredField("User")
    if not date:
        raise MissingRequiredField("Date")
    if not customer_name or not customer_name.strip():
        raise MissingRequiredField("Customer Name")
    if not mobile1 or not mobile1.strip():
        raise MissingRequiredField("Mobile 1")
    try:
        customer_type = CustomerType(customer_type)
    except ValueError:
        raise MissingRequiredField("Customer Type")

    if not feedback:
        sentiment = SENTIMENT_NOT_APPLICABLE
    elif sentiment_analyzer is None:
        sentiment = SENTIMENT_UNAVAILABLE
    else:
        sentiment = sentiment_analyzer(feedback)

    inquiry = Inquiry(
        id=str(uuid.uuid4()),
        user_id=user_id,
        date=date,
        customer_type=customer_type,
        customer_name=customer_name,
        contact_person=contact_person or "",
        mobile1=mobile1,
        mobile2=mobile2 or None,
        feedback=feedback or "",
        ai_sentiment=sentiment,
    )
    store.append_inquiry(inquiry)
    return inquiry


def update_settings(store: EntityStore, per_km_rate: float) -> AppSettings:
    """Overwrite the global per-KM rate.

    Only conveyances submitted afterwards use the new rate.

    Raises:
        InvalidRate: If the rate is not a positive finite number
    """
    if per_km_rate is None or not math.isfinite(per_km_rate) or per_km_rate <= 0:
        raise InvalidRate(per_km_rate)

    settings = dataclasses.replace(store.get_settings(), per_km_rate=per_km_rate)
    store.save_settings(settings)
    logger.info("Per KM rate set to %s", per_km_rate)
    return settings
