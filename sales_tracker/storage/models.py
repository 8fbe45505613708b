"""
Data models for storage layer.

Defines the tracked entities and their JSON mapping. Field names on the
wire (and in persisted records) use the camelCase keys the spreadsheet
mirror expects.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class Role(Enum):
    """Account role assigned at registration."""
    OWNER = "OWNER"
    USER = "USER"


class UserStatus(Enum):
    """Account approval status."""
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class CustomerType(Enum):
    """Lead temperature recorded on an inquiry."""
    HOT = "HOT"
    COLD = "COLD"
    NOT_NEEDED = "NOT_NEEDED"


class TravelType(Enum):
    """Mode of travel claimed on a conveyance."""
    BUS = "BUS"
    TRAIN = "TRAIN"
    BIKE = "BIKE"
    AUTO = "AUTO"
    CAR = "CAR"


DEFAULT_PER_KM_RATE = 10.0


def _number(
    data: Dict[str, Any], key: str, positive: bool = False, default: Optional[float] = None
) -> float:
    """Read a stored amount, raising ValueError unless it is finite and >= 0.

    With ``positive`` the amount must also be > 0. A missing key raises
    KeyError unless ``default`` is given.
    """
    value = data[key] if default is None else data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise ValueError(f"{key} must be a finite number, got {value!r}")
    if value < 0 or (positive and value == 0):
        raise ValueError(f"{key} out of range: {value!r}")
    return value


@dataclass(frozen=True)
class User:
    """Registered account. Never deleted; only ``status`` changes."""
    id: str
    username: str
    full_name: str
    role: Role
    status: UserStatus
    created_at: str

    @property
    def is_owner(self) -> bool:
        return self.role == Role.OWNER

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "username": self.username,
            "role": self.role.value,
            "status": self.status.value,
            "fullName": self.full_name,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        return cls(
            id=data["id"],
            username=data["username"],
            full_name=data["fullName"],
            role=Role(data["role"]),
            status=UserStatus(data["status"]),
            created_at=data["createdAt"],
        )


@dataclass(frozen=True)
class Inquiry:
    """Customer inquiry logged by a field user.

    Append-only: once stored an inquiry is never edited or removed.
    """
    id: str
    user_id: str
    date: str
    customer_type: CustomerType
    customer_name: str
    contact_person: str
    mobile1: str
    feedback: str
    mobile2: Optional[str] = None
    ai_sentiment: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "userId": self.user_id,
            "date": self.date,
            "customerType": self.customer_type.value,
            "customerName": self.customer_name,
            "contactPerson": self.contact_person,
            "mobile1": self.mobile1,
            "feedback": self.feedback,
        }
        if self.mobile2 is not None:
            data["mobile2"] = self.mobile2
        if self.ai_sentiment is not None:
            data["aiSentiment"] = self.ai_sentiment
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Inquiry":
        return cls(
            id=data["id"],
            user_id=data["userId"],
            date=data["date"],
            customer_type=CustomerType(data["customerType"]),
            customer_name=data["customerName"],
            contact_person=data.get("contactPerson", ""),
            mobile1=data["mobile1"],
            feedback=data.get("feedback", ""),
            mobile2=data.get("mobile2"),
            ai_sentiment=data.get("aiSentiment"),
        )


@dataclass(frozen=True)
class Conveyance:
    """Travel-expense claim.

    ``total_km``, ``rate_per_km`` and ``sub_total`` are computed once at
    submission and stored; later rate changes never touch them. The only
    mutation is ``approved`` flipping to True.
    """
    id: str
    user_id: str
    date: str
    description: str
    travel_type: TravelType
    from_km: float
    to_km: float
    total_km: float
    rate_per_km: float
    fooding_cost: float
    loading_cost: float
    other_cost: float
    sub_total: float
    approved: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "date": self.date,
            "description": self.description,
            "travelType": self.travel_type.value,
            "fromKm": self.from_km,
            "toKm": self.to_km,
            "totalKm": self.total_km,
            "ratePerKm": self.rate_per_km,
            "foodingCost": self.fooding_cost,
            "loadingCost": self.loading_cost,
            "otherCost": self.other_cost,
            "subTotal": self.sub_total,
            "approved": self.approved,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Conveyance":
        return cls(
            id=data["id"],
            user_id=data["userId"],
            date=data["date"],
            description=data.get("description", ""),
            travel_type=TravelType(data["travelType"]),
            from_km=_number(data, "fromKm"),
            to_km=_number(data, "toKm"),
            total_km=_number(data, "totalKm"),
            rate_per_km=_number(data, "ratePerKm", positive=True),
            fooding_cost=_number(data, "foodingCost", default=0),
            loading_cost=_number(data, "loadingCost", default=0),
            other_cost=_number(data, "otherCost", default=0),
            sub_total=_number(data, "subTotal"),
            approved=bool(data.get("approved", False)),
        )


@dataclass(frozen=True)
class AppSettings:
    """Global settings singleton."""
    per_km_rate: float = DEFAULT_PER_KM_RATE

    def to_dict(self) -> Dict[str, Any]:
        return {"perKmRate": self.per_km_rate}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AppSettings":
        return cls(per_km_rate=_number(data, "perKmRate", positive=True))


@dataclass(frozen=True)
class SessionPointer:
    """Reference to the logged-in user; resolved against the store on load."""
    user_id: str
    username: str

    def to_dict(self) -> Dict[str, Any]:
        return {"userId": self.user_id, "username": self.username}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionPointer":
        return cls(user_id=data["userId"], username=data["username"])
