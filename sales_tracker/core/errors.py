"""
Domain errors.

Validation errors are raised before any state is touched. SyncFailure is
only ever raised to callers of the manual sync path.
"""


class SalesTrackerError(Exception):
    """Base class for errors surfaced to the user."""


class DuplicateUsername(SalesTrackerError):
    def __init__(self, username: str):
        super().__init__("Username already exists")
        self.username = username


class UserNotFound(SalesTrackerError):
    def __init__(self, username: str):
        super().__init__("User not found. Please register.")
        self.username = username


class MissingRequiredField(SalesTrackerError):
    def __init__(self, field_name: str):
        super().__init__(f"{field_name} is required")
        self.field_name = field_name


class InvalidRoute(SalesTrackerError):
    def __init__(self, from_km: float, to_km: float):
        super().__init__("To KM must be greater than From KM")
        self.from_km = from_km
        self.to_km = to_km


class InvalidAmount(SalesTrackerError):
    """Negative odometer reading or expense amount."""


class InvalidRate(SalesTrackerError):
    def __init__(self, rate: float):
        super().__init__(f"Per KM rate must be > 0, got {rate}")
        self.rate = rate


class PermissionDenied(SalesTrackerError):
    """Actor lacks the OWNER role for an owner-only action."""


class AccountNotApproved(SalesTrackerError):
    """Actor's account is pending or rejected."""


class SyncFailure(SalesTrackerError):
    """Push to the external mirror failed."""
