"""
Identity and session management.

Identity is established by username alone; there is no secret to check.
The session is stored as a pointer and always re-resolved against the
store so a status change made while logged out is picked up on restore.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from ..storage.models import Role, SessionPointer, User, UserStatus
from ..storage.repository import EntityStore
from .errors import (
    AccountNotApproved,
    DuplicateUsername,
    MissingRequiredField,
    PermissionDenied,
    UserNotFound,
)

logger = logging.getLogger(__name__)


class SessionManager:
    """Registration, login and the persisted current-user pointer."""

    def __init__(self, store: EntityStore):
        self.store = store
        self._current: Optional[User] = None

    @property
    def current_user(self) -> Optional[User]:
        return self._current

    def register(self, username: str, full_name: str) -> User:
        """Create an account and make it the current session.

        The very first account becomes the approved OWNER; every later
        one is a PENDING USER awaiting approval.

        Args:
            username: Unique, case-sensitive login name
            full_name: Display name

        Returns:
            The stored user

        Raises:
            MissingRequiredField: If username or full name is blank
            DuplicateUsername: If the username is already taken
        """
        if not username or not username.strip():
            raise MissingRequiredField("Username")
        if not full_name or not full_name.strip():
            raise MissingRequiredField("Full Name")

        users = self.store.list_users()
        if any(u.username == username for u in users):
            raise DuplicateUsername(username)

        is_first_user = len(users) == 0
        user = User(
            id=str(uuid.uuid4()),
            username=username,
            full_name=full_name,
            role=Role.OWNER if is_first_user else Role.USER,
            status=UserStatus.APPROVED if is_first_user else UserStatus.PENDING,
            created_at=datetime.now(timezone.utc).isoformat(),
        )
        self.store.upsert_user(user)
        logger.info("Registered %s as %s/%s", username, user.role.value, user.status.value)

        self._start_session(user)
        return user

    def login(self, username: str) -> Optional[User]:
        """Fresh lookup of a user by exact username, or None."""
        return self.store.find_user_by_username(username)

    def authenticate(self, username: str) -> User:
        """Log in as ``username`` and make it the current session.

        Raises:
            UserNotFound: If no account has that username
        """
        user = self.login(username)
        if user is None:
            raise UserNotFound(username)
        self._start_session(user)
        return user

    def logout(self) -> None:
        self.store.set_session(None)
        self._current = None

    def restore_session(self) -> Optional[User]:
        """Resolve the persisted session pointer against the store.

        A pointer whose username no longer resolves to the same account
        is cleared.
        """
        pointer = self.store.get_session()
        if pointer is None:
            self._current = None
            return None

        user = self.login(pointer.username)
        if user is None or user.id != pointer.user_id:
            logger.info("Stale session for %s cleared", pointer.username)
            self.logout()
            return None

        self._current = user
        return user

    def _start_session(self, user: User) -> None:
        self.store.set_session(SessionPointer(user_id=user.id, username=user.username))
        self._current = user


def require_owner(user: Optional[User]) -> User:
    """Call-site guard for owner-only actions."""
    if user is None:
        raise PermissionDenied("Not logged in")
    if user.role != Role.OWNER:
        raise PermissionDenied("Only the owner can perform this action")
    return user


def require_approved(user: Optional[User]) -> User:
    """Call-site guard for actions open to any approved account."""
    if user is None:
        raise AccountNotApproved("Not logged in")
    if user.status == UserStatus.PENDING:
        raise AccountNotApproved(
            "Your account is waiting for administrator approval. Please contact the owner."
        )
    if user.status == UserStatus.REJECTED:
        raise AccountNotApproved("Your access has been denied by the administrator.")
    return user
