"""
Repository pattern for data access.

Holds the entity collections, the settings singleton and the session
pointer behind a swappable record backend, and notifies listeners after
every mutation so the spreadsheet mirror can follow along.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

from .db import DEFAULT_DB_PATH, get_connection
from .models import AppSettings, Conveyance, Inquiry, SessionPointer, User

logger = logging.getLogger(__name__)

USERS_KEY = "users"
INQUIRIES_KEY = "inquiries"
CONVEYANCES_KEY = "conveyances"
SETTINGS_KEY = "settings"
SESSION_KEY = "current_user"

T = TypeVar("T")

MutationListener = Callable[[str], None]


class MemoryBackend:
    """In-process record backend. Values are kept as JSON text."""

    def __init__(self, records: Optional[Dict[str, str]] = None):
        self._records: Dict[str, str] = dict(records or {})

    def read(self, key: str) -> Optional[str]:
        return self._records.get(key)

    def write(self, key: str, value: Optional[str]) -> None:
        if value is None:
            self._records.pop(key, None)
        else:
            self._records[key] = value


class SQLiteBackend:
    """Durable record backend: one row per named record in a SQLite file."""

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        self.db_path = db_path
        initialize_schema(db_path)

    def read(self, key: str) -> Optional[str]:
        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute(
                "SELECT value FROM app_record WHERE key = ?", (key,)
            )
            row = cursor.fetchone()
            return row[0] if row else None
        finally:
            conn.close()

    def write(self, key: str, value: Optional[str]) -> None:
        conn = get_connection(self.db_path)
        try:
            if value is None:
                conn.execute("DELETE FROM app_record WHERE key = ?", (key,))
            else:
                conn.execute("""
                    INSERT INTO app_record (key, value, updated_at)
                    VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        updated_at = excluded.updated_at
                """, (key, value, datetime.now(timezone.utc).isoformat()))
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()


def initialize_schema(db_path: str = DEFAULT_DB_PATH) -> None:
    """Create the app_record table if it doesn't exist.

    Args:
        db_path: Path to SQLite database file
    """
    conn = get_connection(db_path)
    try:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS app_record (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)
        conn.commit()
    finally:
        conn.close()


class EntityStore:
    """Key-indexed store for users, inquiries, conveyances and settings.

    Reads are total: a missing or unreadable record yields the empty
    collection or default value. Every mutating call notifies the
    registered listeners afterwards; a listener failure is logged and
    never reaches the caller.
    """

    def __init__(self, backend=None):
        """Initialize the store.

        Args:
            backend: Object with ``read(key)`` and ``write(key, value)``;
                defaults to an in-memory backend
        """
        self.backend = backend if backend is not None else MemoryBackend()
        self._listeners: List[MutationListener] = []

    def add_listener(self, listener: MutationListener) -> None:
        """Register a callback invoked with the mutated record key."""
        self._listeners.append(listener)

    def remove_listener(self, listener: MutationListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # -- users --------------------------------------------------------

    def list_users(self) -> List[User]:
        return self._read_collection(USERS_KEY, User)

    def upsert_user(self, user: User) -> None:
        self._upsert(USERS_KEY, User, user)

    def find_user(self, user_id: str) -> Optional[User]:
        for user in self.list_users():
            if user.id == user_id:
                return user
        return None

    def find_user_by_username(self, username: str) -> Optional[User]:
        """Exact, case-sensitive username lookup."""
        for user in self.list_users():
            if user.username == username:
                return user
        return None

    # -- inquiries ----------------------------------------------------

    def list_inquiries(self) -> List[Inquiry]:
        return self._read_collection(INQUIRIES_KEY, Inquiry)

    def append_inquiry(self, inquiry: Inquiry) -> None:
        self._append(INQUIRIES_KEY, Inquiry, inquiry)

    # -- conveyances --------------------------------------------------

    def list_conveyances(self) -> List[Conveyance]:
        return self._read_collection(CONVEYANCES_KEY, Conveyance)

    def append_conveyance(self, conveyance: Conveyance) -> None:
        self._append(CONVEYANCES_KEY, Conveyance, conveyance)

    def upsert_conveyance(self, conveyance: Conveyance) -> None:
        self._upsert(CONVEYANCES_KEY, Conveyance, conveyance)

    def find_conveyance(self, conveyance_id: str) -> Optional[Conveyance]:
        for conveyance in self.list_conveyances():
            if conveyance.id == conveyance_id:
                return conveyance
        return None

    # -- settings -----------------------------------------------------

    def get_settings(self) -> AppSettings:
        data = self._load(SETTINGS_KEY)
        if data is None:
            return AppSettings()
        try:
            return AppSettings.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Unreadable %s record, using defaults: %s", SETTINGS_KEY, e)
            return AppSettings()

    def save_settings(self, settings: AppSettings) -> None:
        self._dump(SETTINGS_KEY, settings.to_dict())
        self._notify(SETTINGS_KEY)

    # -- session ------------------------------------------------------

    def get_session(self) -> Optional[SessionPointer]:
        data = self._load(SESSION_KEY)
        if data is None:
            return None
        try:
            return SessionPointer.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Unreadable %s record, treating as logged out: %s", SESSION_KEY, e)
            return None

    def set_session(self, pointer: Optional[SessionPointer]) -> None:
        """Persist or clear the session pointer. Not mirrored."""
        if pointer is None:
            self.backend.write(SESSION_KEY, None)
        else:
            self._dump(SESSION_KEY, pointer.to_dict())

    # -- mirror payload -----------------------------------------------

    def snapshot(self) -> Dict[str, List[Dict[str, Any]]]:
        """Full dataset in the shape the external mirror expects."""
        return {
            "users": [u.to_dict() for u in self.list_users()],
            "inquiries": [i.to_dict() for i in self.list_inquiries()],
            "conveyances": [c.to_dict() for c in self.list_conveyances()],
        }

    # -- internals ----------------------------------------------------

    def _load(self, key: str) -> Optional[Any]:
        raw = self.backend.read(key)
        if not raw:
            return None
        try:
            return json.loads(raw)
        except ValueError as e:
            logger.warning("Corrupt %s record ignored: %s", key, e)
            return None

    def _dump(self, key: str, value: Any) -> None:
        self.backend.write(key, json.dumps(value))

    def _read_collection(self, key: str, entity_type: Type[T]) -> List[T]:
        data = self._load(key)
        if data is None:
            return []
        if not isinstance(data, list):
            logger.warning("Corrupt %s record ignored: expected a list", key)
            return []
        try:
            return [entity_type.from_dict(item) for item in data]
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning("Corrupt %s record ignored: %s", key, e)
            return []

    def _write_collection(self, key: str, items: List[Any]) -> None:
        self._dump(key, [item.to_dict() for item in items])

    def _upsert(self, key: str, entity_type: Type[T], entity) -> None:
        items = self._read_collection(key, entity_type)
        for index, existing in enumerate(items):
            if existing.id == entity.id:
                items[index] = entity
                break
        else:
            items.append(entity)
        self._write_collection(key, items)
        self._notify(key)

    def _append(self, key: str, entity_type: Type[T], entity) -> None:
        items = self._read_collection(key, entity_type)
        items.append(entity)
        self._write_collection(key, items)
        self._notify(key)

    def _notify(self, key: str) -> None:
        for listener in list(self._listeners):
            try:
                listener(key)
            except Exception as e:
                logger.warning("Mutation listener failed for %s: %s", key, e)

