"""Persistent key/value storage for session credentials and preferences.

The controller only needs get, set and clear. Missing or unreadable storage
reads as an empty record so a broken file never blocks re-authentication.
"""

import abc
import json
import logging
import pathlib
from typing import Any

import redis
from sqlalchemy import Engine
from sqlmodel import Session, SQLModel, create_engine, select

from alexa_media_controller.config import ControllerConfig
from alexa_media_controller.models import CredentialEntry

COOKIE_KEY = "cookie"
CSRF_KEY = "csrf"
DEFAULT_DEVICE_KEY = "defaultDevice"

logger = logging.getLogger(__name__)


class CredentialStore(abc.ABC):
    """Key/value record that survives between CLI invocations."""

    @abc.abstractmethod
    def load(self) -> dict[str, Any]:
        """Return the whole record, empty if nothing is stored."""

    @abc.abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Store a value under key."""

    @abc.abstractmethod
    def clear(self) -> None:
        """Remove every stored value."""

    def get(self, key: str) -> Any | None:
        return self.load().get(key)


class MemoryCredentialStore(CredentialStore):
    """Process local store, nothing is persisted."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = dict(initial or {})

    def load(self) -> dict[str, Any]:
        return dict(self._data)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def clear(self) -> None:
        self._data.clear()


class JsonFileCredentialStore(CredentialStore):
    """Store the record as one JSON object in a file.

    Attributes:
        path: Location of the JSON file.
    """

    def __init__(self, path: pathlib.Path) -> None:
        self.path = path

    def load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable credential file %s: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring credential file %s: not a JSON object", self.path)
            return {}
        return data

    def save(self, data: dict[str, Any]) -> None:
        """Write the whole record, creating the parent directory if needed."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2), encoding="utf-8")

    def set(self, key: str, value: Any) -> None:
        data = self.load()
        data[key] = value
        self.save(data)

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)


class RedisCredentialStore(CredentialStore):
    """Store the record as a Redis hash with JSON encoded values.

    Attributes:
        client: Redis client.
        key: Name of the hash.
    """

    def __init__(self, client: redis.Redis, key: str = "amc") -> None:
        self.client = client
        self.key = key

    def load(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        for field, raw_value in self.client.hgetall(self.key).items():
            name = field.decode() if isinstance(field, bytes) else field
            try:
                data[name] = json.loads(raw_value)
            except ValueError:
                logger.warning("Ignoring unreadable value for %s in redis hash %s", name, self.key)
        return data

    def get(self, key: str) -> Any | None:
        raw_value = self.client.hget(self.key, key)
        if raw_value is None:
            return None
        try:
            return json.loads(raw_value)
        except ValueError:
            logger.warning("Ignoring unreadable value for %s in redis hash %s", key, self.key)
            return None

    def set(self, key: str, value: Any) -> None:
        self.client.hset(self.key, key, json.dumps(value))

    def clear(self) -> None:
        self.client.delete(self.key)


class DatabaseCredentialStore(CredentialStore):
    """Store the record in a SQL table, one row per key.

    Attributes:
        db_engine: SQLAlchemy engine for the credential table.
    """

    def __init__(self, db_engine: Engine) -> None:
        self.db_engine = db_engine
        # AIDEV-NOTE: Ensure the credential table exists before first use
        SQLModel.metadata.create_all(self.db_engine, tables=[CredentialEntry.__table__])  # type: ignore[list-item]

    def load(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        with Session(self.db_engine) as session:
            for entry in session.exec(select(CredentialEntry)):
                try:
                    data[entry.key] = json.loads(entry.value)
                except ValueError:
                    logger.warning("Ignoring unreadable value for %s in credential table", entry.key)
        return data

    def set(self, key: str, value: Any) -> None:
        with Session(self.db_engine) as session:
            entry = session.get(CredentialEntry, key)
            if entry is None:
                entry = CredentialEntry(key=key, value=json.dumps(value))
            else:
                entry.value = json.dumps(value)
            session.add(entry)
            session.commit()

    def clear(self) -> None:
        with Session(self.db_engine) as session:
            for entry in session.exec(select(CredentialEntry)).all():
                session.delete(entry)
            session.commit()


def create_credential_store(config_obj: ControllerConfig) -> CredentialStore:
    """Build the store selected by ``config_obj.store_backend``."""
    if config_obj.store_backend == "redis":
        return RedisCredentialStore(redis.from_url(config_obj.redis.url), key=config_obj.redis.key)
    if config_obj.store_backend == "database":
        url = config_obj.resolved_database_url
        if url.startswith("sqlite:///"):
            config_obj.config_dir.mkdir(parents=True, exist_ok=True)
        return DatabaseCredentialStore(create_engine(url))
    if config_obj.store_backend == "memory":
        return MemoryCredentialStore()
    return JsonFileCredentialStore(config_obj.config_file)
