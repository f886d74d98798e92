from __future__ import annotations

import logging
from typing import Any, Callable, Protocol

import mysql.connector

from .errors import ConnectionNotFoundError, QueryError
from .models import Credentials

LOGGER = logging.getLogger(__name__)


class Connection(Protocol):
    def query_scalar(self, sql: str) -> str | None: ...

    def close(self) -> None: ...


class MySQLConnection:
    """Lazily opened mysql.connector connection answering scalar queries."""

    def __init__(self, settings: dict[str, Any]):
        self.settings = settings
        self._cnx = None

    def _connect(self):
        if self._cnx is None:
            params = {k: v for k, v in self.settings.items() if v is not None}
            if "port" in params:
                params["port"] = int(params["port"])
            self._cnx = mysql.connector.connect(**params)
        return self._cnx

    def query_scalar(self, sql: str) -> str | None:
        try:
            cnx = self._connect()
            cursor = cnx.cursor()
            try:
                cursor.execute(sql)
                row = cursor.fetchone()
            finally:
                cursor.close()
        except mysql.connector.Error as exc:
            raise QueryError(f"Query failed: {sql} ({exc})") from exc
        if not row or row[0] is None:
            return None
        return str(row[0])

    def close(self) -> None:
        if self._cnx is not None:
            self._cnx.close()
            self._cnx = None


class ConnectionRegistry:
    def __init__(self, factories: dict[str, Callable[[], Connection]] | None = None):
        self._factories: dict[str, Callable[[], Connection]] = dict(factories or {})

    def register(self, connection_id: str, factory: Callable[[], Connection]) -> None:
        self._factories[connection_id] = factory

    def names(self) -> list[str]:
        return sorted(self._factories)

    def resolve(self, connection_id: str) -> Connection:
        factory = self._factories.get(connection_id)
        if factory is None:
            raise ConnectionNotFoundError(
                f"Failed to get database connection. Component {connection_id} not found."
            )
        LOGGER.debug("Resolved connection %s", connection_id)
        return factory()


def build_registry(cfg: dict[str, Any], credentials: Credentials | None = None) -> ConnectionRegistry:
    fallback = credentials.as_options() if credentials is not None else {}
    registry = ConnectionRegistry()
    for connection_id, settings in (cfg.get("connections") or {}).items():
        if not isinstance(settings, dict):
            raise ValueError(f"Connection {connection_id} must be a mapping")
        merged = dict(settings)
        for key, value in fallback.items():
            if merged.get(key) is None:
                merged[key] = value
        registry.register(str(connection_id), lambda s=merged: MySQLConnection(s))
    return registry
