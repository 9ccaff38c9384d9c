"""Records of the cluster-wide Ceph configuration (the ``config`` table)."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from typing import Optional

from microceph.common import ConflictError, NotFoundError, StatusError

_SELECT = "SELECT config.id, config.key, config.value FROM config"
_ORDER = "ORDER BY config.key"
_BY_KEY = "( config.key = ? )"

_ID = "SELECT config.id FROM config WHERE config.key = ?"
_CREATE = "INSERT INTO config (key, value) VALUES (?, ?)"
_DELETE_BY_KEY = "DELETE FROM config WHERE key = ?"
_UPDATE = "UPDATE config SET key = ?, value = ? WHERE id = ?"


@dataclass
class ConfigItem:
    """One key/value pair of the Ceph configuration."""

    key: str = ""
    value: str = ""
    id: int = 0


@dataclass
class ConfigItemFilter:
    """Selects configuration records by key."""

    key: Optional[str] = None


def get_config_items(connection: sqlite3.Connection, *args: ConfigItemFilter) -> list[ConfigItem]:
    """Return the records matching any of the given filters, or all of them, ordered by key."""
    clauses = []
    params: list[str] = []
    for item_filter in args:
        if item_filter.key is None:
            raise ValueError("Cannot filter on empty ConfigItemFilter")
        clauses.append(_BY_KEY)
        params.append(item_filter.key)

    query = _SELECT
    if clauses:
        query += " WHERE " + " OR ".join(clauses)
    query += " " + _ORDER

    rows = connection.execute(query, params).fetchall()
    return [ConfigItem(id=row[0], key=row[1], value=row[2]) for row in rows]


def get_config_item(connection: sqlite3.Connection, key: str) -> ConfigItem:
    """Return the record with ``key``."""
    objects = get_config_items(connection, ConfigItemFilter(key=key))
    if not objects:
        raise NotFoundError("ConfigItem not found")
    if len(objects) > 1:
        raise StatusError('More than one "config" entry matches')
    return objects[0]


def get_config_item_id(connection: sqlite3.Connection, key: str) -> int:
    """Return the row id of the record with ``key``."""
    row = connection.execute(_ID, (key,)).fetchone()
    if row is None:
        raise NotFoundError("ConfigItem not found")
    return row[0]


def config_item_exists(connection: sqlite3.Connection, key: str) -> bool:
    """Tell whether a record with ``key`` exists."""
    try:
        get_config_item_id(connection, key)
    except NotFoundError:
        return False
    return True


def create_config_item(connection: sqlite3.Connection, item: ConfigItem) -> int:
    """Insert ``item`` and return its new row id; an existing key is a conflict."""
    if config_item_exists(connection, item.key):
        raise ConflictError('This "config" entry already exists')
    cursor = connection.execute(_CREATE, (item.key, item.value))
    return cursor.lastrowid


def delete_config_item(connection: sqlite3.Connection, key: str) -> None:
    """Delete the one record with ``key``."""
    cursor = connection.execute(_DELETE_BY_KEY, (key,))
    if cursor.rowcount == 0:
        raise NotFoundError("ConfigItem not found")
    if cursor.rowcount > 1:
        raise StatusError(f"Query deleted {cursor.rowcount} ConfigItem rows instead of 1")


def update_config_item(connection: sqlite3.Connection, key: str, item: ConfigItem) -> None:
    """Replace the record with ``key`` by the key and value of ``item``."""
    row_id = get_config_item_id(connection, key)
    cursor = connection.execute(_UPDATE, (item.key, item.value, row_id))
    if cursor.rowcount != 1:
        raise StatusError(f"Query updated {cursor.rowcount} rows instead of 1")