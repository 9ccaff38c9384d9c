"""Records of the per-host Ceph client configuration (the ``client_config`` table)."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from typing import Optional

from microceph.common import ConflictError, NotFoundError, StatusError

_SELECT = (
    "SELECT client_config.id, internal_cluster_members.name AS host,"
    " client_config.key, client_config.value"
    " FROM client_config"
    " JOIN internal_cluster_members ON client_config.member_id = internal_cluster_members.id"
)
_ORDER = "ORDER BY internal_cluster_members.id, client_config.key"

_BY_KEY_AND_HOST = "( client_config.key = ? AND internal_cluster_members.name = ? )"
_BY_KEY = "( client_config.key = ? )"
_BY_HOST = "( internal_cluster_members.name = ? )"

_MEMBER_ID = (
    "(SELECT internal_cluster_members.id FROM internal_cluster_members"
    " WHERE internal_cluster_members.name = ?)"
)

_ID = (
    "SELECT client_config.id FROM client_config"
    " JOIN internal_cluster_members ON client_config.member_id = internal_cluster_members.id"
    " WHERE internal_cluster_members.name = ? AND client_config.key = ?"
)
_CREATE = f"INSERT INTO client_config (member_id, key, value) VALUES ({_MEMBER_ID}, ?, ?)"
_DELETE_BY_KEY = "DELETE FROM client_config WHERE key = ?"
_DELETE_BY_KEY_AND_HOST = f"DELETE FROM client_config WHERE key = ? AND member_id = {_MEMBER_ID}"
_UPDATE = (
    f"UPDATE client_config SET member_id = {_MEMBER_ID}, key = ?, value = ? WHERE id = ?"
)


@dataclass
class ClientConfigItem:
    """A client configuration key/value pair applied to one host."""

    host: str = ""
    key: str = ""
    value: str = ""
    id: int = 0


@dataclass
class ClientConfigItemFilter:
    """Selects client configuration records by host, key, or both."""

    host: Optional[str] = None
    key: Optional[str] = None


def _clause(item_filter: ClientConfigItemFilter) -> tuple[str, list[str]]:
    host, key = item_filter.host, item_filter.key
    if key is not None and host is not None:
        return _BY_KEY_AND_HOST, [key, host]
    if key is not None:
        return _BY_KEY, [key]
    if host is not None:
        return _BY_HOST, [host]
    raise ValueError("Cannot filter on empty ClientConfigItemFilter")


def get_client_config_items(
    connection: sqlite3.Connection, *args: ClientConfigItemFilter
) -> list[ClientConfigItem]:
    """Return the host records matching any of the given filters, or all of them.

    Global records (not bound to a host) are never returned. Results are ordered
    by member and then by key.
    """
    clauses = []
    params: list[str] = []
    for item_filter in args:
        clause, values = _clause(item_filter)
        clauses.append(clause)
        params.extend(values)

    query = _SELECT
    if clauses:
        query += " WHERE " + " OR ".join(clauses)
    query += " " + _ORDER

    rows = connection.execute(query, params).fetchall()
    return [ClientConfigItem(id=row[0], host=row[1], key=row[2], value=row[3]) for row in rows]


def get_client_config_item(
    connection: sqlite3.Connection, host: str, key: str
) -> ClientConfigItem:
    """Return the record of ``key`` on ``host``."""
    objects = get_client_config_items(connection, ClientConfigItemFilter(host=host, key=key))
    if not objects:
        raise NotFoundError("ClientConfigItem not found")
    if len(objects) > 1:
        raise StatusError('More than one "client_config" entry matches')
    return objects[0]


def get_client_config_item_id(connection: sqlite3.Connection, host: str, key: str) -> int:
    """Return the row id of ``key`` on ``host``."""
    row = connection.execute(_ID, (host, key)).fetchone()
    if row is None:
        raise NotFoundError("ClientConfigItem not found")
    return row[0]


def client_config_item_exists(connection: sqlite3.Connection, host: str, key: str) -> bool:
    """Tell whether ``key`` is recorded on ``host``."""
    try:
        get_client_config_item_id(connection, host, key)
    except NotFoundError:
        return False
    return True


def create_client_config_item(connection: sqlite3.Connection, item: ClientConfigItem) -> int:
    """Insert ``item`` and return its new row id; an existing record is a conflict."""
    if client_config_item_exists(connection, item.host, item.key):
        raise ConflictError('This "client_config" entry already exists')
    try:
        cursor = connection.execute(_CREATE, (item.host, item.key, item.value))
    except sqlite3.DatabaseError as err:
        raise StatusError(f'Failed to create "client_config" entry: {err}') from err
    return cursor.lastrowid


def delete_client_config_item(connection: sqlite3.Connection, key: str, host: str) -> None:
    """Delete the one record of ``key`` on ``host``."""
    cursor = connection.execute(_DELETE_BY_KEY_AND_HOST, (key, host))
    if cursor.rowcount == 0:
        raise NotFoundError("ClientConfigItem not found")
    if cursor.rowcount > 1:
        raise StatusError(f"Query deleted {cursor.rowcount} ClientConfigItem rows instead of 1")


def delete_client_config_items(connection: sqlite3.Connection, key: str) -> None:
    """Delete every record of ``key``, global ones included."""
    connection.execute(_DELETE_BY_KEY, (key,))


def update_client_config_item(
    connection: sqlite3.Connection, host: str, key: str, item: ClientConfigItem
) -> None:
    """Replace the record of ``key`` on ``host`` by the host, key and value of ``item``."""
    row_id = get_client_config_item_id(connection, host, key)
    try:
        cursor = connection.execute(_UPDATE, (item.host, item.key, item.value, row_id))
    except sqlite3.DatabaseError as err:
        raise StatusError(f'Update "client_config" entry failed: {err}') from err
    if cursor.rowcount != 1:
        raise StatusError(f"Query updated {cursor.rowcount} rows instead of 1")