"""Records of the Ceph services placed on each cluster member (the ``services`` table)."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from typing import Optional

from microceph.common import ConflictError, NotFoundError, StatusError

_SELECT = (
    "SELECT services.id, internal_cluster_members.name AS member, services.service"
    " FROM services"
    " JOIN internal_cluster_members ON services.member_id = internal_cluster_members.id"
)
_ORDER = "ORDER BY internal_cluster_members.id, services.service"

_BY_MEMBER_AND_SERVICE = "( internal_cluster_members.name = ? AND services.service = ? )"
_BY_SERVICE = "( services.service = ? )"
_BY_MEMBER = "( internal_cluster_members.name = ? )"

_MEMBER_ID = (
    "(SELECT internal_cluster_members.id FROM internal_cluster_members"
    " WHERE internal_cluster_members.name = ?)"
)

_ID = (
    "SELECT services.id FROM services"
    " JOIN internal_cluster_members ON services.member_id = internal_cluster_members.id"
    " WHERE internal_cluster_members.name = ? AND services.service = ?"
)
_CREATE = f"INSERT INTO services (member_id, service) VALUES ({_MEMBER_ID}, ?)"
_DELETE_BY_MEMBER = f"DELETE FROM services WHERE member_id = {_MEMBER_ID}"
_DELETE_BY_MEMBER_AND_SERVICE = (
    f"DELETE FROM services WHERE member_id = {_MEMBER_ID} AND service = ?"
)
_UPDATE = f"UPDATE services SET member_id = {_MEMBER_ID}, service = ? WHERE id = ?"


@dataclass
class Service:
    """A Ceph service running on a cluster member."""

    member: str = ""
    service: str = ""
    id: int = 0


@dataclass
class ServiceFilter:
    """Selects service records by member, service name, or both."""

    member: Optional[str] = None
    service: Optional[str] = None


def _clause(service_filter: ServiceFilter) -> tuple[str, list[str]]:
    member, service = service_filter.member, service_filter.service
    if member is not None and service is not None:
        return _BY_MEMBER_AND_SERVICE, [member, service]
    if service is not None:
        return _BY_SERVICE, [service]
    if member is not None:
        return _BY_MEMBER, [member]
    raise ValueError("Cannot filter on empty ServiceFilter")


def get_services(connection: sqlite3.Connection, *args: ServiceFilter) -> list[Service]:
    """Return the records matching any of the given filters, or all of them.

    Results are ordered by member and then by service name.
    """
    clauses = []
    params: list[str] = []
    for service_filter in args:
        clause, values = _clause(service_filter)
        clauses.append(clause)
        params.extend(values)

    query = _SELECT
    if clauses:
        query += " WHERE " + " OR ".join(clauses)
    query += " " + _ORDER

    rows = connection.execute(query, params).fetchall()
    return [Service(id=row[0], member=row[1], service=row[2]) for row in rows]


def get_service(connection: sqlite3.Connection, member: str, service: str) -> Service:
    """Return the record of ``service`` on ``member``."""
    objects = get_services(connection, ServiceFilter(member=member, service=service))
    if not objects:
        raise NotFoundError("Service not found")
    if len(objects) > 1:
        raise StatusError('More than one "services" entry matches')
    return objects[0]


def get_service_id(connection: sqlite3.Connection, member: str, service: str) -> int:
    """Return the row id of ``service`` on ``member``."""
    row = connection.execute(_ID, (member, service)).fetchone()
    if row is None:
        raise NotFoundError("Service not found")
    return row[0]


def service_exists(connection: sqlite3.Connection, member: str, service: str) -> bool:
    """Tell whether ``service`` is recorded on ``member``."""
    try:
        get_service_id(connection, member, service)
    except NotFoundError:
        return False
    return True


def create_service(connection: sqlite3.Connection, item: Service) -> int:
    """Insert ``item`` and return its new row id; an existing record is a conflict."""
    if service_exists(connection, item.member, item.service):
        raise ConflictError('This "services" entry already exists')
    try:
        cursor = connection.execute(_CREATE, (item.member, item.service))
    except sqlite3.DatabaseError as err:
        raise StatusError(f'Failed to create "services" entry: {err}') from err
    return cursor.lastrowid


def delete_service(connection: sqlite3.Connection, member: str, service: str) -> None:
    """Delete the one record of ``service`` on ``member``."""
    cursor = connection.execute(_DELETE_BY_MEMBER_AND_SERVICE, (member, service))
    if cursor.rowcount == 0:
        raise NotFoundError("Service not found")
    if cursor.rowcount > 1:
        raise StatusError(f"Query deleted {cursor.rowcount} Service rows instead of 1")


def delete_services(connection: sqlite3.Connection, member: str) -> None:
    """Delete every service record of ``member``."""
    connection.execute(_DELETE_BY_MEMBER, (member,))


def update_service(
    connection: sqlite3.Connection, member: str, service: str, item: Service
) -> None:
    """Replace the record of ``service`` on ``member`` by the member and service of ``item``."""
    row_id = get_service_id(connection, member, service)
    try:
        cursor = connection.execute(_UPDATE, (item.member, item.service, row_id))
    except sqlite3.DatabaseError as err:
        raise StatusError(f'Update "services" entry failed: {err}') from err
    if cursor.rowcount != 1:
        raise StatusError(f"Query updated {cursor.rowcount} rows instead of 1")