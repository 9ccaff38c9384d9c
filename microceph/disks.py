"""Records of the Ceph disks (OSDs) on each cluster member (the ``disks`` table)."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from typing import Optional

from microceph.common import ConflictError, NotFoundError, StatusError

_SELECT = (
    "SELECT disks.id, internal_cluster_members.name AS member, disks.path"
    " FROM disks"
    " JOIN internal_cluster_members ON disks.member_id = internal_cluster_members.id"
)
_ORDER = "ORDER BY internal_cluster_members.id, disks.path"

_BY_MEMBER_AND_PATH = "( internal_cluster_members.name = ? AND disks.path = ? )"
_BY_MEMBER = "( internal_cluster_members.name = ? )"

_MEMBER_ID = (
    "(SELECT internal_cluster_members.id FROM internal_cluster_members"
    " WHERE internal_cluster_members.name = ?)"
)

_ID = (
    "SELECT disks.id FROM disks"
    " JOIN internal_cluster_members ON disks.member_id = internal_cluster_members.id"
    " WHERE internal_cluster_members.name = ? AND disks.path = ?"
)
_CREATE = f"INSERT INTO disks (member_id, path) VALUES ({_MEMBER_ID}, ?)"
_DELETE_BY_MEMBER = f"DELETE FROM disks WHERE member_id = {_MEMBER_ID}"
_DELETE_BY_MEMBER_AND_PATH = f"DELETE FROM disks WHERE member_id = {_MEMBER_ID} AND path = ?"
_UPDATE = f"UPDATE disks SET member_id = {_MEMBER_ID}, path = ? WHERE id = ?"


@dataclass
class Disk:
    """A Ceph disk on a cluster member; its id is the OSD number."""

    member: str = ""
    path: str = ""
    id: int = 0


@dataclass
class DiskFilter:
    """Selects disk records by member, or by member and path."""

    member: Optional[str] = None
    path: Optional[str] = None


def _clause(disk_filter: DiskFilter) -> tuple[str, list[str]]:
    member, path = disk_filter.member, disk_filter.path
    if member is not None and path is not None:
        return _BY_MEMBER_AND_PATH, [member, path]
    if member is not None:
        return _BY_MEMBER, [member]
    if path is None:
        raise ValueError("Cannot filter on empty DiskFilter")
    raise ValueError("No statement exists for the given Filter")


def get_disks(connection: sqlite3.Connection, *args: DiskFilter) -> list[Disk]:
    """Return the records matching any of the given filters, or all of them.

    Results are ordered by member and then by path.
    """
    clauses = []
    params: list[str] = []
    for disk_filter in args:
        clause, values = _clause(disk_filter)
        clauses.append(clause)
        params.extend(values)

    query = _SELECT
    if clauses:
        query += " WHERE " + " OR ".join(clauses)
    query += " " + _ORDER

    rows = connection.execute(query, params).fetchall()
    return [Disk(id=row[0], member=row[1], path=row[2]) for row in rows]


def get_disk(connection: sqlite3.Connection, member: str, path: str) -> Disk:
    """Return the record of the disk at ``path`` on ``member``."""
    objects = get_disks(connection, DiskFilter(member=member, path=path))
    if not objects:
        raise NotFoundError("Disk not found")
    if len(objects) > 1:
        raise StatusError('More than one "disks" entry matches')
    return objects[0]


def get_disk_id(connection: sqlite3.Connection, member: str, path: str) -> int:
    """Return the row id of the disk at ``path`` on ``member``."""
    row = connection.execute(_ID, (member, path)).fetchone()
    if row is None:
        raise NotFoundError("Disk not found")
    return row[0]


def disk_exists(connection: sqlite3.Connection, member: str, path: str) -> bool:
    """Tell whether a disk at ``path`` is recorded on ``member``."""
    try:
        get_disk_id(connection, member, path)
    except NotFoundError:
        return False
    return True


def create_disk(connection: sqlite3.Connection, item: Disk) -> int:
    """Insert ``item`` and return its new row id; an existing record is a conflict."""
    if disk_exists(connection, item.member, item.path):
        raise ConflictError('This "disks" entry already exists')
    try:
        cursor = connection.execute(_CREATE, (item.member, item.path))
    except sqlite3.DatabaseError as err:
        raise StatusError(f'Failed to create "disks" entry: {err}') from err
    return cursor.lastrowid


def delete_disk(connection: sqlite3.Connection, member: str, path: str) -> None:
    """Delete the one record of the disk at ``path`` on ``member``."""
    cursor = connection.execute(_DELETE_BY_MEMBER_AND_PATH, (member, path))
    if cursor.rowcount == 0:
        raise NotFoundError("Disk not found")
    if cursor.rowcount > 1:
        raise StatusError(f"Query deleted {cursor.rowcount} Disk rows instead of 1")


def delete_disks(connection: sqlite3.Connection, member: str) -> None:
    """Delete every disk record of ``member``."""
    connection.execute(_DELETE_BY_MEMBER, (member,))


def update_disk(connection: sqlite3.Connection, member: str, path: str, item: Disk) -> None:
    """Replace the record of the disk at ``path`` on ``member`` by the member and path of ``item``."""
    row_id = get_disk_id(connection, member, path)
    try:
        cursor = connection.execute(_UPDATE, (item.member, item.path, row_id))
    except sqlite3.DatabaseError as err:
        raise StatusError(f'Update "disks" entry failed: {err}') from err
    if cursor.rowcount != 1:
        raise StatusError(f"Query updated {cursor.rowcount} rows instead of 1")