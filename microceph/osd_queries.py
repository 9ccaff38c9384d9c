"""Queries over OSD records: counting members with disks, looking up and editing OSDs."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass

from microceph.common import NotFoundError
from microceph.disks import delete_disk, get_disks

_MEMBERS_DISK_COUNT = (
    "SELECT internal_cluster_members.name AS member, count(disks.id) AS num_disks"
    " FROM disks"
    " JOIN internal_cluster_members ON disks.member_id = internal_cluster_members.id"
    " GROUP BY internal_cluster_members.id"
)
_MEMBERS_DISK_COUNT_EXCLUDE = (
    "SELECT internal_cluster_members.name AS member, count(disks.id) AS num_disks"
    " FROM disks"
    " JOIN internal_cluster_members ON disks.member_id = internal_cluster_members.id"
    " WHERE disks.id != ?"
    " GROUP BY internal_cluster_members.id"
)
_HAVE_OSD = "SELECT count(*) FROM disks WHERE disks.id = ?"
_OSD_PATH = "SELECT disks.path FROM disks WHERE disks.id = ?"
_UPDATE_PATH = "UPDATE disks SET path = ? WHERE disks.id = ?"


@dataclass
class MemberDisk:
    """How many disks a cluster member holds."""

    member: str
    num_disks: int


@dataclass
class DiskEntry:
    """An OSD as presented to API users."""

    osd: int
    location: str
    path: str


def members_disk_count(connection: sqlite3.Connection, exclude: int) -> list[MemberDisk]:
    """Count disks per member that has any; ``exclude`` is an OSD to leave out, or -1."""
    if exclude == -1:
        rows = connection.execute(_MEMBERS_DISK_COUNT).fetchall()
    else:
        rows = connection.execute(_MEMBERS_DISK_COUNT_EXCLUDE, (exclude,)).fetchall()
    return [MemberDisk(member=row[0], num_disks=row[1]) for row in rows]


class MemberCounter:
    """Counts cluster members that hold at least one disk."""

    def count(self, connection: sqlite3.Connection) -> int:
        """Return the number of members with at least one disk."""
        with connection:
            return len(members_disk_count(connection, -1))

    def count_exclude(self, connection: sqlite3.Connection, exclude: int) -> int:
        """Return the number of members with at least one disk other than OSD ``exclude``."""
        with connection:
            return len(members_disk_count(connection, exclude))


class OSDQuery:
    """Looks up and edits OSD records."""

    def have_osd(self, connection: sqlite3.Connection, osd: int) -> bool:
        """Tell whether OSD ``osd`` is recorded."""
        with connection:
            (present,) = connection.execute(_HAVE_OSD, (osd,)).fetchone()
        return present > 0

    def path(self, connection: sqlite3.Connection, osd: int) -> str:
        """Return the device path of OSD ``osd``."""
        with connection:
            row = connection.execute(_OSD_PATH, (osd,)).fetchone()
        if row is None:
            raise NotFoundError(f'Failed to get "osdPath" objects: no OSD {osd}')
        return row[0]

    def delete(self, connection: sqlite3.Connection, osd: int, member: str) -> None:
        """Delete the record of OSD ``osd`` held by ``member``."""
        path = self.path(connection, osd)
        with connection:
            delete_disk(connection, member, path)

    def list(self, connection: sqlite3.Connection) -> list[DiskEntry]:
        """Return every OSD, ordered by member and path."""
        with connection:
            records = get_disks(connection)
        return [DiskEntry(osd=disk.id, location=disk.member, path=disk.path) for disk in records]

    def update_path(self, connection: sqlite3.Connection, osd: int, path: str) -> None:
        """Set the device path of OSD ``osd``."""
        with connection:
            connection.execute(_UPDATE_PATH, (path, osd))