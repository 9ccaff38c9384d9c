"""Schema extensions for the cluster database."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass, field
from typing import Callable

_MEMBERS_TABLE = "internal_cluster_members"


@dataclass(frozen=True)
class _Column:
    name: str
    kind: str
    required: bool = True

    def render(self) -> str:
        return f"{self.name} {self.kind}" + (" NOT NULL" if self.required else "")


@dataclass(frozen=True)
class _Table:
    name: str
    columns: tuple[_Column, ...]
    unique: tuple[tuple[str, ...], ...] = ()
    member_reference: bool = False
    extra: tuple[str, ...] = field(default=())

    def create(self) -> str:
        parts = ["id INTEGER PRIMARY KEY AUTOINCREMENT NOT NULL"]
        parts.extend(column.render() for column in self.columns)
        if self.member_reference:
            parts.append(
                f'FOREIGN KEY (member_id) REFERENCES "{_MEMBERS_TABLE}" (id) ON DELETE CASCADE'
            )
        parts.extend(f"UNIQUE({', '.join(group)})" for group in self.unique)
        body = ",\n  ".join(parts)
        return f"CREATE TABLE {self.name} (\n  {body}\n);"


_MEMBER = _Column("member_id", "INTEGER")
_OPTIONAL_MEMBER = _Column("member_id", "INTEGER", required=False)
_KEY = _Column("key", "TEXT")
_VALUE = _Column("value", "TEXT")
_PATH = _Column("path", "TEXT")

_CONFIG = _Table("config", (_KEY, _VALUE), unique=(("key",),))
_LEGACY_DISKS = _Table(
    "disks",
    (_MEMBER, _PATH, _Column("osd", "INTEGER")),
    unique=(("member_id", "path"), ("osd",)),
    member_reference=True,
)
_SERVICES = _Table(
    "services",
    (_MEMBER, _Column("service", "TEXT")),
    unique=(("member_id", "service"),),
    member_reference=True,
)
_CLIENT_CONFIG = _Table(
    "client_config",
    (_OPTIONAL_MEMBER, _KEY, _VALUE),
    member_reference=True,
)
_REBUILT_DISKS = _Table(
    "disks2",
    (_MEMBER, _PATH),
    unique=(("member_id", "path"),),
    member_reference=True,
)


def _run(connection: sqlite3.Connection, statements: list[str]) -> None:
    connection.executescript("\n".join(statements))


def schema_update_1(connection: sqlite3.Connection) -> None:
    """Create the config, disks and services tables."""
    _run(connection, [table.create() for table in (_CONFIG, _LEGACY_DISKS, _SERVICES)])


def schema_update_2(connection: sqlite3.Connection) -> None:
    """Create the client_config table and its uniqueness index."""
    _run(
        connection,
        [
            _CLIENT_CONFIG.create(),
            "CREATE UNIQUE INDEX cc_index ON client_config(coalesce(member_id, 0), key);",
        ],
    )


def schema_update_3(connection: sqlite3.Connection) -> None:
    """Rebuild the disks table keyed by OSD number, dropping the osd column."""
    new_name = _REBUILT_DISKS.name
    _run(
        connection,
        [
            _REBUILT_DISKS.create(),
            f"INSERT INTO {new_name} (id, member_id, path) SELECT osd, member_id, path FROM disks;",
            "DROP TABLE disks;",
            f"ALTER TABLE {new_name} RENAME TO disks;",
        ],
    )


SCHEMA_EXTENSIONS: dict[int, Callable[[sqlite3.Connection], None]] = {
    1: schema_update_1,
    2: schema_update_2,
    3: schema_update_3,
}


def apply_schema_extensions(connection: sqlite3.Connection, applied: int) -> int:
    """Apply every extension newer than ``applied``, in order; return the new version."""
    version = applied
    for number in sorted(SCHEMA_EXTENSIONS):
        if number > version:
            SCHEMA_EXTENSIONS[number](connection)
            version = number
    return version