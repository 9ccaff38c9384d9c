"""Queries over client configuration, combining global and per-host records."""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from typing import Iterable

from microceph.client_config_items import (
    ClientConfigItem,
    ClientConfigItemFilter,
    delete_client_config_item,
    delete_client_config_items,
    get_client_config_items,
)
from microceph.common import CLIENT_CONFIG_GLOBAL_HOST, StatusError

logger = logging.getLogger(__name__)

_GLOBAL_ALL = (
    "SELECT client_config.id, client_config.key, client_config.value FROM client_config"
    " WHERE client_config.member_id IS NULL"
    " ORDER BY client_config.key"
)
_GLOBAL_BY_KEY = (
    "SELECT client_config.id, client_config.key, client_config.value FROM client_config"
    " WHERE ( client_config.key = ? AND client_config.member_id IS NULL )"
)
_GLOBAL_CREATE_OR_UPDATE = (
    "INSERT OR REPLACE INTO client_config (member_id, key, value) VALUES (NULL, ?, ?)"
)
_HOST_CREATE_OR_UPDATE = (
    "INSERT OR REPLACE INTO client_config (member_id, key, value)"
    " VALUES ((SELECT internal_cluster_members.id FROM internal_cluster_members"
    " WHERE internal_cluster_members.name = ?), ?, ?)"
)


@dataclass
class ClientConfig:
    """A client configuration entry as presented to API users."""

    key: str = ""
    value: str = ""
    host: str = ""
    wait: bool = False


def to_client_configs(items: Iterable[ClientConfigItem]) -> list[ClientConfig]:
    """Convert database records to API entries; records without a host become global."""
    return [
        ClientConfig(
            key=item.key,
            value=item.value,
            host=item.host if item.host else CLIENT_CONFIG_GLOBAL_HOST,
        )
        for item in items
    ]


def squash_client_configs(
    global_configs: Iterable[ClientConfigItem], host_configs: Iterable[ClientConfigItem]
) -> list[ClientConfigItem]:
    """Overlay host records on global ones, giving one record per key."""
    merged: dict[str, ClientConfigItem] = {item.key: item for item in global_configs}
    logger.debug("Map after global keys: %s", merged)
    merged.update((item.key, item) for item in host_configs)
    logger.debug("Map after host keys: %s", merged)
    return list(merged.values())


def _create_or_update(connection: sqlite3.Connection, item: ClientConfigItem) -> None:
    if item.host == CLIENT_CONFIG_GLOBAL_HOST:
        connection.execute(_GLOBAL_CREATE_OR_UPDATE, (item.key, item.value))
    else:
        connection.execute(_HOST_CREATE_OR_UPDATE, (item.host, item.key, item.value))


class ClientConfigQuery:
    """Reads and writes client configuration in the cluster database."""

    def add_new(self, connection: sqlite3.Connection, key: str, value: str, host: str) -> None:
        """Set ``key`` to ``value`` for ``host`` (``*`` for global), replacing any old value."""
        item = ClientConfigItem(host=host, key=key, value=value)
        try:
            with connection:
                _create_or_update(connection, item)
        except sqlite3.DatabaseError as err:
            raise StatusError(f"failed to add client config: {err}") from err

    def get_all(self, connection: sqlite3.Connection) -> list[ClientConfigItem]:
        """Return every global record followed by every host record."""
        try:
            global_configs = self.get_global_configs(connection, "")
        except sqlite3.DatabaseError as err:
            raise StatusError(f"failed to fetch global client configs: {err}") from err
        logger.debug("Global configs: %s", global_configs)

        try:
            host_configs = self.get_all_for_filter(connection)
        except sqlite3.DatabaseError as err:
            raise StatusError(f"failed to fetch host configured client configs: {err}") from err
        logger.debug("Host configs: %s", host_configs)

        return global_configs + host_configs

    def get_all_for_key(self, connection: sqlite3.Connection, key: str) -> list[ClientConfigItem]:
        """Return the global record for ``key`` followed by its host records."""
        try:
            global_configs = self.get_global_configs(connection, key)
        except sqlite3.DatabaseError as err:
            raise StatusError(
                f"failed to fetch global client configs, key {key}: {err}"
            ) from err

        try:
            host_configs = self.get_all_for_filter(connection, ClientConfigItemFilter(key=key))
        except sqlite3.DatabaseError as err:
            raise StatusError(
                f"failed to fetch host configured client configs, key {key}: {err}"
            ) from err

        return global_configs + host_configs

    def get_all_for_host(
        self, connection: sqlite3.Connection, host: str
    ) -> list[ClientConfigItem]:
        """Return the records that apply to ``host``: its own, else the global ones."""
        try:
            global_configs = self.get_global_configs(connection, "")
        except sqlite3.DatabaseError as err:
            raise StatusError(
                f"failed to fetch global client configs, host {host}: {err}"
            ) from err

        try:
            host_configs = self.get_all_for_filter(connection, ClientConfigItemFilter(host=host))
        except sqlite3.DatabaseError as err:
            raise StatusError(f"failed to fetch host client configs, host {host}: {err}") from err

        return squash_client_configs(global_configs, host_configs)

    def get_all_for_key_and_host(
        self, connection: sqlite3.Connection, key: str, host: str
    ) -> list[ClientConfigItem]:
        """Return the host record of ``key`` on ``host``, if any."""
        return self.get_all_for_filter(connection, ClientConfigItemFilter(host=host, key=key))

    def get_all_for_filter(
        self, connection: sqlite3.Connection, *args: ClientConfigItemFilter
    ) -> list[ClientConfigItem]:
        """Return the host records matching any of the filters, or all host records."""
        with connection:
            return get_client_config_items(connection, *args)

    def get_global_configs(
        self, connection: sqlite3.Connection, key: str
    ) -> list[ClientConfigItem]:
        """Return the global records, or only the one for ``key`` when it is not empty."""
        with connection:
            if key:
                rows = connection.execute(_GLOBAL_BY_KEY, (key,)).fetchall()
            else:
                rows = connection.execute(_GLOBAL_ALL).fetchall()
        return [
            ClientConfigItem(id=row[0], key=row[1], value=row[2], host=CLIENT_CONFIG_GLOBAL_HOST)
            for row in rows
        ]

    def remove_all_for_key(self, connection: sqlite3.Connection, key: str) -> None:
        """Delete every record of ``key``, global and per host."""
        try:
            with connection:
                delete_client_config_items(connection, key)
        except (sqlite3.DatabaseError, StatusError) as err:
            raise StatusError(f"failed to clean existing keys {key}: {err}") from err

    def remove_one_for_key_and_host(
        self, connection: sqlite3.Connection, key: str, host: str
    ) -> None:
        """Delete the record of ``key`` on ``host``."""
        try:
            with connection:
                delete_client_config_item(connection, key, host)
        except (sqlite3.DatabaseError, StatusError) as err:
            raise StatusError(f"failed to clean existing keys {key}: {err}") from err