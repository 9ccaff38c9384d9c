"""Removal of a member node from the cluster."""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any, Protocol, Sequence

logger = logging.getLogger(__name__)


class _ClusterClient(Protocol):
    def get_cluster_members(self) -> Sequence[str]: ...

    def get_disks(self) -> Sequence[Any]: ...

    def get_services(self) -> Sequence[Any]: ...

    def delete_service(self, location: str, service: str) -> None: ...

    def delete_cluster_member(self, name: str, force: bool) -> None: ...


class RemovalError(Exception):
    """A node cannot be removed safely."""


def remove_node(client: _ClusterClient, node: str, force: bool) -> None:
    """Remove ``node``: check it is safe, drop its services, then the member."""
    logger.debug("Removing cluster member %s, force: %s", node, force)

    if not force:
        check_prerequisites(client, node)

    try:
        delete_node_services(client, node)
    except Exception as err:
        if not force:
            raise
        logger.warning("Error deleting services from node %s: %s", node, err)

    client.delete_cluster_member(node, force)
    logger.debug("Deleted cluster member %s", node)


def check_prerequisites(client: _ClusterClient, name: str) -> None:
    """Raise RemovalError unless ``name`` exists, has no disks and is not needed for quorum."""
    try:
        members = client.get_cluster_members()
    except Exception as err:
        raise RemovalError(f"Error getting cluster members: {err}") from err
    if name not in members:
        raise RemovalError(f"Node {name} not found")

    try:
        disks = client.get_disks()
    except Exception as err:
        raise RemovalError(f"Error getting disks: {err}") from err
    has_disks = any(disk.location == name for disk in disks)
    logger.debug("Disks: %s, found: %s", disks, has_disks)
    if has_disks:
        raise RemovalError(f"Node {name} still has disks configured, remove before proceeding")

    try:
        services = client.get_services()
    except Exception as err:
        raise RemovalError(f"Error getting services: {err}") from err
    counts = Counter(service.service for service in services if service.location != name)
    logger.debug("Services: %s, counts: %s", services, counts)
    if counts["mon"] < 3 or counts["mgr"] < 1 or counts["mds"] < 1:
        raise RemovalError(f"Need at least 3 mon, 1 mds, and 1 mgr besides {name}")


def delete_node_services(client: _ClusterClient, name: str) -> None:
    """Delete every service placed on ``name``; individual failures are only logged."""
    for service in client.get_services():
        if service.location != name:
            continue
        logger.debug("Deleting service %s on %s", service.service, service.location)
        try:
            client.delete_service(service.location, service.service)
        except Exception as err:
            logger.warning(
                "Fault deleting service %s on node %s: %s", service.service, service.location, err
            )