"""Shared constants, bootstrap parameters, paths and error types."""

from __future__ import annotations

import os
from dataclasses import dataclass
from http import HTTPStatus
from typing import Iterable, Mapping, Optional

VERSION = "0.1"

MIN_OSD_SIZE = 2147483648  # 2 GiB
CLIENT_CONFIG_GLOBAL_HOST = "*"
BOOTSTRAP_PORT = 7443

LOOP_SPEC_ID = "loop,"
DEVICE_PATH_PREFIX = "/dev/disk/by-id/"
CLI_FORCE_PROMPT = (
    "If you understand the *RISK* and you're *ABSOLUTELY CERTAIN* that is what "
    "you want, pass --yes-i-really-mean-it."
)

_BOOTSTRAP_KEYS = ("MonIp", "PublicNet", "ClusterNet")


class StatusError(Exception):
    """An error carrying an HTTP-like status code."""

    status: int = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        if status is not None:
            self.status = status


class NotFoundError(StatusError):
    """The requested record does not exist."""

    status = HTTPStatus.NOT_FOUND


class ConflictError(StatusError):
    """The record to be created already exists."""

    status = HTTPStatus.CONFLICT


@dataclass
class BootstrapConfig:
    """Network parameters used when bootstrapping a cluster."""

    mon_ip: str = ""
    public_net: str = ""
    cluster_net: str = ""


def encode_bootstrap_config(data: BootstrapConfig) -> dict[str, str]:
    """Turn bootstrap parameters into the string map handed to the daemon."""
    return {
        "MonIp": data.mon_ip,
        "PublicNet": data.public_net,
        "ClusterNet": data.cluster_net,
    }


def decode_bootstrap_config(mapping: Mapping[str, str]) -> BootstrapConfig:
    """Read bootstrap parameters from a string map; missing keys become empty."""
    mon_ip, public_net, cluster_net = (mapping.get(key, "") for key in _BOOTSTRAP_KEYS)
    return BootstrapConfig(mon_ip=mon_ip, public_net=public_net, cluster_net=cluster_net)


@dataclass(frozen=True)
class PathConst:
    """Locations of the configuration, runtime, data and log directories."""

    conf_path: str
    run_path: str
    data_path: str
    log_path: str


def get_path_const() -> PathConst:
    """Build the directory layout from the SNAP_DATA and SNAP_COMMON variables."""
    snap_data = os.environ.get("SNAP_DATA", "")
    snap_common = os.environ.get("SNAP_COMMON", "")
    return PathConst(
        conf_path=os.path.join(snap_data, "conf"),
        run_path=os.path.join(snap_data, "run"),
        data_path=os.path.join(snap_common, "data"),
        log_path=os.path.join(snap_common, "logs"),
    )


def get_path_file_mode() -> dict[str, int]:
    """Map each directory of the layout to the permission bits it should have."""
    paths = get_path_const()
    return {
        paths.conf_path: 0o750,
        paths.run_path: 0o700,
        paths.data_path: 0o700,
        paths.log_path: 0o700,
    }


def is_subset(subset: Iterable[str], superset: Iterable[str]) -> bool:
    """Tell whether every key of ``subset`` is present in ``superset``."""
    members = superset if isinstance(superset, (set, frozenset, dict)) else set(superset)
    return all(key in members for key in subset)