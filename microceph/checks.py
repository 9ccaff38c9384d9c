"""Validation of command-line input before it is sent to the daemon."""

from __future__ import annotations

import re

from microceph.common import BootstrapConfig
from microceph.network import is_ip_on_subnet

_INT_RE = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


def _parse_int64(text: str) -> int:
    if not _INT_RE.fullmatch(text):
        raise ValueError(f"invalid integer: {text!r}")
    number = int(text)
    if not _INT64_MIN <= number <= _INT64_MAX:
        raise ValueError(f"integer out of range: {text!r}")
    return number


def parse_osd_id(value: str) -> int:
    """Read an OSD number given either as ``<id>`` or as ``osd.<id>``."""
    try:
        return _parse_int64(value)
    except ValueError:
        pass
    if len(value) < 4 or value[:4] != "osd.":
        raise ValueError(
            f"error: osd input must be either in the form $id or osd.$id, got {value}"
        )
    try:
        return _parse_int64(value[4:])
    except ValueError:
        raise ValueError(
            f"error: osd input must be either in the form $id or osd.$id: got {value}"
        ) from None


def pre_check_bootstrap_config(data: BootstrapConfig) -> BootstrapConfig:
    """Check the mon address lies on the public network when both are given; return ``data``."""
    if data.mon_ip and data.public_net and not is_ip_on_subnet(data.mon_ip, data.public_net):
        raise ValueError(
            f"provided mon-ip {data.mon_ip} is not available on provided public network "
            f"{data.public_net}"
        )
    return data