"""Firmware version numbers taken from a firmware image header."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .log import VerboseLevel, output


@dataclass
class FwVersion:
    """Firmware version; all zeros means no usable firmware was found."""

    major: int = 0
    minor: int = 0
    rev_control: int = 0
    config_ver: int = 0
    silicon_id: int = 0


def fw_version_from_bin_header(header: Any) -> FwVersion:
    """Build a version from a firmware image header.

    ``header`` provides ``fw_major_version``, ``fw_minor_version``, the
    4-byte ``fw_rev_control`` and 2-byte ``config_version`` (both most
    significant byte first) and the 2-byte ``silicon_id`` (least
    significant byte first).
    """
    output(VerboseLevel.DEBUG, "fw_version_from_bin_header: Starting.\n")
    if header is None:
        raise ValueError("no firmware image header given")
    return FwVersion(
        major=int(header.fw_major_version),
        minor=int(header.fw_minor_version),
        rev_control=int.from_bytes(bytes(header.fw_rev_control[:4]), "big"),
        config_ver=int.from_bytes(bytes(header.config_version[:2]), "big"),
        silicon_id=int.from_bytes(bytes(header.silicon_id[:2]), "little"),
    )