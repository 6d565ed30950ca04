"""Platform version parsing."""

from __future__ import annotations

import re
from typing import NamedTuple


class VersionInfo(NamedTuple):
    major: int
    minor: int
    micro: int


_VERSION_RE = re.compile(r"^v?(\d+)(?:\.(\d+))?(?:\.(\d+))?")


def parse_version(version: str) -> VersionInfo:
    """Parse ``v4.2``, ``4.10.3`` or ``4.6.0-rc.1`` style strings.

    Raises:
        ValueError: If the string does not start with a numeric version
    """
    match = _VERSION_RE.match(version.strip())
    if match is None:
        raise ValueError(f"Invalid version: {version!r}")
    major, minor, micro = match.groups()
    return VersionInfo(int(major), int(minor or 0), int(micro or 0))


def is_at_least(version: str | None, minimum: str) -> bool:
    """Compare a platform version against a minimum; unknown counts as supported."""
    if not version:
        return True
    return parse_version(version) >= parse_version(minimum)


def major_version(version: str) -> str:
    """Return the major component of a product version (``7.13.1`` -> ``7``)."""
    return str(parse_version(version).major)
