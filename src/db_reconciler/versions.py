"""Semantic version predicates for Postgres and extension versions.

Ranges use npm syntax (``0.2.x``, ``>=0.3 <0.6``, ``0.2 || 0.3``) and are
evaluated with ``semantic_version.NpmSpec``.

Example:
    >>> get_version_status("0.1.0", "0.2.x")
    <VersionStatus.BELOW: 'below'>
    >>> get_version_status("0.2.1", "0.2.x")
    <VersionStatus.IN_RANGE: 'in range'>
    >>> get_version_status("0.0.0", "0.2.x")
    <VersionStatus.NIGHTLY: 'nightly'>
"""

from enum import Enum

from semantic_version import NpmSpec, Version
from semantic_version.base import AllOf, AnyOf, Range

NIGHTLY_VERSION = Version("0.0.0")

# Operators whose target is a lower bound
_LOWER_BOUNDS = {Range.OP_GT, Range.OP_GTE, Range.OP_EQ}


class VersionStatus(str, Enum):
    NIGHTLY = "nightly"
    IN_RANGE = "in range"
    BELOW = "below"
    ABOVE = "above"


def parse_version(value: str | Version) -> Version:
    """Parse a possibly partial version (``"14.5"`` -> ``14.5.0``)."""
    if isinstance(value, Version):
        return value
    return Version.coerce(value.strip())


def is_nightly(version: str | Version) -> bool:
    return parse_version(version) == NIGHTLY_VERSION


def is_in_range(version: str | Version, version_range: str) -> bool:
    return parse_version(version) in NpmSpec(version_range)


def _is_below(version: Version, clause) -> bool:
    if isinstance(clause, Range):
        if clause.operator == Range.OP_GT:
            return version <= clause.target
        if clause.operator in _LOWER_BOUNDS:
            return version < clause.target
        return False
    if isinstance(clause, AllOf):
        return any(_is_below(version, sub) for sub in clause.clauses)
    if isinstance(clause, AnyOf):
        return all(_is_below(version, sub) for sub in clause.clauses)
    return False


def is_below_range(version: str | Version, version_range: str) -> bool:
    """True if *version* is lower than every version the range accepts."""
    version = parse_version(version)
    if version in NpmSpec(version_range):
        return False
    return _is_below(version, NpmSpec(version_range).clause)


def is_above_range(version: str | Version, version_range: str) -> bool:
    version = parse_version(version)
    return version not in NpmSpec(version_range) and not is_below_range(version, version_range)


def get_version_status(version: str | Version, version_range: str) -> VersionStatus:
    """Classify *version* against *version_range*; nightly is checked first."""
    version = parse_version(version)
    if version == NIGHTLY_VERSION:
        return VersionStatus.NIGHTLY
    if version in NpmSpec(version_range):
        return VersionStatus.IN_RANGE
    if is_below_range(version, version_range):
        return VersionStatus.BELOW
    return VersionStatus.ABOVE
