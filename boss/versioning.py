"""
BOSS Aggregator - Version Parsing, Delta Classification and Arithmetic

This module holds the version primitives shared by every part of the fleet
version engine: the bump level currency, service tiers, release-tag parsing,
the version-delta "floor" signal and the arithmetic that advances the fleet
version.

🏗️ Building Blocks:
    - BumpLevel: Totally ordered bump currency (NONE < PATCH < MINOR < MAJOR)
    - Tier: Fixed service importance classification (1=Critical .. 3=Supporting)
    - SemVer: Release tag parser tolerant of prefixes and pre-release suffixes
    - Version Delta: Highest-order differing component between two tags
    - Version Arithmetic: Applies a bump level to a (major, minor, patch) triple

🔧 Parsing Rules:
    - A leading non-numeric marker ("v", "release-") is stripped
    - The leading `\\d+.\\d+.\\d+` triple is extracted
    - Pre-release and build suffixes ("-rc.1", "+build.7") are ignored
    - Unparsable tags yield None instead of raising

Authors: BOSS Platform Team
Version: 1.0.0
"""

import re
from enum import IntEnum
from typing import Optional, Tuple

VersionTriple = Tuple[int, int, int]

# Leading marker characters, then the first major.minor.patch triple
TAG_RE = re.compile(r"^\s*[^\d\s]*(?P<major>\d+)\.(?P<minor>\d+)\.(?P<patch>\d+)")


class BumpLevel(IntEnum):
    """Bump levels, ordered so that combination is always max()."""

    NONE = 0
    PATCH = 1
    MINOR = 2
    MAJOR = 3

    @property
    def label(self) -> str:
        return self.name.lower()

    @classmethod
    def from_label(cls, value: str) -> "BumpLevel":
        try:
            return cls[str(value).strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown bump type: {value!r}") from None


class Tier(IntEnum):
    CRITICAL = 1
    IMPORTANT = 2
    SUPPORTING = 3


class SemVer:
    """
    Release tag container reduced to the numeric core used for fleet decisions.

    Only the (major, minor, patch) triple takes part in comparisons; the
    original tag string is kept for justification text and logging.

    Example:
        ```python
        v = SemVer.parse("v1.4.2-rc.1")
        v.triple      # (1, 4, 2)
        v.original    # "v1.4.2-rc.1"
        SemVer.parse("latest")  # None
        ```
    """

    def __init__(self, major: int, minor: int, patch: int, original: str) -> None:
        self.major = major
        self.minor = minor
        self.patch = patch
        self.original = original

    @property
    def triple(self) -> VersionTriple:
        return (self.major, self.minor, self.patch)

    @staticmethod
    def parse(tag: Optional[str]) -> Optional["SemVer"]:
        if not tag or not isinstance(tag, str):
            return None
        m = TAG_RE.match(tag)
        if not m:
            return None
        return SemVer(int(m.group("major")), int(m.group("minor")), int(m.group("patch")), tag)

    def __repr__(self) -> str:
        return f"SemVer({self.major}, {self.minor}, {self.patch}, {self.original!r})"


def parse_version_tag(tag: Optional[str]) -> Optional[VersionTriple]:
    """Parse a release tag into a (major, minor, patch) triple, or None."""
    parsed = SemVer.parse(tag)
    return parsed.triple if parsed is not None else None


def classify_version_delta(old_tag: Optional[str], new_tag: Optional[str]) -> BumpLevel:
    """
    Classify the change between two release tags as a bump level.

    The first component (major, then minor, then patch) where the new tag is
    greater than the old one decides the level. A component that went down
    stops the comparison with NONE, so a rollback never reads as a bump of a
    lower-order component. Absent or unparsable tags yield NONE.

    Args:
        old_tag (Optional[str]): Tag recorded by the previous run
        new_tag (Optional[str]): Tag freshly fetched from the release source

    Returns:
        BumpLevel: MAJOR, MINOR, PATCH or NONE

    Example:
        ```python
        classify_version_delta("v1.2.3", "v2.0.0")   # BumpLevel.MAJOR
        classify_version_delta("v1.2.3", "v1.2.4")   # BumpLevel.PATCH
        classify_version_delta("v1.2.3", "no-release")  # BumpLevel.NONE
        ```
    """
    old = parse_version_tag(old_tag)
    new = parse_version_tag(new_tag)
    if old is None or new is None:
        return BumpLevel.NONE

    for level, old_part, new_part in zip(
        (BumpLevel.MAJOR, BumpLevel.MINOR, BumpLevel.PATCH), old, new
    ):
        if new_part > old_part:
            return level
        if new_part < old_part:
            return BumpLevel.NONE
    return BumpLevel.NONE


def apply_bump(version: VersionTriple, bump: BumpLevel) -> VersionTriple:
    major, minor, patch = version
    if bump == BumpLevel.MAJOR:
        return (major + 1, 0, 0)
    if bump == BumpLevel.MINOR:
        return (major, minor + 1, 0)
    if bump == BumpLevel.PATCH:
        return (major, minor, patch + 1)
    return (major, minor, patch)


def format_version(version: VersionTriple) -> str:
    return "{}.{}.{}".format(*version)
