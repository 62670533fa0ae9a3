"""
BOSS Aggregator - Bump Decision Matrix

Tier x label decision matrix, tier weighting, the per-service combiner and the
fleet-wide fold that picks the winning bump and its justification.

🎯 Decision Flow (per service):
    1. Version delta between stored and fetched release tag (floor signal)
    2. Highest label bump over labels merged since the anchor (business signal)
    3. rawBump = max(floor, business); the version delta is credited on ties
    4. serviceBump = tier weighting of rawBump

📊 Fleet Flow:
    Services are folded in configuration order. A service only replaces the
    current winner when its bump is strictly higher, so the earliest service
    reaching the top level keeps the justification.
"""

from dataclasses import dataclass
from functools import reduce
from typing import Iterable, Optional, Tuple

from .versioning import BumpLevel, Tier

BREAKING_LABELS = frozenset({"breaking-change"})
FEATURE_LABELS = frozenset({"feature", "enhancement"})
FIX_LABELS = frozenset({"bugfix"})

DRIVER_VERSION_DELTA = "version-delta"
DRIVER_LABEL = "label"

NO_CHANGE_REASON = "no services changed this cycle"


def classify_label(tier: int, label: str) -> BumpLevel:
    """Map one (tier, label) pair through the decision matrix."""
    if tier == Tier.CRITICAL and label in BREAKING_LABELS:
        return BumpLevel.MAJOR
    if tier in (Tier.CRITICAL, Tier.IMPORTANT):
        if label in FEATURE_LABELS:
            return BumpLevel.MINOR
        if label in FIX_LABELS:
            return BumpLevel.PATCH
        return BumpLevel.NONE
    if tier == Tier.SUPPORTING and label:
        return BumpLevel.PATCH
    return BumpLevel.NONE


def pick_label_bump(tier: int, labels: Iterable[str]) -> Tuple[BumpLevel, Optional[str]]:
    """
    Reduce a label set to its highest bump and the label that produced it.

    Labels are evaluated in sorted order and a later label must be strictly
    higher to take over, so ties go to the lexicographically-first label.
    """
    best = BumpLevel.NONE
    winning_label: Optional[str] = None
    for label in sorted(set(labels)):
        bump = classify_label(tier, label)
        if bump > best:
            best = bump
            winning_label = label
    return best, winning_label


def apply_tier_weighting(tier: int, bump: BumpLevel) -> BumpLevel:
    if tier == Tier.CRITICAL:
        return bump
    if tier == Tier.IMPORTANT:
        return min(bump, BumpLevel.MINOR)
    return BumpLevel.PATCH if bump > BumpLevel.NONE else BumpLevel.NONE


@dataclass(frozen=True)
class ServiceDecision:
    """Outcome of the combiner for a single service."""

    name: str
    tier: int
    version_bump: BumpLevel
    label_bump: BumpLevel
    raw_bump: BumpLevel
    bump: BumpLevel
    driver: Optional[str] = None
    old_tag: Optional[str] = None
    new_tag: Optional[str] = None
    winning_label: Optional[str] = None

    @property
    def reason(self) -> str:
        prefix = f"{self.name} (Tier {self.tier})"
        if self.driver == DRIVER_VERSION_DELTA:
            return f"{prefix} version delta: {self.old_tag} -> {self.new_tag}"
        if self.driver == DRIVER_LABEL:
            return f'{prefix} label: "{self.winning_label}"'
        return f"{prefix} no change"


def combine_service_bump(
    name: str,
    tier: int,
    old_tag: Optional[str],
    new_tag: Optional[str],
    version_bump: BumpLevel,
    label_bump: BumpLevel,
    winning_label: Optional[str] = None,
) -> ServiceDecision:
    raw = max(version_bump, label_bump)
    driver: Optional[str] = None
    if raw > BumpLevel.NONE:
        driver = DRIVER_VERSION_DELTA if version_bump >= label_bump else DRIVER_LABEL
    return ServiceDecision(
        name=name,
        tier=tier,
        version_bump=version_bump,
        label_bump=label_bump,
        raw_bump=raw,
        bump=apply_tier_weighting(tier, raw),
        driver=driver,
        old_tag=old_tag,
        new_tag=new_tag,
        winning_label=winning_label if driver == DRIVER_LABEL else None,
    )


def skipped_service(name: str, tier: int) -> ServiceDecision:
    """Decision for a service without a usable release signal."""
    return ServiceDecision(
        name=name,
        tier=tier,
        version_bump=BumpLevel.NONE,
        label_bump=BumpLevel.NONE,
        raw_bump=BumpLevel.NONE,
        bump=BumpLevel.NONE,
    )


@dataclass(frozen=True)
class FleetDecision:
    bump: BumpLevel = BumpLevel.NONE
    reason: str = NO_CHANGE_REASON
    winner: Optional[str] = None


def _fold_step(current: FleetDecision, decision: ServiceDecision) -> FleetDecision:
    if decision.bump > current.bump:
        return FleetDecision(bump=decision.bump, reason=decision.reason, winner=decision.name)
    return current


def aggregate_fleet(decisions: Iterable[ServiceDecision]) -> FleetDecision:
    """Fold per-service decisions, in order, into the fleet-wide winner."""
    return reduce(_fold_step, decisions, FleetDecision())
