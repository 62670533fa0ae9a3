"""
BOSS Aggregator - Fleet Version Engine

Entry point of the bump-decision engine. Given the ordered service list, the
previous fleet state and a GitHub client, it evaluates every service one at a
time and returns the next fleet state together with the per-service trace.
It reads no environment and writes no files; persisting the returned state is
the caller's job.

🚀 Run Sequence:
    1. Priority override check across all services (first marker wins)
    2. If triggered: forced MAJOR bump, best-effort manifest, no combination
    3. Otherwise, per service in order:
         release tag -> version delta -> PR labels -> combine -> tier weighting
    4. Fold the service decisions into the fleet winner
    5. Advance the version and the anchor (the anchor moves even on NONE)
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .config import AggregatorSettings, Service
from .decision import (
    FleetDecision,
    ServiceDecision,
    aggregate_fleet,
    combine_service_bump,
    pick_label_bump,
    skipped_service,
)
from .github_client import GitHubClient
from .signals import OverrideHit, collect_pull_request_labels, detect_priority_override, fetch_latest_release
from .state import FETCH_ERROR, NO_RELEASE, UNKNOWN, FleetState, utcnow
from .versioning import BumpLevel, apply_bump, classify_version_delta, format_version

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AggregationReport:
    state: FleetState
    previous: FleetState
    fleet: FleetDecision
    decisions: Tuple[ServiceDecision, ...] = ()
    override: Optional[OverrideHit] = None

    @property
    def changed(self) -> bool:
        return self.state.boss_version != self.previous.boss_version


async def _best_effort_manifest(
    client: GitHubClient, services: Sequence[Service], stored: Dict[str, str]
) -> Dict[str, str]:
    manifest: Dict[str, str] = {}
    for service in services:
        outcome = await fetch_latest_release(client, service.repo)
        if outcome.ok and outcome.value:
            manifest[service.name] = outcome.value
        else:
            manifest[service.name] = stored.get(service.name) or UNKNOWN
    return manifest


async def evaluate_service(
    client: GitHubClient,
    service: Service,
    stored_tag: Optional[str],
    anchor: Optional[datetime],
    settings: AggregatorSettings,
) -> Tuple[ServiceDecision, str]:
    """Decision and manifest entry for one service."""
    logger.info("──── Checking: %s (Tier %s) ────", service.name, service.tier)

    release = await fetch_latest_release(client, service.repo)
    if not release.ok:
        logger.warning("  Could not fetch releases for %s: %s", service.name, release.error)
        return skipped_service(service.name, service.tier), stored_tag or FETCH_ERROR
    if release.value is None:
        logger.info("  No releases found, skipping")
        return skipped_service(service.name, service.tier), NO_RELEASE

    new_tag = release.value
    logger.info("  Latest release: %s (previous: %s)", new_tag, stored_tag or "-")
    version_bump = classify_version_delta(stored_tag, new_tag)

    scan = await collect_pull_request_labels(
        client, service.repo, anchor, base=settings.target_branch, page_size=settings.page_size
    )
    if not scan.ok:
        logger.warning("  Could not fetch PRs for %s: %s", service.name, scan.error)
    labels = scan.value.labels
    logger.info(
        "  Merged PRs since anchor: %s, labels: %s",
        len(scan.value.pull_requests),
        ", ".join(labels) if labels else "(none)",
    )

    label_bump, winning_label = pick_label_bump(service.tier, labels)
    decision = combine_service_bump(
        service.name, service.tier, stored_tag, new_tag, version_bump, label_bump, winning_label
    )
    logger.info(
        "  Decision: %s (delta=%s, labels=%s, raw=%s)",
        decision.bump.name,
        version_bump.name,
        label_bump.name,
        decision.raw_bump.name,
    )
    return decision, new_tag


def _next_state(
    current: FleetState, bump: BumpLevel, reason: str, manifest: Dict[str, str], now: datetime
) -> FleetState:
    next_version = format_version(apply_bump(current.version, bump))
    return FleetState(
        boss_version=next_version,
        previous_version=current.boss_version,
        bump_type=bump.label,
        bump_reason=reason,
        last_updated=now,
        last_aggregated_at=now,
        services=manifest,
    )


async def run_aggregation(
    services: Sequence[Service],
    current: FleetState,
    client: GitHubClient,
    settings: Optional[AggregatorSettings] = None,
    clock: Callable[[], datetime] = utcnow,
) -> AggregationReport:
    """
    Evaluate the whole fleet and compute the next state.

    Args:
        services (Sequence[Service]): Services in evaluation order
        current (FleetState): State loaded at the start of the run
        client (GitHubClient): Release, commit and pull-request source
        settings (Optional[AggregatorSettings]): Branch, page size, marker and commit window
        clock (Callable[[], datetime]): Source of the completion timestamp

    Returns:
        AggregationReport: Next state, fleet decision and the per-service trace
    """
    settings = settings or AggregatorSettings()
    anchor = current.anchor
    logger.info("Current BOSS version: %s (anchor: %s)", current.boss_version, anchor.isoformat() if anchor else "none")

    hit = await detect_priority_override(client, services, settings.priority_marker, settings.commit_window)
    if hit is not None:
        logger.warning("Priority override in %s commit %s, forcing MAJOR", hit.service.name, hit.sha[:7])
        manifest = await _best_effort_manifest(client, services, current.services)
        fleet = FleetDecision(bump=BumpLevel.MAJOR, reason=hit.reason, winner=hit.service.name)
        state = _next_state(current, fleet.bump, fleet.reason, manifest, clock())
        return AggregationReport(state=state, previous=current, fleet=fleet, override=hit)

    decisions: List[ServiceDecision] = []
    manifest: Dict[str, str] = {}
    for service in services:
        decision, entry = await evaluate_service(
            client, service, current.services.get(service.name), anchor, settings
        )
        decisions.append(decision)
        manifest[service.name] = entry

    fleet = aggregate_fleet(decisions)
    state = _next_state(current, fleet.bump, fleet.reason, manifest, clock())
    return AggregationReport(state=state, previous=current, fleet=fleet, decisions=tuple(decisions))
