"""
BOSS Aggregator - Per-Service Signal Collection

Reads the three signals the decision engine needs from the GitHub sources:
the newest release tag, the labels of pull requests merged since the anchor,
and the priority override marker in recent commits.

🔧 Failure Model:
    - Release and pull-request lookups return an Outcome. A recovered outcome
      carries the fallback value and the error text; the caller logs it.
    - Override detection is fail-open: a service whose commits cannot be read
      is treated as not carrying the marker.
    - Nothing here retries.

📊 Pagination:
    Closed pull requests are read most-recently-updated first. Scanning stops
    at the first merged pull request whose merge time is at or before the
    anchor, or at a short page. Ordering by update time rather than merge time
    is an approximation: an old pull request touched recently can end the scan
    before newer merges, and a merge that was not updated recently can be
    missed.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Generic, Iterable, List, Optional, Tuple, TypeVar

from .config import Service
from .github_client import GitHubAPIError, GitHubClient

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Result of a recoverable sub-operation."""

    value: T
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def recovered(cls, value: T, error: str) -> "Outcome[T]":
        return cls(value=value, error=error)


@dataclass(frozen=True)
class PullRequestScan:
    labels: Tuple[str, ...] = ()
    pull_requests: Tuple[int, ...] = ()
    pages: int = 0


@dataclass(frozen=True)
class OverrideHit:
    service: Service
    sha: str
    message: str = field(repr=False, default="")

    @property
    def reason(self) -> str:
        return (
            f"PRIORITY OVERRIDE: {self.service.name} (Tier {self.service.tier}) "
            f"commit {self.sha[:7]}"
        )


async def fetch_latest_release(client: GitHubClient, repo: str) -> Outcome[Optional[str]]:
    """Newest release tag of a repository; None when it has no releases."""
    try:
        releases = await client.list_releases(repo, per_page=1)
    except GitHubAPIError as e:
        return Outcome.recovered(None, str(e))
    if not releases:
        return Outcome.success(None)
    return Outcome.success(releases[0].tag_name)


async def collect_pull_request_labels(
    client: GitHubClient,
    repo: str,
    anchor: Optional[datetime],
    base: str = "uat",
    page_size: int = 100,
) -> Outcome[PullRequestScan]:
    """
    Collect the labels of pull requests merged into `base` after `anchor`.

    Args:
        client (GitHubClient): Pull-request source
        repo (str): Repository identifier ("owner/name")
        anchor (Optional[datetime]): End of the previous run; None scans everything
        base (str): Target branch the pull requests were merged into
        page_size (int): Fixed page size; a shorter page is the last one

    Returns:
        Outcome[PullRequestScan]: Labels deduplicated in first-seen order and the
        pull request numbers that contributed. On a page failure the outcome is
        recovered and holds whatever was gathered before it.
    """
    labels: List[str] = []
    seen = set()
    numbers: List[int] = []
    page = 1
    pages = 0

    while True:
        try:
            pulls = await client.list_closed_pull_requests(repo, base=base, page=page, per_page=page_size)
        except GitHubAPIError as e:
            scan = PullRequestScan(tuple(labels), tuple(numbers), pages)
            return Outcome.recovered(scan, f"page {page}: {e}")
        pages += 1

        stop = False
        for pr in pulls:
            if pr.merged_at is None:
                continue
            if anchor is not None and pr.merged_at <= anchor:
                stop = True
                break
            numbers.append(pr.number)
            logger.debug("  PR #%s merged %s: %r labels=%s", pr.number, pr.merged_at.isoformat(), pr.title, pr.labels)
            for label in pr.labels:
                if label not in seen:
                    seen.add(label)
                    labels.append(label)

        if stop or len(pulls) < page_size:
            break
        page += 1

    return Outcome.success(PullRequestScan(tuple(labels), tuple(numbers), pages))


def _has_marker(message: str, marker: str) -> bool:
    return marker.lower() in message.lower()


async def detect_priority_override(
    client: GitHubClient,
    services: Iterable[Service],
    marker: str,
    commit_window: int = 20,
) -> Optional[OverrideHit]:
    """First service, in configured order, whose recent commits carry `marker`."""
    for service in services:
        try:
            commits = await client.list_commits(service.repo, limit=commit_window)
        except GitHubAPIError as e:
            logger.debug("Override check skipped for %s: %s", service.name, e)
            continue
        for commit in commits:
            if _has_marker(commit.message, marker):
                return OverrideHit(service=service, sha=commit.sha, message=commit.message)
    return None
