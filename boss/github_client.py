"""GitHub REST client used as the release, commit and pull-request source."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, Field, ValidationError, field_validator


DEFAULT_API_URL = "https://api.github.com"
USER_AGENT = "boss-aggregator"


class GitHubAPIError(Exception):
    """Transport, status or payload failure talking to the GitHub API."""

    def __init__(self, message: str, method: str = "GET", url: str = "", status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.method = method
        self.url = url
        self.status_code = status_code


class Release(BaseModel):
    tag_name: str
    name: Optional[str] = None
    published_at: Optional[datetime] = None


class Commit(BaseModel):
    sha: str
    message: str = ""

    @classmethod
    def from_api(cls, item: Dict[str, Any]) -> "Commit":
        detail = item.get("commit")
        message = detail.get("message") if isinstance(detail, dict) else None
        return cls(sha=item.get("sha"), message=message or "")


class PullRequest(BaseModel):
    number: int
    title: str = ""
    merged_at: Optional[datetime] = None
    labels: List[str] = Field(default_factory=list)

    @field_validator("merged_at")
    @classmethod
    def _aware(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @field_validator("labels", mode="before")
    @classmethod
    def _label_names(cls, value: Any) -> List[str]:
        # The API returns label objects; plain names are accepted too
        names = []
        for item in value or []:
            name = item.get("name") if isinstance(item, dict) else item
            if isinstance(name, str) and name:
                names.append(name)
        return names


class GitHubClient:
    """
    Async GitHub REST client for the three sources the aggregator reads.

    Every call is a single request; failures surface as GitHubAPIError and
    retries are left to the caller (the aggregator does not retry).

    Example:
        ```python
        client = GitHubClient(token=os.environ.get("GITHUB_TOKEN"))
        releases = await client.list_releases("acme/inventory", per_page=1)
        page = await client.list_closed_pull_requests("acme/inventory", base="uat", page=1)
        ```
    """

    def __init__(
        self,
        base_url: str = DEFAULT_API_URL,
        token: Optional[str] = None,
        timeout_seconds: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        headers = {
            "User-Agent": USER_AGENT,
            "Accept": "application/vnd.github+json",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport) as client:
                response = await client.get(url, headers=self._headers(), params=params)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise GitHubAPIError(
                f"GitHub API HTTP {e.response.status_code} error for GET {url}: {e.response.text[:500]}",
                url=url,
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise GitHubAPIError(f"GitHub API connection error for GET {url}: {e}", url=url) from e

        try:
            return response.json()
        except ValueError as e:
            raise GitHubAPIError(
                f"Invalid JSON response from GitHub API for GET {url}: {response.text[:500]}",
                url=url,
                status_code=response.status_code,
            ) from e

    async def _get_list(self, path: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        payload = await self._get(path, params)
        if not isinstance(payload, list):
            raise GitHubAPIError(f"Expected a list from GitHub API for GET {path}, got {type(payload).__name__}", url=path)
        return payload

    async def list_releases(self, repo: str, per_page: int = 1) -> List[Release]:
        """Releases for a repository, newest first."""
        items = await self._get_list(f"/repos/{repo}/releases", {"per_page": per_page})
        try:
            return [Release.model_validate(item) for item in items]
        except ValidationError as e:
            raise GitHubAPIError(f"Malformed release payload for {repo}: {e}", url=f"/repos/{repo}/releases") from e

    async def list_commits(self, repo: str, limit: int = 20) -> List[Commit]:
        """The `limit` most recent commits on the default branch."""
        items = await self._get_list(f"/repos/{repo}/commits", {"per_page": limit})
        try:
            return [Commit.from_api(item) for item in items if isinstance(item, dict)]
        except ValidationError as e:
            raise GitHubAPIError(f"Malformed commit payload for {repo}: {e}", url=f"/repos/{repo}/commits") from e

    async def list_closed_pull_requests(
        self, repo: str, base: str, page: int = 1, per_page: int = 100
    ) -> List[PullRequest]:
        """One page of closed pull requests into `base`, most recently updated first."""
        params = {
            "state": "closed",
            "base": base,
            "sort": "updated",
            "direction": "desc",
            "per_page": per_page,
            "page": page,
        }
        items = await self._get_list(f"/repos/{repo}/pulls", params)
        try:
            return [PullRequest.model_validate(item) for item in items]
        except ValidationError as e:
            raise GitHubAPIError(f"Malformed pull request payload for {repo}: {e}", url=f"/repos/{repo}/pulls") from e
