"""
BOSS Aggregator - Persisted Fleet State

The fleet state file (version.json) is read once at the start of a run and
replaced as a whole at the end. The anchor for the next run is
`lastAggregatedAt`, falling back to `lastUpdated` for files written before the
anchor field existed.

Example file:
    ```json
    {
      "bossVersion": "1.4.2",
      "previousVersion": "1.4.1",
      "bumpType": "patch",
      "bumpReason": "inventory (Tier 1) label: \\"bugfix\\"",
      "lastUpdated": "2026-10-01T09:00:00Z",
      "lastAggregatedAt": "2026-10-01T09:00:00Z",
      "services": {"inventory": "v2.3.1", "search": "no-release"}
    }
    ```
"""

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_serializer, field_validator

from .versioning import BumpLevel, VersionTriple, parse_version_tag

logger = logging.getLogger(__name__)

NO_RELEASE = "no-release"
FETCH_ERROR = "fetch-error"
UNKNOWN = "unknown"


class StateError(Exception):
    """The persisted state is missing or cannot be used."""


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


class FleetState(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    boss_version: str = Field(alias="bossVersion")
    previous_version: Optional[str] = Field(default=None, alias="previousVersion")
    bump_type: str = Field(default="none", alias="bumpType")
    bump_reason: str = Field(default="", alias="bumpReason")
    last_updated: Optional[datetime] = Field(default=None, alias="lastUpdated")
    last_aggregated_at: Optional[datetime] = Field(default=None, alias="lastAggregatedAt")
    services: Dict[str, str] = Field(default_factory=dict)

    @field_validator("boss_version")
    @classmethod
    def _plain_version(cls, value: str) -> str:
        triple = parse_version_tag(value)
        if triple is None or value.strip() != "{}.{}.{}".format(*triple):
            raise ValueError(f"bossVersion must be M.m.p, got {value!r}")
        return value.strip()

    @field_validator("bump_type")
    @classmethod
    def _known_bump(cls, value: str) -> str:
        return BumpLevel.from_label(value).label

    @field_validator("last_updated", "last_aggregated_at")
    @classmethod
    def _aware(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @field_serializer("last_updated", "last_aggregated_at")
    def _serialize_timestamp(self, value: Optional[datetime]) -> Optional[str]:
        return format_timestamp(value) if value is not None else None

    @property
    def version(self) -> VersionTriple:
        return parse_version_tag(self.boss_version)

    @property
    def anchor(self) -> Optional[datetime]:
        return self.last_aggregated_at or self.last_updated

    def to_json(self) -> Dict[str, object]:
        return self.model_dump(by_alias=True)


class StateStore:
    """JSON file holding the single persisted FleetState."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._loaded: Optional[FleetState] = None

    def load(self) -> FleetState:
        if not self.path.exists():
            raise StateError(f"State file not found: {self.path} (first run requires a seed file)")
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise StateError(f"State file {self.path} could not be read: {e}") from e
        try:
            self._loaded = FleetState.model_validate(data)
        except ValidationError as e:
            raise StateError(f"State file {self.path} is invalid: {e}") from e
        return self._loaded

    def current_anchor(self) -> Optional[datetime]:
        state = self._loaded if self._loaded is not None else self.load()
        return state.anchor

    def save(self, state: FleetState) -> Path:
        """Replace the state file in one step; readers never see a partial write."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(state.to_json(), f, indent=2)
                f.write("\n")
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
        self._loaded = state
        logger.debug("Wrote state %s to %s", state.boss_version, self.path)
        return self.path
