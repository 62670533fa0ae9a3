"""
BOSS Aggregator - Service Configuration

Loads the ordered service list and engine settings from YAML, and resolves the
transport settings the CLI and the status service read from the environment.

🔧 Configuration Structure:
    ```yaml
    services:
      - name: "inventory"
        repo: "acme/inventory-service"
        tier: 1
      - name: "notifications"
        repo: "acme/notification-service"
        tier: 3
    settings:
      target_branch: "uat"
      page_size: 100
      commit_window: 20
      priority_marker: "[boss-major]"
    ```

Service order in the file is the evaluation order of the run.
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .github_client import DEFAULT_API_URL

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config" / "services.yaml"
DEFAULT_STATE_PATH = Path(__file__).resolve().parent.parent / "version.json"


class Service(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    repo: str = Field(min_length=1)
    tier: int

    @field_validator("tier")
    @classmethod
    def _known_tier(cls, value: int) -> int:
        if value not in (1, 2, 3):
            raise ValueError(f"tier must be 1, 2 or 3, got {value}")
        return value


class AggregatorSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    target_branch: str = "uat"
    page_size: int = Field(default=100, ge=1, le=100)
    commit_window: int = Field(default=20, ge=1, le=100)
    priority_marker: str = Field(default="[boss-major]", min_length=1)


class FleetConfig(BaseModel):
    services: List[Service]
    settings: AggregatorSettings = Field(default_factory=AggregatorSettings)


def load_services_config(config_path: Path) -> FleetConfig:
    """
    Load and validate the fleet configuration from a YAML file.

    Raises:
        FileNotFoundError: If the configuration file doesn't exist
        ValueError: If the services list is empty, malformed or has duplicate names
    """
    if not config_path.exists():
        raise FileNotFoundError(f"Services config not found: {config_path}")

    with config_path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    services = data.get("services", [])
    if not isinstance(services, list) or not services:
        raise ValueError("Config 'services' must be a non-empty list")

    try:
        config = FleetConfig(services=services, settings=data.get("settings") or {})
    except ValidationError as e:
        raise ValueError(f"Invalid services config {config_path}: {e}") from e

    names = [s.name for s in config.services]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise ValueError(f"Duplicate service names in config: {', '.join(duplicates)}")
    return config


def client_settings_from_env(environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    env = os.environ if environ is None else environ
    return {
        "base_url": (env.get("GITHUB_API_URL") or DEFAULT_API_URL).strip(),
        "token": (env.get("GITHUB_TOKEN") or "").strip() or None,
    }


def config_path_from_env(environ: Optional[Dict[str, str]] = None) -> Path:
    env = os.environ if environ is None else environ
    return Path(env.get("BOSS_CONFIG") or DEFAULT_CONFIG_PATH)


def state_path_from_env(environ: Optional[Dict[str, str]] = None) -> Path:
    env = os.environ if environ is None else environ
    return Path(env.get("BOSS_STATE_FILE") or DEFAULT_STATE_PATH)
