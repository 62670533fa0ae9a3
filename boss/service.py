"""BOSS status and trigger service.

Exposes the persisted fleet version and lets CI or a webhook schedule an
aggregation run in the background. Runs use the same engine and state file as
the command line entry point.
"""

import asyncio
import logging
import os
import secrets
from typing import Any, Dict, Optional

from fastapi import BackgroundTasks, Depends, FastAPI, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .aggregator import run_aggregation
from .config import client_settings_from_env, config_path_from_env, load_services_config, state_path_from_env
from .github_client import GitHubClient
from .state import StateError, StateStore

logger = logging.getLogger(__name__)

app = FastAPI(title="BOSS Fleet Version Aggregator")

security = HTTPBearer(auto_error=False)

# One aggregation at a time per process; runs read and replace the same state file
_run_lock = asyncio.Lock()


async def require_trigger_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> None:
    """Require the BOSS_TRIGGER_TOKEN bearer token when one is configured"""
    expected = os.getenv("BOSS_TRIGGER_TOKEN", "")
    if not expected:
        return
    if credentials is None or not secrets.compare_digest(credentials.credentials, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Valid trigger token required",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def aggregate_and_store(preview: bool = False) -> None:
    """Run one aggregation cycle with config and state taken from the environment"""
    async with _run_lock:
        config = load_services_config(config_path_from_env())
        store = StateStore(state_path_from_env())
        current = store.load()
        client = GitHubClient(**client_settings_from_env())

        report = await run_aggregation(config.services, current, client, config.settings)
        logger.info(
            f"Aggregation finished: {report.previous.boss_version} -> {report.state.boss_version} "
            f"({report.state.bump_type}: {report.state.bump_reason})"
        )
        if preview:
            logger.info("Preview run, state not written")
            return
        store.save(report.state)


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/version")
def current_version() -> Dict[str, Any]:
    """Get the persisted fleet state"""
    try:
        return StateStore(state_path_from_env()).load().to_json()
    except StateError as e:
        logger.error(f"Error loading fleet state: {e}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))


@app.post("/aggregate")
async def trigger_aggregation(
    background_tasks: BackgroundTasks,
    preview: bool = False,
    _: None = Depends(require_trigger_token),
) -> Dict[str, str]:
    """Schedule an aggregation run"""
    logger.info(f"Aggregation requested (preview={preview})")
    background_tasks.add_task(aggregate_and_store, preview)
    return {"status": "accepted"}
