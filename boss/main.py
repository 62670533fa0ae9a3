"""
BOSS Aggregator - Command Line Entry Point

Runs one aggregation cycle: loads the service configuration and the persisted
fleet state, evaluates every service through the decision engine, prints a
summary and replaces the state file.

🛠️ Usage:
    ```bash
    # Regular CI run: decide, print, write version.json
    GITHUB_TOKEN=... python -m boss.main --config config/services.yaml --state version.json

    # Dry run: decide and print, leave version.json untouched
    python -m boss.main --preview
    ```

🌍 GitHub Actions Integration:
    - GITHUB_OUTPUT receives boss_version, previous_version, bump_type, changed
    - GITHUB_STEP_SUMMARY receives a markdown table of the service manifest

Exit status is 0 for every completed run, including runs without a bump, and 1
when the run aborts (missing or invalid config or state). Nothing is written on
an aborted run.
"""

import argparse
import asyncio
import json
import logging
import os
from pathlib import Path
from typing import List, Optional

from .aggregator import AggregationReport, run_aggregation
from .config import client_settings_from_env, config_path_from_env, load_services_config, state_path_from_env
from .github_client import GitHubClient
from .state import StateError, StateStore

logger = logging.getLogger("boss")


def format_summary(report: AggregationReport) -> str:
    state = report.state
    return json.dumps(
        {
            "previousVersion": report.previous.boss_version,
            "bossVersion": state.boss_version,
            "bumpType": state.bump_type,
            "bumpReason": state.bump_reason,
            "services": state.services,
            "override": report.override is not None,
        },
        indent=2,
    )


def emit_github_outputs(report: AggregationReport) -> None:
    out = os.environ.get("GITHUB_OUTPUT")
    if out:
        with open(out, "a", encoding="utf-8") as f:
            f.write(f"boss_version={report.state.boss_version}\n")
            f.write(f"previous_version={report.previous.boss_version}\n")
            f.write(f"bump_type={report.state.bump_type}\n")
            f.write(f"changed={'true' if report.changed else 'false'}\n")

    summary_path = os.environ.get("GITHUB_STEP_SUMMARY")
    if summary_path:
        lines = [
            f"## BOSS version {report.previous.boss_version} → {report.state.boss_version}",
            "",
            f"**Bump:** {report.state.bump_type.upper()}  ",
            f"**Reason:** {report.state.bump_reason}",
            "",
            "| Service | Release |",
            "|---|---|",
        ]
        lines.extend(f"| {name} | {tag} |" for name, tag in report.state.services.items())
        with open(summary_path, "a", encoding="utf-8") as f:
            f.write("\n".join(lines) + "\n")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="BOSS Aggregator. Decides the next fleet version from service releases and PR labels.",
    )
    parser.add_argument(
        "--config",
        default=str(config_path_from_env()),
        help="Path to services.yaml (ordered service list and engine settings).",
    )
    parser.add_argument(
        "--state",
        default=str(state_path_from_env()),
        help="Path to the persisted fleet state (version.json).",
    )
    parser.add_argument(
        "--preview",
        action="store_true",
        help="Preview mode: run the full decision and print the summary without writing the state file.",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging.")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_services_config(Path(args.config))
        store = StateStore(Path(args.state))
        current = store.load()
        client = GitHubClient(**client_settings_from_env())
        report = asyncio.run(run_aggregation(config.services, current, client, config.settings))
    except (FileNotFoundError, ValueError, StateError) as e:
        logger.error("Aggregation failed: %s", e)
        return 1
    except Exception:
        logger.exception("Aggregation failed")
        return 1

    print(format_summary(report), flush=True)

    if args.preview:
        print("Preview: decision computed; state file not written. Omit --preview to persist it.")
        return 0

    target = store.save(report.state)
    emit_github_outputs(report)
    if report.changed:
        logger.info("BOSS version %s -> %s, wrote %s", report.previous.boss_version, report.state.boss_version, target)
    else:
        logger.info("No changes detected, BOSS version unchanged at %s", report.state.boss_version)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
