#!/usr/bin/env python3
"""
Decision Forge CLI
==================

Command-line interface for running decision cycles and inspecting stored
decisions.

Usage:
    decisionforge run [--scenarios FILE] [--db PATH] [--verbose]
    decisionforge report --db PATH [--status STATUS] [--risk LEVEL] [--limit N]
    decisionforge templates
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from decisionforge.config import EngineConfig
from decisionforge.db import close_db, init_db
from decisionforge.engine import create_engine_from_config
from decisionforge.errors import InvalidScenario, PersistenceFailure
from decisionforge.models import Scenario
from decisionforge.output import (
    console,
    print_banner,
    print_error,
    print_info,
    print_success,
    print_warning,
    render_decision_records,
    render_result,
    render_store_stats,
    render_sync_report,
    render_templates,
    setup_rich_logging,
    spinner,
)
from decisionforge.store import DecisionStore
from decisionforge.templates import create_default_registry

# Load environment variables from .env file
load_dotenv()


# Credential values are placeholders; real secrets belong in the environment.
DEMO_SCENARIOS: tuple[Scenario, ...] = (
    Scenario(
        name="storm-tracker-reonomy",
        kind="api-integration",
        context="Storm tracking application enhancement",
        requirement="Add Reonomy API parallel to PropertyRadar API for consolidated company info",
        credentials={
            "accessKey": "${REONOMY_ACCESS_KEY}",
            "secretKey": "${REONOMY_SECRET_KEY}",
        },
        constraints=(
            "Must maintain singleton service pattern",
            "Should be modular architecture",
            "Parallel processing with PropertyRadar",
            "Consolidated company information display",
        ),
    ),
    Scenario(
        name="ai-callers-bland-integration",
        kind="repository-creation",
        context="AI calling system duplication and enhancement",
        requirement="Duplicate repo, replace ElevenLabs with Bland.ai, remove legacy branding",
        credentials={
            "blandApiOrg": "${BLAND_API_ORG}",
            "twilioApiKey": "${TWILIO_API_KEY}",
        },
        requirements=(
            "Create new repository (not fork)",
            "Replace ElevenLabs with Bland.ai integration",
            "Remove all legacy branding/logos",
            "Update Twilio configuration with new API key",
            "Support multiple roofing restoration workflows",
            "Enable multiple agents per campaign",
            "Maintain cold calling functionality",
        ),
    ),
)


def load_scenarios(path: Path) -> list[Scenario]:
    """Load scenarios from a JSON file: {"scenarios": [...]} or a bare list."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    entries = data.get("scenarios", []) if isinstance(data, dict) else data
    return [Scenario.from_dict(entry) for entry in entries]


async def _run(config: EngineConfig, scenarios: list[Scenario], db_path: Optional[Path]) -> int:
    store = None
    if db_path:
        await init_db(Path.cwd(), db_path=db_path)
        store = DecisionStore()

    exit_code = 0
    try:
        engine = create_engine_from_config(config, store=store)
        if store is not None:
            loaded = await engine.load_patterns()
            print_info(f"Loaded {loaded} stored pattern(s)")

        for scenario in scenarios:
            try:
                with spinner(f"Processing {scenario.name or '<unnamed>'}..."):
                    result = await engine.process_scenario(scenario)
            except InvalidScenario as e:
                print_error(e.describe())
                exit_code = 1
                continue
            render_result(result)

        render_sync_report(engine.sync_report())

        if store is not None:
            await engine.save_patterns()
            if engine.pending:
                print_warning(f"{len(engine.pending)} decision(s) not yet persisted")
                exit_code = 1
            else:
                print_success(f"Decisions persisted to {db_path}")
    finally:
        if store is not None:
            await close_db()

    return exit_code


def cmd_run(args) -> int:
    """Process scenarios and render each decision plus the sync report."""
    config = EngineConfig.load()
    if args.scenarios:
        scenarios = load_scenarios(Path(args.scenarios))
    else:
        scenarios = list(DEMO_SCENARIOS)
    db_path = Path(args.db) if args.db else None

    try:
        return asyncio.run(_run(config, scenarios, db_path))
    except PersistenceFailure as e:
        print_error(e.describe())
        return 1


async def _report(db_path: Path, status: Optional[str], risk: Optional[str], limit: int) -> None:
    await init_db(Path.cwd(), db_path=db_path)
    try:
        store = DecisionStore()
        stats = await store.get_stats()
        records = await store.query_decisions(status=status, risk_assessment=risk, limit=limit)
    finally:
        await close_db()

    render_store_stats(stats)
    if records:
        render_decision_records(records)


def cmd_report(args) -> int:
    """Print statistics and recent records from a decision database."""
    db_path = Path(args.db)
    if not db_path.exists():
        print_error(f"Database not found: {db_path}")
        return 1
    try:
        asyncio.run(_report(db_path, args.status, args.risk, args.limit))
    except PersistenceFailure as e:
        print_error(e.describe())
        return 1
    return 0


def cmd_templates(args) -> int:
    """List registered strategy templates."""
    config = EngineConfig.load()
    registry = create_default_registry(config.template_files())
    render_templates(registry)
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Decision Forge CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Run the built-in demo scenarios
    decisionforge run

    # Run scenarios from a file and persist the decisions
    decisionforge run --scenarios scenarios.json --db decisions.db

    # Show stored high-risk decisions
    decisionforge report --db decisions.db --risk high
        """
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Show engine log output")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Run command
    run_parser = subparsers.add_parser("run", help="Process scenarios")
    run_parser.add_argument("--scenarios", "-s", help="JSON file of scenarios (default: demo scenarios)")
    run_parser.add_argument("--db", help="SQLite database file to persist decisions to")

    # Report command
    report_parser = subparsers.add_parser("report", help="Show stored decision statistics")
    report_parser.add_argument("--db", required=True, help="SQLite database file")
    report_parser.add_argument("--status", choices=["completed", "failed"], help="Filter by status")
    report_parser.add_argument("--risk", choices=["low", "medium", "high"], help="Filter by risk level")
    report_parser.add_argument("--limit", type=int, default=20, help="Maximum records to list")

    # Templates command
    subparsers.add_parser("templates", help="List strategy templates")

    args = parser.parse_args(argv)

    setup_rich_logging(logging.INFO if args.verbose else logging.WARNING)

    if not args.command:
        print_banner()
        console.print()
        parser.print_help()
        return 1

    commands = {
        "run": cmd_run,
        "report": cmd_report,
        "templates": cmd_templates,
    }

    return commands[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
