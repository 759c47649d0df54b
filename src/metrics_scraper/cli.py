"""
Command-line entry point.

Each invocation runs one cycle against the configured store, so an external
scheduler (cron, a Kubernetes CronJob) decides how often snapshots are
written and culled:

    metrics-scraper init
    metrics-scraper write --nodes nodes.json --pods pods.json
    metrics-scraper --metric-duration 1h cull
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from metrics_scraper.config import (
    AppConfig,
    build_global_parser,
    load_config,
    parse_duration,
)
from metrics_scraper.database import MetricsStore, cull, initialize, write_snapshot
from metrics_scraper.errors import InvalidArgumentError, MetricsStoreError
from metrics_scraper.logging import get_logger, setup_logging
from metrics_scraper.snapshot import parse_node_metrics_list, parse_pod_metrics_list

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2


def build_parser() -> argparse.ArgumentParser:
    """Build the full parser: shared options plus one subcommand per cycle."""
    parser = argparse.ArgumentParser(
        prog="metrics-scraper",
        description="Persist Kubernetes metrics snapshots and cull old rows",
        parents=[build_global_parser(add_help=False)],
    )
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("init", help="Create the metrics tables if missing")

    write = commands.add_parser("write", help="Store one metrics snapshot")
    write.add_argument(
        "--nodes",
        required=True,
        help="NodeMetricsList JSON file ('-' for stdin)",
    )
    write.add_argument(
        "--pods",
        required=True,
        help="PodMetricsList JSON file ('-' for stdin)",
    )

    cull_parser = commands.add_parser("cull", help="Delete rows older than the window")
    cull_parser.add_argument(
        "--window",
        type=str,
        help="Retention window overriding the configured one, e.g. '15m'",
    )

    return parser


def _read_json(source: str) -> dict[str, Any]:
    try:
        if source == "-":
            payload = json.load(sys.stdin)
        else:
            with open(Path(source)) as f:
                payload = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise InvalidArgumentError(
            f"Failed to read metrics document: {e}",
            details={"source": source},
        ) from e
    if not isinstance(payload, dict):
        raise InvalidArgumentError(
            "Metrics document must be a JSON object",
            details={"source": source},
        )
    return payload


async def run(args: argparse.Namespace, config: AppConfig) -> None:
    """Run the selected command against the configured store."""
    store = MetricsStore.from_config(config.database)
    await initialize(store)

    if args.command == "write":
        if args.nodes == "-" and args.pods == "-":
            raise InvalidArgumentError("Only one of --nodes/--pods may read stdin")
        nodes = parse_node_metrics_list(_read_json(args.nodes))
        pods = parse_pod_metrics_list(_read_json(args.pods))
        await write_snapshot(store, nodes, pods)
        logger.info(
            "Metrics snapshot stored",
            extra={"nodes": len(nodes), "pods": len(pods)},
        )
    elif args.command == "cull":
        window = config.retention.window
        if args.window:
            try:
                window = parse_duration(args.window)
            except ValueError as e:
                raise InvalidArgumentError(str(e), details={"window": args.window}) from e
        await cull(store, window)
        logger.info(
            "Metrics database culled",
            extra={"window_seconds": window.total_seconds()},
        )


def main(argv: list[str] | None = None) -> int:
    """
    Parse arguments, load configuration and run one command.

    Returns:
        Process exit status.
    """
    if argv is None:
        argv = sys.argv[1:]

    args = build_parser().parse_args(argv)

    try:
        config = load_config(cli_args=argv)
    except (FileNotFoundError, yaml.YAMLError, ValidationError) as e:
        print(f"metrics-scraper: invalid configuration: {e}", file=sys.stderr)
        return EXIT_USAGE

    setup_logging(config.logging)

    try:
        asyncio.run(run(args, config))
    except InvalidArgumentError as e:
        logger.error(
            "Invalid input",
            extra={"error_code": e.error_code, "error": e.message, "details": e.details},
        )
        return EXIT_USAGE
    except MetricsStoreError as e:
        logger.error(
            "Metrics store operation failed",
            extra={"error_code": e.error_code, "error": e.message, "details": e.details},
        )
        return EXIT_FAILURE

    return EXIT_OK
