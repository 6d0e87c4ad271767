from __future__ import annotations

import argparse
import logging
from typing import List, Optional

from datahouse.common import getenv
from datahouse.errors import ConfigurationError
from datahouse.registry import DataSourceRegistry, default_registry
from datahouse.workspace import Workspace

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_CONFIGURATION = 1
EXIT_USAGE = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="datahouse", description="Manage a data source workspace.")
    commands = parser.add_mutually_exclusive_group(required=True)
    commands.add_argument("-c", "--create", metavar="WORKSPACE", help="create a new workspace")
    commands.add_argument("-s", "--status", metavar="WORKSPACE", help="report whether sources are up-to-date")
    commands.add_argument("-u", "--update", metavar="WORKSPACE", help="update, parse and export all sources")
    commands.add_argument(
        "-i",
        "--integrate",
        nargs="+",
        metavar="ARG",
        help="WORKSPACE SOURCE_ID VERSION: integrate manually downloaded files",
    )
    parser.add_argument("--inventory", help="YAML file listing additional data source factories")
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    return parser


def configure_logging(verbose: bool = False) -> None:
    level = "DEBUG" if verbose else (getenv("DATAHOUSE_LOG_LEVEL", "INFO") or "INFO").upper()
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def build_registry(inventory: str | None) -> DataSourceRegistry:
    registry = DataSourceRegistry(default_registry().factories())
    if inventory:
        registry.register_inventory(inventory)
    return registry


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    if args.integrate and len(args.integrate) > 3:
        logger.error("Unexpected arguments for --integrate: %s", " ".join(args.integrate[3:]))
        return EXIT_USAGE

    workspace_dir = args.create or args.status or args.update or args.integrate[0]
    try:
        workspace = Workspace(workspace_dir, registry=build_registry(args.inventory))
    except ConfigurationError as exc:
        logger.error("%s", exc)
        return EXIT_CONFIGURATION

    if args.create:
        print(f"Workspace ready at {workspace.working_directory}")
        return EXIT_OK

    if args.status:
        workspace.check_state()
        return EXIT_OK

    if args.update:
        reports = workspace.update_data_sources()
        print(f"Processed {len(reports)} data source(s) in {workspace.working_directory}")
        return EXIT_OK

    extra = args.integrate[1:]
    source_id = extra[0] if len(extra) > 0 else None
    version = extra[1] if len(extra) > 1 else None
    workspace.integrate_data_sources(source_id, version)
    if not (source_id or "").strip() or not (version or "").strip():
        return EXIT_USAGE
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
