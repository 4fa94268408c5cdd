"""
Command line entry point.

Usage:
    rdsbroker serve [--catalog PATH]
    rdsbroker check-catalog [--catalog PATH]
    rdsbroker list-instances [--service-id ID --plan-id ID --org-id ID --space-id ID] [--json]
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Sequence

import structlog
from rich.console import Console
from rich.table import Table

from rdsbroker.broker.service import RDSServiceBroker
from rdsbroker.config import Settings, get_settings, load_catalog
from rdsbroker.core.errors import ExitCode, main_with_error_handling
from rdsbroker.discovery.filters import InstanceFilter, SelectAll, filter_from_params
from rdsbroker.logging import configure_logging

logger = structlog.get_logger()
console = Console()

PARAMETER_FLAGS = {
    "service_id": "service_id",
    "plan_id": "plan_id",
    "org_id": "organization_guid",
    "space_id": "space_guid",
}
TABLE_COLUMNS = ("identifier", "status", "marketplace_instance_id", "plan_id", "space_id")


def _settings_for(args: argparse.Namespace) -> Settings:
    settings = get_settings()
    if getattr(args, "catalog", None):
        settings = settings.model_copy(update={"catalog_path": args.catalog})
    return settings


def instance_filter_from_args(args: argparse.Namespace) -> InstanceFilter | None:
    """ByParameters when all four ids are given, SelectAll when none; None otherwise."""
    params = {param: getattr(args, flag) for flag, param in PARAMETER_FLAGS.items()}
    given = list(params.values())
    if all(value is None for value in given):
        return SelectAll()
    if any(value is None for value in given):
        return None
    return filter_from_params(params)


@main_with_error_handling()
def check_catalog_command(settings: Settings) -> int:
    catalog = load_catalog(settings.catalog_path)
    catalog.check_consistency()
    plan_count = sum(len(service.plans) for service in catalog.services)
    console.print(
        f"[green]Catalog OK[/green]: {len(catalog.services)} services, "
        f"{plan_count} plans, {len(catalog.plans)} plan specifications"
    )
    return ExitCode.SUCCESS


@main_with_error_handling()
def list_instances_command(
    settings: Settings,
    instance_filter: InstanceFilter,
    *,
    as_json: bool = False,
) -> int:
    catalog = load_catalog(settings.catalog_path)
    broker = RDSServiceBroker.from_settings(settings, catalog)
    rows = asyncio.run(broker.list_instances(instance_filter))

    if as_json:
        print(json.dumps(rows, indent=2))
        return ExitCode.SUCCESS

    table = Table(title=f"RDS instances ({settings.aws_region})")
    for column in TABLE_COLUMNS:
        table.add_column(column)
    for row in rows:
        table.add_row(*(str(row[column] or "-") for column in TABLE_COLUMNS))
    console.print(table)
    return ExitCode.SUCCESS


@main_with_error_handling()
def serve_command(settings: Settings) -> int:
    import uvicorn

    from rdsbroker.api.main import create_app

    catalog = load_catalog(settings.catalog_path)
    catalog.check_consistency()
    broker = RDSServiceBroker.from_settings(settings, catalog)
    uvicorn.run(
        create_app(settings, broker),
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )
    return ExitCode.SUCCESS


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="rdsbroker", description="RDS service broker")
    subparsers = parser.add_subparsers(dest="command")

    serve_parser = subparsers.add_parser("serve", help="Run the broker API")
    serve_parser.add_argument("--catalog", help="Path to catalog YAML")

    check_parser = subparsers.add_parser("check-catalog", help="Check every plan has a specification")
    check_parser.add_argument("--catalog", help="Path to catalog YAML")

    list_parser = subparsers.add_parser("list-instances", help="List broker-managed DB instances")
    list_parser.add_argument("--catalog", help="Path to catalog YAML")
    list_parser.add_argument("--service-id")
    list_parser.add_argument("--plan-id")
    list_parser.add_argument("--org-id")
    list_parser.add_argument("--space-id")
    list_parser.add_argument("--json", action="store_true", help="Print JSON instead of a table")

    return parser


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(ExitCode.SUCCESS)

    settings = _settings_for(args)
    configure_logging(settings.log_level)

    if args.command == "serve":
        sys.exit(serve_command(settings))

    if args.command == "check-catalog":
        sys.exit(check_catalog_command(settings))

    if args.command == "list-instances":
        instance_filter = instance_filter_from_args(args)
        if instance_filter is None:
            parser.error("--service-id, --plan-id, --org-id and --space-id must be given together")
        sys.exit(list_instances_command(settings, instance_filter, as_json=args.json))


if __name__ == "__main__":
    main()
