from __future__ import annotations

import argparse
import importlib
import os
import sys
from pathlib import Path
from typing import Any, List, Optional

from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from .db_connector import DatabaseSession
from .errors import FixtureError
from .loader import FixtureLoader
from .logging_utils import get_logger, setup_logging
from .models import (DEFAULT_DATABASE_URL, DEFAULT_DB_CONNECT_TIMEOUT,
                     DEFAULT_FIXTURE_ROOTS, DatabaseConfig, FixtureConfig,
                     LoaderConfig)
from .modules import load_modules
from .persistence import LoadReport, SessionStore

console = Console()
LOGGER = get_logger()


def _database_url() -> str:
    url = os.getenv("DATABASE_URL")
    if url:
        return url

    pg_user = os.getenv("POSTGRES_USER")
    pg_password = os.getenv("POSTGRES_PASSWORD")
    pg_db = os.getenv("POSTGRES_DB")
    if not (pg_user and pg_password and pg_db):
        return DEFAULT_DATABASE_URL
    pg_host = os.getenv("POSTGRES_HOST", os.getenv("PGHOST", "localhost"))
    pg_port = os.getenv("POSTGRES_PORT", os.getenv("PGPORT", "5432"))
    return f"postgresql+psycopg://{pg_user}:{pg_password}@{pg_host}:{pg_port}/{pg_db}"


def load_config() -> LoaderConfig:
    """Load loader configuration from environment variables."""
    load_dotenv()

    models = os.getenv("FIXTURE_MODELS", "").strip()
    if not models or ":" not in models:
        raise RuntimeError(
            "FIXTURE_MODELS must name the declarative base as 'package.module:Base'"
        )

    roots_env = os.getenv("FIXTURE_ROOTS")
    roots = (
        tuple(root for root in roots_env.split(os.pathsep) if root)
        if roots_env
        else DEFAULT_FIXTURE_ROOTS
    )

    connect_timeout = float(
        os.getenv("DATABASE_CONNECT_TIMEOUT", str(DEFAULT_DB_CONNECT_TIMEOUT))
    )
    create_schema = os.getenv("DATABASE_CREATE_SCHEMA", "false").strip().lower() in {
        "1",
        "true",
        "yes",
        "on",
    }

    return LoaderConfig(
        database=DatabaseConfig(
            url=_database_url(),
            connect_timeout=connect_timeout,
            create_schema=create_schema,
        ),
        fixtures=FixtureConfig(models=models, roots=roots),
    )


def import_models(reference: str) -> Any:
    module_name, _, attribute = reference.partition(":")
    module = importlib.import_module(module_name)
    try:
        return getattr(module, attribute)
    except AttributeError as exc:
        raise RuntimeError(f"{module_name} has no attribute {attribute}") from exc


def run_load(config: LoaderConfig, names: List[str]) -> List[LoadReport]:
    base = import_models(config.fixtures.models)
    database = DatabaseSession(config.database)
    database.open()
    try:
        if config.database.create_schema:
            LOGGER.info("Creating database schema as requested by configuration")
            database.ensure_schema(base.metadata)
        with database.transaction() as session:
            loader = FixtureLoader(SessionStore(session), base, roots=config.fixtures.roots)
            with console.status("Loading fixtures..."):
                return loader.load_all(names)
    finally:
        database.dispose()


def print_reports(reports: List[LoadReport]) -> None:
    table = Table(title="Fixtures")
    table.add_column("Fixture")
    table.add_column("Entities", justify="right")
    table.add_column("Managed", justify="right")
    table.add_column("Failed", justify="right")
    for report in reports:
        table.add_row(
            report.fixture,
            str(report.total),
            str(report.succeeded),
            str(report.failed),
            style=None if report.ok else "yellow",
        )
    console.print(table)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fixture-loader", description="Load YAML fixtures into the database"
    )
    parser.add_argument("--log-level", default=os.getenv("LOG_LEVEL", "INFO"))
    commands = parser.add_subparsers(dest="command", required=True)

    load = commands.add_parser("load", help="load fixtures/<name> documents")
    load.add_argument("names", nargs="+")

    modules = commands.add_parser("modules", help="print a module dependency tree")
    modules.add_argument("manifest", type=Path)
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    if args.command == "modules":
        try:
            modules = load_modules(args.manifest)
        except FixtureError as exc:
            print(f"Module manifest error: {exc}", file=sys.stderr)
            sys.exit(2)
        for module in modules.values():
            marker = " (upgradable)" if module.is_upgradable else ""
            console.print(module.pprint().rstrip("\n") + marker, markup=False)
        return

    try:
        config = load_config()
    except Exception as exc:  # pragma: no cover - guard for CLI usage
        LOGGER.error("Configuration error: %s", exc)
        print(f"Configuration error: {exc}", file=sys.stderr)
        sys.exit(1)

    try:
        reports = run_load(config, args.names)
    except FixtureError as exc:
        LOGGER.error("Fixture error: %s", exc)
        print(f"Fixture error: {exc}", file=sys.stderr)
        sys.exit(2)
    except Exception as exc:  # pragma: no cover - guard for CLI usage
        LOGGER.exception("Fixture loading failed")
        print(f"Fixture loading failed: {exc}", file=sys.stderr)
        sys.exit(3)

    print_reports(reports)


if __name__ == "__main__":
    main()
