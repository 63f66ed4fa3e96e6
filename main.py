"""CLI entry point for the talent search service."""

import argparse
import asyncio
import logging
import sqlite3
import sys
from datetime import datetime

import yaml

from talent_search.core.config import Settings
from talent_search.core.db import init_db, seed_from_yaml
from talent_search.core.schemas import ALL_RESULT_TYPES, SearchFilters
from talent_search.pipeline.aggregator import SearchService, export_results_json
from talent_search.store.sqlite import SqliteSearchStore

# Legacy tags the web client still sends.
_TYPE_CHOICES = [*ALL_RESULT_TYPES, "company", "youth"]


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        default="config/settings.yaml",
        help="Path to settings YAML file (default: config/settings.yaml)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Talent search - ranked search over jobs, companies, profiles, "
                    "courses and institutions",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # --- init-db ---
    init_parser = subparsers.add_parser("init-db", help="Create the database schema")
    _add_common(init_parser)

    # --- seed ---
    seed_parser = subparsers.add_parser("seed", help="Load fixture rows from YAML")
    seed_parser.add_argument("--file", required=True, help="Path to seed YAML file")
    _add_common(seed_parser)

    # --- search ---
    search_parser = subparsers.add_parser("search", help="Run a global search")
    search_parser.add_argument("query", help="Free-text query (may be empty)")
    search_parser.add_argument(
        "--type",
        dest="types",
        action="append",
        choices=_TYPE_CHOICES,
        help="Entity type to include (repeatable; default: all)",
    )
    search_parser.add_argument("--location", help="Location substring")
    search_parser.add_argument("--category", help="Business sector substring")
    search_parser.add_argument("--skills", nargs="+", help="Match any of these skills")
    search_parser.add_argument("--salary-min", type=float, help="Minimum salary")
    search_parser.add_argument("--salary-max", type=float, help="Maximum salary")
    search_parser.add_argument(
        "--from", dest="date_from", type=datetime.fromisoformat,
        help="Jobs created on or after (ISO date)",
    )
    search_parser.add_argument(
        "--to", dest="date_to", type=datetime.fromisoformat,
        help="Jobs created on or before (ISO date)",
    )
    search_parser.add_argument("--limit", type=int, help="Page size")
    search_parser.add_argument("--offset", type=int, default=0, help="Results to skip")
    search_parser.add_argument(
        "--json", action="store_true", help="Print results as JSON",
    )
    _add_common(search_parser)

    # --- suggest ---
    suggest_parser = subparsers.add_parser("suggest", help="Suggest completions")
    suggest_parser.add_argument("query", help="Partial query")
    suggest_parser.add_argument("--limit", type=int, help="Maximum suggestions")
    _add_common(suggest_parser)

    # --- popular ---
    popular_parser = subparsers.add_parser("popular", help="List popular searches")
    popular_parser.add_argument("--limit", type=int, help="Maximum entries")
    _add_common(popular_parser)

    return parser.parse_args(argv)


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def build_filters(args: argparse.Namespace) -> SearchFilters:
    """Translate search CLI flags into SearchFilters."""
    raw: dict[str, object] = {
        "type": args.types,
        "location": args.location,
        "category": args.category,
        "skills": args.skills,
    }
    if args.salary_min is not None or args.salary_max is not None:
        if args.salary_min is None or args.salary_max is None:
            msg = "--salary-min and --salary-max must be given together"
            raise ValueError(msg)
        raw["salary"] = {"min": args.salary_min, "max": args.salary_max}
    if args.date_from is not None or args.date_to is not None:
        if args.date_from is None or args.date_to is None:
            msg = "--from and --to must be given together"
            raise ValueError(msg)
        raw["date_range"] = {"start": args.date_from, "end": args.date_to}
    return SearchFilters.model_validate(raw)


async def run(args: argparse.Namespace, settings: Settings, conn: sqlite3.Connection) -> None:
    """Execute a query subcommand against an open database."""
    service = SearchService(SqliteSearchStore(conn), settings.search)

    if args.command == "search":
        results = await service.global_search(
            args.query, build_filters(args), limit=args.limit, offset=args.offset,
        )
        if args.json:
            print(export_results_json(results))
            return
        print(f"{len(results)} results for '{args.query}'")
        for r in results:
            print(f"  [{r.score:3d}] {r.type:<12} {r.title}  {r.url}")
    elif args.command == "suggest":
        for suggestion in await service.get_search_suggestions(args.query, args.limit):
            print(suggestion)
    elif args.command == "popular":
        for entry in await service.get_popular_searches(args.limit):
            print(entry)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    setup_logging(args.verbose)

    try:
        settings = Settings.from_yaml(args.config)
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        sys.exit(1)

    conn = init_db(settings.database.path)
    try:
        if args.command == "init-db":
            print(f"Database ready at {settings.database.path}")
        elif args.command == "seed":
            counts = seed_from_yaml(conn, args.file)
            total = sum(counts.values())
            print(f"Seeded {total} rows into {settings.database.path}")
            for table, count in counts.items():
                print(f"  {table}: {count}")
        else:
            asyncio.run(run(args, settings, conn))
    except (FileNotFoundError, ValueError, yaml.YAMLError, sqlite3.Error, TimeoutError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        conn.close()


if __name__ == "__main__":
    main()
