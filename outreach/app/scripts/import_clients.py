"""Import a contact spreadsheet into a group from the command line."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Optional

from sqlalchemy.orm import sessionmaker

from ..database import build_engine, session_scope
from ..services import ImportService, ImportServiceError

LOGGER = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Reads a .csv or .xlsx file with name, phone and region columns and imports "
            "the rows into a contact group using the user's import configuration."
        )
    )
    parser.add_argument("source", type=Path, help="Path to the spreadsheet to import")
    parser.add_argument("--group-id", dest="group_id", required=True, help="Destination group")
    parser.add_argument(
        "--user-id",
        dest="user_id",
        required=True,
        help="User running the import; their default configuration is used",
    )
    parser.add_argument(
        "--config-id",
        dest="config_id",
        help="Saved configuration or template id (for example template_smart_import)",
    )
    parser.add_argument(
        "--database-url",
        dest="database_url",
        help="Database URL (defaults to DATABASE_URL or the local SQLite file)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log every row decision.",
    )
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    args = _parse_args(argv)
    _configure_logging(args.verbose)

    factory = None
    if args.database_url:
        factory = sessionmaker(autoflush=False, bind=build_engine(args.database_url))

    content = args.source.read_bytes()
    try:
        with session_scope(factory) as session:
            result = ImportService.import_clients(
                session,
                content=content,
                filename=args.source.name,
                group_id=args.group_id,
                user_id=args.user_id,
                config_id=args.config_id,
            )
    except ImportServiceError as exc:
        LOGGER.error("Import failed: %s", exc)
        return 1

    stats = result.statistics
    print(f"Group: {result.group_name} ({result.group_id})")
    print(
        f"Total: {stats.total} | Created: {stats.created} | Updated: {stats.updated} "
        f"| Skipped: {stats.skipped} | Errors: {stats.errors} "
        f"| Regions created: {stats.regions_created}"
    )
    for error in result.errors:
        print(f" - Row {error.row_number}: {error.message}")
    return 0 if result.success else 2


if __name__ == "__main__":
    raise SystemExit(main())
