#!/usr/bin/env python3
"""
01_import_catalog.py - Load curriculum YAML files into the ledger database.

Each catalog/<name>.yaml is validated against the Curriculum schema and
upserted by id. Invalid files are reported and skipped; the others are
still imported.

Usage:
  python scripts/01_import_catalog.py
  python scripts/01_import_catalog.py --catalog-dir catalog --db ~/.eduledger/ledger.db
  python scripts/01_import_catalog.py --only english_general --dry-run
"""

import argparse
import logging
import sys
from pathlib import Path

# Project root for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

import yaml
from pydantic import ValidationError

from eduledger.config import DEFAULT_CATALOG_DIR, DEFAULT_DB_PATH, LOG_LEVEL
from eduledger.classroom import LedgerStore
from eduledger.utils.catalog_loader import get_available_curricula, load_curriculum

# Setup logging
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Import
# -----------------------------------------------------------------------------

def import_catalog(
    catalog_dir: Path,
    db_path: Path,
    only: list[str] | None = None,
    dry_run: bool = False,
) -> tuple[int, int]:
    """
    Validate and store curricula.

    Returns:
        (imported, failed) counts
    """
    names = get_available_curricula(catalog_dir)
    if only:
        missing = sorted(set(only) - set(names))
        for name in missing:
            logger.error(f"No catalog file for {name} in {catalog_dir}")
        names = [n for n in names if n in only]

    store = None if dry_run else LedgerStore(db_path)
    imported = 0
    failed = 0
    for name in names:
        try:
            curriculum = load_curriculum(name, catalog_dir)
        except (yaml.YAMLError, ValidationError) as e:
            logger.error(f"Skipping {name}: {e}")
            failed += 1
            continue

        logger.info(
            f"{curriculum.id}: {curriculum.total_levels} levels, "
            f"min completion {curriculum.minimum_completion_rate:.0f}%, "
            f"group size {curriculum.min_group_size}-{curriculum.max_group_size}"
        )
        if store is not None:
            store.put_curriculum(curriculum)
        imported += 1

    return imported, failed


# -----------------------------------------------------------------------------
# Main
# -----------------------------------------------------------------------------

def main():
    parser = argparse.ArgumentParser(
        description="Import curriculum definitions into the ledger database.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/01_import_catalog.py
  python scripts/01_import_catalog.py --catalog-dir catalog --db data/ledger.db
  python scripts/01_import_catalog.py --only english_general --dry-run
        """,
    )
    parser.add_argument(
        "--catalog-dir",
        type=Path,
        default=DEFAULT_CATALOG_DIR,
        help=f"Directory of curriculum YAML files (default: {DEFAULT_CATALOG_DIR})",
    )
    parser.add_argument(
        "--db",
        type=Path,
        default=DEFAULT_DB_PATH,
        help=f"Ledger database path (default: {DEFAULT_DB_PATH})",
    )
    parser.add_argument(
        "--only",
        nargs="+",
        help="Import only these curricula (file names without .yaml)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate without writing to the database",
    )

    args = parser.parse_args()

    if not args.catalog_dir.exists():
        print(f"ERROR: Catalog directory not found: {args.catalog_dir}")
        sys.exit(1)

    imported, failed = import_catalog(
        catalog_dir=args.catalog_dir,
        db_path=args.db,
        only=args.only,
        dry_run=args.dry_run,
    )

    action = "Validated" if args.dry_run else "Imported"
    print(f"\n{action} {imported} curricula from {args.catalog_dir}/")
    if failed:
        print(f"  - Failed: {failed}")
        sys.exit(1)


if __name__ == "__main__":
    main()
