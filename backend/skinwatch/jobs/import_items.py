import argparse
import sys
from dataclasses import asdict

import structlog

from skinwatch.core.logger import configure_logging
from skinwatch.db.session import SessionLocal, init_db
from skinwatch.services.catalog import import_csv, statistics

logger = structlog.get_logger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Import item catalog CSV files.")
    parser.add_argument("paths", nargs="+", help="CSV files to import")
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="create missing tables before importing (development databases)",
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    configure_logging()
    args = parse_args(argv)

    if args.create_tables:
        init_db()

    failed = False
    db = SessionLocal()
    try:
        for path in args.paths:
            try:
                report = import_csv(db, path)
            except OSError as e:
                logger.error("job.import_items.unreadable", path=path, error=str(e))
                failed = True
                continue
            logger.info("job.import_items.file_done", path=path, **asdict(report))

        logger.info("job.import_items.done", **statistics(db))
    finally:
        db.close()

    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
