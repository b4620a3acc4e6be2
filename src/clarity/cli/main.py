"""
Command-line entry point for the batch jobs.

Usage:
    clarity init-db
    clarity ingest --max-pages 20
    clarity health-check --batch-size 50

Schedule with cron, e.g. ingestion every 6 hours and a health-check batch
every 5 minutes.
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Optional, Sequence

from dotenv import load_dotenv

load_dotenv()

from clarity import config  # noqa: E402
from clarity.logging_config import configure_logging  # noqa: E402
from clarity.tracing import configure_tracing  # noqa: E402

logger = logging.getLogger(__name__)


def init_db() -> dict:
    from clarity.db.database import engine, session_scope
    from clarity.models import Base
    from clarity.repositories.category_repository import CategoryRepository

    Base.metadata.create_all(bind=engine)
    with session_scope() as db:
        created = CategoryRepository.seed(db)
    return {"categories_created": created}


async def ingest(max_pages: int) -> dict:
    from clarity.db.database import session_scope
    from clarity.services.ingestion_service import IngestionService

    with session_scope() as db:
        return await IngestionService(db).run_ingestion(max_pages)


async def health_check(batch_size: int) -> dict:
    from clarity.db.database import session_scope
    from clarity.services.health_check_service import HealthCheckService

    with session_scope() as db:
        return await HealthCheckService(db).run_health_check_batch(batch_size)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="clarity", description="x402 endpoint intelligence batch jobs")
    parser.add_argument("--trace-console", action="store_true", help="print finished spans to stdout")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("init-db", help="create tables and seed the category taxonomy")

    ingest_parser = commands.add_parser("ingest", help="fetch, classify and upsert endpoints")
    ingest_parser.add_argument("--max-pages", type=int, default=config.DEFAULT_MAX_PAGES)

    health_parser = commands.add_parser("health-check", help="probe one batch of endpoints")
    health_parser.add_argument("--batch-size", type=int, default=config.HEALTH_CHECK_BATCH_SIZE)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    configure_logging()
    configure_tracing(export_to_console=args.trace_console)

    logger.info("Starting %s", args.command)
    try:
        if args.command == "init-db":
            result = init_db()
        elif args.command == "ingest":
            result = asyncio.run(ingest(args.max_pages))
        else:
            result = asyncio.run(health_check(args.batch_size))
    except Exception:
        logger.exception("Fatal error during %s", args.command)
        return 1

    print(json.dumps(result, indent=2, default=str))
    logger.info("%s complete", args.command)
    return 0


if __name__ == "__main__":
    sys.exit(main())
