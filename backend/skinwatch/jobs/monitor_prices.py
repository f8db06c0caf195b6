import asyncio

import structlog

from skinwatch.core.logger import configure_logging
from skinwatch.db.session import SessionLocal
from skinwatch.services.monitor import build_sweeper

logger = structlog.get_logger(__name__)


async def run_once() -> dict:
    sweeper = build_sweeper()
    db = SessionLocal()
    try:
        stats = await sweeper.run(db)
        return stats.as_dict()
    finally:
        db.close()
        await sweeper.prices.quotes.close()
        if sweeper.engine.notifier is not None:
            await sweeper.engine.notifier.close()


def main():
    configure_logging()
    stats = asyncio.run(run_once())
    logger.info("job.monitor_prices.done", **stats)


if __name__ == "__main__":
    main()
