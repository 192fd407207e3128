"""Run the missed-workout sweep once (cron entry point)

Usage:
    python scripts/detect_missed_workouts.py
"""
import asyncio
import logging
import sys
import os

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from personalfit.config import LOG_LEVEL, validate_config
from personalfit.db.connection import db
from personalfit.services.container import init_container

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


async def main() -> int:
    """Run one sweep; exit code 1 if it failed"""
    validate_config()

    logger.info("Initializing database connection...")
    await db.init_pool()
    try:
        container = init_container(db)
        outcome = await container.missed_workout_service.trigger_missed_workout_detection()
    finally:
        await db.close_pool()

    if not outcome['success']:
        logger.error(f"Missed-workout sweep failed: {outcome['error']}")
        return 1

    result = outcome['result']
    logger.info(
        f"Done: {result.processed} overdue sessions, "
        f"{result.penalties_assigned} penalties, {result.streaks_reset} streak resets"
    )
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
