"""Grant the monthly streak freezes to every user (run on the 1st of each month)"""
import asyncio
import logging
import sys
import os

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from personalfit.config import LOG_LEVEL, MONTHLY_STREAK_FREEZES, validate_config
from personalfit.db.connection import db
from personalfit.services.container import init_container

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


async def main():
    validate_config()
    await db.init_pool()
    try:
        container = init_container(db)
        updated = await container.gamification_service.award_monthly_streak_freezes()
        logger.info(f"Granted {MONTHLY_STREAK_FREEZES} streak freezes to {updated} users")
    finally:
        await db.close_pool()


if __name__ == "__main__":
    asyncio.run(main())
