"""
Rating recalculation worker.
Rebuilds every technician's rating and review count from the reviews table.
Run after bulk imports or manual review moderation:

    python -m allobricolage.workers.recalc_ratings
"""

import asyncio
import logging
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from allobricolage.database import AsyncSessionLocal, close_db
from allobricolage.models.technician import Technician
from allobricolage.services.review_service import recompute_rating

logger = logging.getLogger(__name__)


async def recalc_all(db: AsyncSession) -> int:
    """Recompute ratings for all technicians. Returns how many were updated."""
    result = await db.execute(select(Technician).with_for_update(of=Technician))
    technicians = result.unique().scalars().all()

    for technician in technicians:
        await recompute_rating(db, technician)

    await db.commit()
    return len(technicians)


async def recalc_ratings() -> int:
    async with AsyncSessionLocal() as db:
        count = await recalc_all(db)
    logger.info("Recomputed ratings for %d technicians", count)
    await close_db()
    return count


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(recalc_ratings())
