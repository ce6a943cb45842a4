"""Legislative volatility windows."""

import logging
from datetime import date, timedelta
from typing import Optional

import pendulum
import psycopg
from psycopg_pool import AsyncConnectionPool

logger = logging.getLogger(__name__)


class VolatilityWindowChecker:
    """Decide whether a region is close to a regulatory deadline."""

    def __init__(self, pool: AsyncConnectionPool, window_days: int = 60) -> None:
        """Initialize volatility checker."""
        self.pool = pool
        self.window_days = window_days

    async def is_volatile(self, region: str, as_of: Optional[date] = None) -> bool:
        """
        True iff a deadline for the region falls within the window around as_of.

        Query errors return False so they never block validation.
        """
        if as_of is None:
            as_of = pendulum.today("UTC").date()
        window = timedelta(days=self.window_days)

        try:
            async with self.pool.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(
                        """
                        SELECT id
                        FROM legislative_events
                        WHERE lower(region) = lower(%s)
                          AND deadline_date BETWEEN %s AND %s
                        LIMIT 1
                        """,
                        (region.strip(), as_of - window, as_of + window),
                    )
                    row = await cur.fetchone()
        except psycopg.Error as e:
            logger.error("Error checking legislative events for %s: %s", region, e, exc_info=True)
            return False

        return row is not None
