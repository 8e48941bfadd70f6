"""Worker to repair drift in the denormalized counters.

Counters are kept in step by atomic increments, but a manual SQL fix or a
bug can still leave one off. Each pass recomputes likes_count,
comments_count and total_artworks from the relation tables and rewrites
only the rows that disagree.
"""

import asyncio
import logging
import traceback
from typing import Dict

import asyncpg
import backoff

from cascade import row_count
from database import get_pool, close as db_close

# Configure logging
logger = logging.getLogger(__name__)

RECONCILE_QUERIES = {
    'likes_count': '''
        UPDATE artworks a
        SET likes_count = c.actual
        FROM (
            SELECT a2.id, COUNT(l.user_id) AS actual
            FROM artworks a2
            LEFT JOIN likes l ON l.artwork_id = a2.id
            GROUP BY a2.id
        ) c
        WHERE a.id = c.id AND a.likes_count != c.actual
    ''',
    'comments_count': '''
        UPDATE artworks a
        SET comments_count = c.actual
        FROM (
            SELECT a2.id, COUNT(cm.id) AS actual
            FROM artworks a2
            LEFT JOIN comments cm ON cm.artwork_id = a2.id
            GROUP BY a2.id
        ) c
        WHERE a.id = c.id AND a.comments_count != c.actual
    ''',
    'total_artworks': '''
        UPDATE artist_profiles p
        SET total_artworks = c.actual, updated_at = now()
        FROM (
            SELECT p2.user_id, COUNT(a.id) AS actual
            FROM artist_profiles p2
            LEFT JOIN artworks a ON a.artist_id = p2.user_id
            GROUP BY p2.user_id
        ) c
        WHERE p.user_id = c.user_id AND p.total_artworks != c.actual
    '''
}

RECONCILE_MAX_TRIES = 5

@backoff.on_exception(
    backoff.expo,
    (asyncpg.exceptions.SerializationError, asyncpg.exceptions.DeadlockDetectedError),
    max_tries=RECONCILE_MAX_TRIES
)
async def _reconcile_pass(pool) -> Dict[str, int]:
    """Run every reconcile query in one serializable transaction.
    
    A like or comment committed while the counts are computed makes the
    transaction fail to serialize instead of writing a stale count; the
    pass is then retried from scratch.
    """
    corrected: Dict[str, int] = {}
    async with pool.acquire() as conn:
        async with conn.transaction(isolation='serializable'):
            for counter, query in RECONCILE_QUERIES.items():
                corrected[counter] = row_count(await conn.execute(query))
    return corrected

async def reconcile_counters(pool=None) -> Dict[str, int]:
    """Recompute every counter and fix the rows that drifted.
    
    Args:
        pool: Optional database pool. If not provided, will get from database module.
        
    Returns:
        Dict mapping each counter to the number of rows corrected
    """
    pool = pool or await get_pool()
    corrected = await _reconcile_pass(pool)
    
    for counter, rows in corrected.items():
        if rows:
            logger.warning(f"Corrected {counter} on {rows} rows")
    return corrected

async def run_worker(interval: int):
    """Main worker loop.
    
    Args:
        interval: Seconds between passes
    """
    logger.info(f"Counter reconciliation worker starting up, interval {interval}s")
    while True:
        try:
            await reconcile_counters()
        except Exception as e:
            logger.error(f"Error in reconciliation pass: {str(e)}")
            logger.error(traceback.format_exc())
        
        await asyncio.sleep(interval)

if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    
    async def main():
        try:
            await reconcile_counters()
        finally:
            await db_close()
    
    asyncio.run(main())
