"""Cascade module for multi-table deletes.

Nothing in the schema declares foreign keys, so removing a user or an
artwork means removing every row that points at it by hand. Each delete is
an ordered plan of named steps:
1. Steps run in order on one connection inside one transaction
2. Every finished step is logged with the number of rows it touched
3. A failing step rolls the whole plan back and raises `CascadeError`
   naming the steps that had completed and the one that failed

Counters on rows that survive the delete (likes_count, comments_count,
total_artworks) are decremented by the same plan.
"""

import logging
import uuid
from typing import Any, Dict, List, NamedTuple, Optional, Sequence, Union

from database import get_pool
from errors import MarketError, NotFoundError

logger = logging.getLogger(__name__)

class CascadeStep(NamedTuple):
    """One statement of a cascade plan.
    
    A `counted` step selects its own row count (for statements whose
    command status would describe a follow-up update instead).
    """
    name: str
    sql: str
    args: Sequence[Any] = ()
    counted: bool = False

class CascadeError(MarketError):
    """Raised when a cascade step fails; the plan's transaction is rolled back."""
    status_code = 500
    
    def __init__(self, plan: str, completed: List[str], failed: str, cause: Exception):
        self.plan = plan
        self.completed = completed
        self.failed = failed
        self.cause = cause
        super().__init__(
            f"Cascade '{plan}' failed at step '{failed}' after "
            f"{len(completed)} completed steps: {cause}"
        )

def row_count(status: Any) -> int:
    """Extract the row count from a command status such as 'DELETE 3'."""
    if isinstance(status, str):
        tail = status.rsplit(' ', 1)[-1]
        if tail.isdigit():
            return int(tail)
    return 0

async def run_plan(conn, plan: str, steps: Sequence[CascadeStep]) -> Dict[str, int]:
    """Run cascade steps in order on a connection that is inside a transaction.
    
    Args:
        conn: Connection with an open transaction
        plan: Plan name used in logs and errors
        steps: The ordered steps
        
    Returns:
        Dict mapping each step name to the number of rows it touched
        
    Raises:
        CascadeError: If any step fails
    """
    counts: Dict[str, int] = {}
    for step in steps:
        try:
            if step.counted:
                rows = int(await conn.fetchval(step.sql, *step.args) or 0)
            else:
                rows = row_count(await conn.execute(step.sql, *step.args))
        except Exception as e:
            logger.error(
                f"[{plan}] step '{step.name}' failed after {list(counts)}: {e}"
            )
            raise CascadeError(plan, list(counts), step.name, e) from e
        counts[step.name] = rows
        logger.info(f"[{plan}] {step.name}: {counts[step.name]} rows")
    return counts

# Subquery selecting the comments attached to a set of artworks
_ARTWORK_COMMENTS = 'SELECT id FROM comments WHERE artwork_id IN ({artworks})'

def _artwork_dependents(artworks: str, args: Sequence[Any]) -> List[CascadeStep]:
    """Steps removing every row that references the selected artworks.
    
    Args:
        artworks: SQL selecting artwork ids, using the given args
        args: Arguments for the selection
    """
    comments = _ARTWORK_COMMENTS.format(artworks=artworks)
    return [
        CascadeStep(
            'artwork_comment_likes',
            f'DELETE FROM comment_likes WHERE comment_id IN ({comments})',
            args
        ),
        CascadeStep('artwork_likes', f'DELETE FROM likes WHERE artwork_id IN ({artworks})', args),
        CascadeStep('artwork_comments', f'DELETE FROM comments WHERE artwork_id IN ({artworks})', args),
        CascadeStep('artwork_reviews', f'DELETE FROM reviews WHERE artwork_id IN ({artworks})', args),
        CascadeStep('artwork_orders', f'DELETE FROM orders WHERE artwork_id IN ({artworks})', args),
        CascadeStep('artwork_cart_items', f'DELETE FROM cart_items WHERE artwork_id IN ({artworks})', args),
        CascadeStep('artwork_page_views', f'DELETE FROM page_views WHERE artwork_id IN ({artworks})', args)
    ]

def artwork_plan(artwork_id: Union[str, uuid.UUID], artist_id: Union[str, uuid.UUID]) -> List[CascadeStep]:
    """Build the plan deleting one artwork."""
    steps = _artwork_dependents('$1', (artwork_id,))
    steps.append(CascadeStep('artwork', 'DELETE FROM artworks WHERE id = $1', (artwork_id,)))
    steps.append(CascadeStep(
        'artist_total_artworks',
        '''
        UPDATE artist_profiles
        SET total_artworks = GREATEST(total_artworks - 1, 0),
            updated_at = now()
        WHERE user_id = $1
        ''',
        (artist_id,)
    ))
    return steps

def user_plan(user_id: Union[str, uuid.UUID]) -> List[CascadeStep]:
    """Build the plan deleting a user and everything they produced."""
    args = (user_id,)
    owned = 'SELECT id FROM artworks WHERE artist_id = $1'
    # Comments by the user plus the direct replies to them
    authored = '''
        SELECT id FROM comments
        WHERE user_id = $1
           OR parent_comment_id IN (SELECT id FROM comments WHERE user_id = $1)
    '''
    
    steps = _artwork_dependents(owned, args)
    steps.append(CascadeStep('owned_artworks', 'DELETE FROM artworks WHERE artist_id = $1', args))
    steps.extend([
        CascadeStep(
            'likes',
            '''
            WITH removed AS (
                DELETE FROM likes WHERE user_id = $1 RETURNING artwork_id
            ), decremented AS (
                UPDATE artworks a
                SET likes_count = GREATEST(a.likes_count - r.n, 0)
                FROM (SELECT artwork_id, COUNT(*) AS n FROM removed GROUP BY artwork_id) r
                WHERE a.id = r.artwork_id
                RETURNING a.id
            )
            SELECT COUNT(*) FROM removed
            ''',
            args,
            counted=True
        ),
        CascadeStep(
            'comment_likes_on_comments',
            f'DELETE FROM comment_likes WHERE comment_id IN ({authored})',
            args
        ),
        CascadeStep(
            'comments',
            f'''
            WITH removed AS (
                DELETE FROM comments WHERE id IN ({authored}) RETURNING artwork_id
            ), decremented AS (
                UPDATE artworks a
                SET comments_count = GREATEST(a.comments_count - r.n, 0)
                FROM (SELECT artwork_id, COUNT(*) AS n FROM removed GROUP BY artwork_id) r
                WHERE a.id = r.artwork_id
                RETURNING a.id
            )
            SELECT COUNT(*) FROM removed
            ''',
            args,
            counted=True
        ),
        CascadeStep('comment_likes', 'DELETE FROM comment_likes WHERE user_id = $1', args),
        CascadeStep('reviews', 'DELETE FROM reviews WHERE user_id = $1', args),
        CascadeStep('orders', 'DELETE FROM orders WHERE buyer_id = $1 OR artist_id = $1', args),
        CascadeStep('notifications', 'DELETE FROM notifications WHERE user_id = $1', args),
        CascadeStep(
            'cart_items',
            'DELETE FROM cart_items WHERE cart_id IN (SELECT id FROM carts WHERE user_id = $1)',
            args
        ),
        CascadeStep('cart', 'DELETE FROM carts WHERE user_id = $1', args),
        CascadeStep('follows', 'DELETE FROM follows WHERE follower_id = $1 OR artist_id = $1', args),
        CascadeStep('exhibitions', 'DELETE FROM exhibitions WHERE artist_id = $1', args),
        CascadeStep(
            'verification_comments',
            'DELETE FROM verification_comments WHERE request_id IN (SELECT id FROM verification_requests WHERE user_id = $1)',
            args
        ),
        CascadeStep('verification_request', 'DELETE FROM verification_requests WHERE user_id = $1', args),
        CascadeStep('artist_page_views', 'DELETE FROM page_views WHERE artist_id = $1', args),
        # Views by the user stay in the artists' analytics as anonymous views
        CascadeStep('viewer_page_views', 'UPDATE page_views SET user_id = NULL WHERE user_id = $1', args),
        CascadeStep('artist_profile', 'DELETE FROM artist_profiles WHERE user_id = $1', args),
        CascadeStep('user', 'DELETE FROM users WHERE id = $1', args)
    ])
    return steps

class CascadeManager:
    """Manager class running the user and artwork delete plans."""
    
    def __init__(self, pool=None):
        self.pool = pool
    
    async def ensure_pool(self):
        """Ensure we have a database pool."""
        if not self.pool:
            self.pool = await get_pool()
    
    async def delete_artwork(self, artwork_id: Union[str, uuid.UUID]) -> Dict[str, Any]:
        """Delete an artwork with its likes, comments, reviews, orders and cart items.
        
        Returns:
            Dict with the artwork id and the rows touched per step
            
        Raises:
            NotFoundError: If the artwork doesn't exist
            CascadeError: If a step fails
        """
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                artist_id = await conn.fetchval(
                    'SELECT artist_id FROM artworks WHERE id = $1',
                    artwork_id
                )
                if artist_id is None:
                    raise NotFoundError("Artwork not found")
                counts = await run_plan(conn, 'delete_artwork', artwork_plan(artwork_id, artist_id))
        
        logger.info(f"Deleted artwork {artwork_id} of artist {artist_id}")
        return {'artwork_id': artwork_id, 'steps': counts}
    
    async def delete_user(self, user_id: Union[str, uuid.UUID]) -> Dict[str, Any]:
        """Delete a user and every row that references them or their artworks.
        
        Raises:
            NotFoundError: If the user doesn't exist
            CascadeError: If a step fails
        """
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                exists = await conn.fetchval('SELECT EXISTS(SELECT 1 FROM users WHERE id = $1)', user_id)
                if not exists:
                    raise NotFoundError("User not found")
                counts = await run_plan(conn, 'delete_user', user_plan(user_id))
        
        logger.info(f"Deleted user {user_id}")
        return {'user_id': user_id, 'steps': counts}

__all__ = [
    'CascadeManager',
    'CascadeStep',
    'CascadeError',
    'run_plan',
    'row_count',
    'artwork_plan',
    'user_plan'
]
