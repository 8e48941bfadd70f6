"""Artwork likes and the likes_count counter.

A row in `likes` is the only record of a user liking an artwork; the
artwork's likes_count mirrors the number of rows and is only ever moved by
atomic increments issued in the same transaction as the row change.
"""

import logging
import uuid
from typing import Any, Callable, Dict, Optional, Union

from database import get_pool
from errors import NotFoundError
from notifications import dispatch

logger = logging.getLogger(__name__)

class LikeManager:
    """Manager class for liking and unliking artworks."""
    
    def __init__(self, pool=None, notifier: Optional[Callable] = None):
        """Initialize the like manager.
        
        Args:
            pool: Optional database pool. If not provided, will get from database module.
            notifier: Optional callable used to send notifications, defaults to `dispatch`
        """
        self.pool = pool
        self.notifier = notifier or dispatch
    
    async def ensure_pool(self):
        """Ensure we have a database pool."""
        if not self.pool:
            self.pool = await get_pool()
    
    async def toggle_like(
        self,
        artwork_id: Union[str, uuid.UUID],
        user_id: Union[str, uuid.UUID],
        user_name: Optional[str] = None
    ) -> Dict[str, Any]:
        """Like an artwork, or remove the like if it already exists.
        
        Args:
            artwork_id: The artwork UUID
            user_id: The liking user
            user_name: Name used in the artist's notification
            
        Returns:
            Dict containing:
                - liked: Whether the user likes the artwork afterwards
                - likes_count: The artwork's like counter afterwards
                
        Raises:
            NotFoundError: If the artwork doesn't exist
        """
        await self.ensure_pool()
        inserted = False
        
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                artwork = await conn.fetchrow(
                    'SELECT id, artist_id, title FROM artworks WHERE id = $1',
                    artwork_id
                )
                if not artwork:
                    raise NotFoundError("Artwork not found")
                
                removed = await conn.fetchval(
                    '''
                    DELETE FROM likes
                    WHERE artwork_id = $1 AND user_id = $2
                    RETURNING user_id
                    ''',
                    artwork_id,
                    user_id
                )
                
                if removed:
                    liked = False
                    likes_count = await conn.fetchval(
                        '''
                        UPDATE artworks
                        SET likes_count = GREATEST(likes_count - 1, 0)
                        WHERE id = $1
                        RETURNING likes_count
                        ''',
                        artwork_id
                    )
                else:
                    liked = True
                    inserted = bool(await conn.fetchval(
                        '''
                        INSERT INTO likes (artwork_id, user_id)
                        VALUES ($1, $2)
                        ON CONFLICT (artwork_id, user_id) DO NOTHING
                        RETURNING user_id
                        ''',
                        artwork_id,
                        user_id
                    ))
                    if inserted:
                        likes_count = await conn.fetchval(
                            '''
                            UPDATE artworks
                            SET likes_count = likes_count + 1
                            WHERE id = $1
                            RETURNING likes_count
                            ''',
                            artwork_id
                        )
                    else:
                        # A concurrent request inserted the same like first
                        likes_count = await conn.fetchval(
                            'SELECT likes_count FROM artworks WHERE id = $1',
                            artwork_id
                        )
        
        if inserted and str(artwork['artist_id']) != str(user_id):
            self.notifier(
                artwork['artist_id'],
                'LIKE',
                f"{user_name or 'Someone'} liked your artwork \"{artwork['title']}\"",
                {'artwork_id': artwork_id, 'user_id': user_id}
            )
        
        return {
            'liked': liked,
            'likes_count': likes_count
        }
    
    async def has_liked(
        self,
        artwork_id: Union[str, uuid.UUID],
        user_id: Union[str, uuid.UUID]
    ) -> Dict[str, bool]:
        """Check whether a user likes an artwork."""
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            liked = await conn.fetchval(
                'SELECT EXISTS(SELECT 1 FROM likes WHERE artwork_id = $1 AND user_id = $2)',
                artwork_id,
                user_id
            )
        
        return {'liked': bool(liked)}
