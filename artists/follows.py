"""Follow graph between users and artists.

A follow is a single (follower_id, artist_id) row. Its existence is the only
"following" state and the follower count is always counted from the rows,
so there is nothing to drift.
"""

import logging
import uuid
from typing import Any, Callable, Dict, List, Optional, Union

from database import get_pool
from errors import NotFoundError, ValidationError
from notifications import dispatch

logger = logging.getLogger(__name__)

class FollowManager:
    """Manager class for following and unfollowing artists."""
    
    def __init__(self, pool=None, notifier: Optional[Callable] = None):
        """Initialize the follow manager.
        
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
    
    async def follow_artist(
        self,
        follower_id: Union[str, uuid.UUID],
        artist_id: Union[str, uuid.UUID],
        follower_name: Optional[str] = None
    ) -> Dict[str, Any]:
        """Follow an artist. Following twice is a no-op.
        
        Args:
            follower_id: The following user
            artist_id: The artist to follow
            follower_name: Name used in the artist's notification
            
        Returns:
            Dict containing follower_count and is_following (always True)
            
        Raises:
            ValidationError: If the user tries to follow themselves
            NotFoundError: If the artist doesn't exist
        """
        if str(follower_id) == str(artist_id):
            raise ValidationError("You cannot follow yourself")
        
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                artist = await conn.fetchrow(
                    "SELECT id FROM users WHERE id = $1 AND role = 'ARTIST'",
                    artist_id
                )
                if not artist:
                    raise NotFoundError("Artist not found")
                
                created = await conn.fetchval(
                    '''
                    INSERT INTO follows (follower_id, artist_id)
                    VALUES ($1, $2)
                    ON CONFLICT (follower_id, artist_id) DO NOTHING
                    RETURNING artist_id
                    ''',
                    follower_id,
                    artist_id
                )
                
                follower_count = await conn.fetchval(
                    'SELECT COUNT(*) FROM follows WHERE artist_id = $1',
                    artist_id
                )
        
        if created:
            logger.info(f"User {follower_id} now follows artist {artist_id}")
            self.notifier(
                artist_id,
                'FOLLOW',
                f"{follower_name or 'Someone'} started following you",
                {'follower_id': follower_id}
            )
        
        return {
            'follower_count': follower_count,
            'is_following': True
        }
    
    async def unfollow_artist(
        self,
        follower_id: Union[str, uuid.UUID],
        artist_id: Union[str, uuid.UUID]
    ) -> Dict[str, Any]:
        """Stop following an artist. Unfollowing when not following is a no-op."""
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                await conn.execute(
                    'DELETE FROM follows WHERE follower_id = $1 AND artist_id = $2',
                    follower_id,
                    artist_id
                )
                follower_count = await conn.fetchval(
                    'SELECT COUNT(*) FROM follows WHERE artist_id = $1',
                    artist_id
                )
        
        return {
            'follower_count': follower_count,
            'is_following': False
        }
    
    async def get_following(self, user_id: Union[str, uuid.UUID]) -> List[Dict[str, Any]]:
        """Get the artists a user follows, most recent first."""
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                '''
                SELECT u.id, u.name, u.avatar, p.bio, p.location,
                       p.total_artworks, f.created_at AS followed_at
                FROM follows f
                JOIN users u ON u.id = f.artist_id
                LEFT JOIN artist_profiles p ON p.user_id = f.artist_id
                WHERE f.follower_id = $1
                ORDER BY f.created_at DESC
                ''',
                user_id
            )
        
        return [dict(row) for row in rows]
    
    async def get_followers(self, artist_id: Union[str, uuid.UUID]) -> List[Dict[str, Any]]:
        """Get the users following an artist, most recent first."""
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                '''
                SELECT u.id, u.name, u.avatar, f.created_at AS followed_at
                FROM follows f
                JOIN users u ON u.id = f.follower_id
                WHERE f.artist_id = $1
                ORDER BY f.created_at DESC
                ''',
                artist_id
            )
        
        return [dict(row) for row in rows]
    
    async def follower_count(self, artist_id: Union[str, uuid.UUID]) -> int:
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            count = await conn.fetchval(
                'SELECT COUNT(*) FROM follows WHERE artist_id = $1',
                artist_id
            )
        return count or 0
    
    async def is_following(
        self,
        follower_id: Union[str, uuid.UUID],
        artist_id: Union[str, uuid.UUID]
    ) -> bool:
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            following = await conn.fetchval(
                'SELECT EXISTS(SELECT 1 FROM follows WHERE follower_id = $1 AND artist_id = $2)',
                follower_id,
                artist_id
            )
        return bool(following)
