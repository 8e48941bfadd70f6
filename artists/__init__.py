"""Artists module for artist profiles, statistics and search.

Every user with the ARTIST role has at most one artist_profiles row. Rows are
created at registration or, for older accounts, on the first profile update
or artwork upload.
"""

import logging
import uuid
from typing import Dict, List, Optional, Union, Any

from database import get_pool, paginate
from errors import NotFoundError, ValidationError
from .follows import FollowManager

logger = logging.getLogger(__name__)

PROFILE_FIELDS = {'bio', 'location', 'phone', 'website', 'banner_image'}
SOCIAL_FIELDS = {'instagram', 'facebook', 'twitter'}
USER_FIELDS = {'name', 'avatar'}

# Profile columns that may hold null
NULLABLE_FIELDS = {'banner_image'}

PROFILE_COLUMNS = '''
    u.id, u.name, u.avatar, u.is_verified, u.created_at,
    COALESCE(p.bio, '') AS bio,
    COALESCE(p.location, '') AS location,
    COALESCE(p.phone, '') AS phone,
    COALESCE(p.website, '') AS website,
    COALESCE(p.instagram, '') AS instagram,
    COALESCE(p.facebook, '') AS facebook,
    COALESCE(p.twitter, '') AS twitter,
    p.banner_image,
    COALESCE(p.total_artworks, 0) AS total_artworks,
    (SELECT COUNT(*) FROM follows f WHERE f.artist_id = u.id) AS follower_count
'''

def _format_profile(row) -> Dict[str, Any]:
    profile = dict(row)
    profile['social_links'] = {
        field: profile.pop(field) for field in sorted(SOCIAL_FIELDS)
    }
    return profile

class ArtistManager:
    """Manager class for artist profiles."""
    
    def __init__(self, pool=None):
        """Initialize the artist manager.
        
        Args:
            pool: Optional database pool. If not provided, will get from database module.
        """
        self.pool = pool
    
    async def ensure_pool(self):
        """Ensure we have a database pool."""
        if not self.pool:
            self.pool = await get_pool()
    
    async def get_profile(
        self,
        artist_id: Union[str, uuid.UUID],
        viewer_id: Optional[Union[str, uuid.UUID]] = None
    ) -> Dict[str, Any]:
        """Get an artist's public profile.
        
        Args:
            artist_id: The artist's user id
            viewer_id: Optional viewing user, used for is_following
            
        Returns:
            Profile dict including social_links, follower_count and is_following
            
        Raises:
            NotFoundError: If no artist has this id
        """
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f'''
                SELECT {PROFILE_COLUMNS}
                FROM users u
                LEFT JOIN artist_profiles p ON p.user_id = u.id
                WHERE u.id = $1 AND u.role = 'ARTIST'
                ''',
                artist_id
            )
            if not row:
                raise NotFoundError("Artist not found")
            
            is_following = False
            if viewer_id is not None:
                is_following = bool(await conn.fetchval(
                    'SELECT EXISTS(SELECT 1 FROM follows WHERE follower_id = $1 AND artist_id = $2)',
                    viewer_id,
                    artist_id
                ))
        
        profile = _format_profile(row)
        profile['is_following'] = is_following
        return profile
    
    async def update_profile(
        self,
        user_id: Union[str, uuid.UUID],
        updates: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Update an artist's profile, creating it when missing.
        
        Args:
            user_id: The artist's user id
            updates: Profile fields; `social_links` is merged key by key with
                the stored links, and `name`/`avatar` update the user row
                
        Raises:
            ValidationError: If an unknown field is given
        """
        updates = dict(updates)
        social = updates.pop('social_links', None) or {}
        unknown = (set(updates) - PROFILE_FIELDS - USER_FIELDS) | (set(social) - SOCIAL_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown profile fields: {', '.join(sorted(unknown))}")
        if 'name' in updates and not (updates['name'] or '').strip():
            raise ValidationError("Name cannot be empty")
        
        profile_updates = {
            k: v if k in NULLABLE_FIELDS else v or ''
            for k, v in updates.items() if k in PROFILE_FIELDS
        }
        profile_updates.update({k: v or '' for k, v in social.items()})
        user_updates = {k: v for k, v in updates.items() if k in USER_FIELDS}
        
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                await conn.execute(
                    'INSERT INTO artist_profiles (user_id) VALUES ($1) ON CONFLICT (user_id) DO NOTHING',
                    user_id
                )
                
                for table, key, fields in (
                    ('artist_profiles', 'user_id', profile_updates),
                    ('users', 'id', user_updates)
                ):
                    if not fields:
                        continue
                    update_fields = []
                    params: List[Any] = [user_id]
                    for param_idx, (field, value) in enumerate(sorted(fields.items()), start=2):
                        update_fields.append(f"{field} = ${param_idx}")
                        params.append(value)
                    await conn.execute(
                        f'''
                        UPDATE {table}
                        SET {", ".join(update_fields)},
                            updated_at = now()
                        WHERE {key} = $1
                        ''',
                        *params
                    )
        
        logger.info(f"Updated profile of artist {user_id}")
        return await self.get_profile(user_id)
    
    async def get_artworks(
        self,
        artist_id: Union[str, uuid.UUID],
        page: int = 1,
        limit: int = 12,
        include_unpublished: bool = False
    ) -> Dict[str, Any]:
        """Get an artist's artworks, newest first.
        
        Drafts and sold artworks are only included for the artist themselves.
        """
        await self.ensure_pool()
        offset = (page - 1) * limit
        status_filter = '' if include_unpublished else "AND status = 'PUBLISHED'"
        
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                f'''
                SELECT * FROM artworks
                WHERE artist_id = $1 {status_filter}
                ORDER BY created_at DESC
                LIMIT $2 OFFSET $3
                ''',
                artist_id,
                limit,
                offset
            )
            total = await conn.fetchval(
                f'SELECT COUNT(*) FROM artworks WHERE artist_id = $1 {status_filter}',
                artist_id
            )
        
        return {
            'artworks': [dict(row) for row in rows],
            'pagination': paginate(page, limit, total)
        }
    
    async def get_stats(self, artist_id: Union[str, uuid.UUID]) -> Dict[str, int]:
        """Get totals for an artist's dashboard.
        
        Returns:
            Dict containing total_artworks, total_likes, total_comments and followers
        """
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                '''
                SELECT
                    COUNT(*) AS total_artworks,
                    COALESCE(SUM(likes_count), 0) AS total_likes,
                    COALESCE(SUM(comments_count), 0) AS total_comments,
                    (SELECT COUNT(*) FROM follows WHERE artist_id = $1) AS followers
                FROM artworks
                WHERE artist_id = $1
                ''',
                artist_id
            )
        
        if not row:
            return {'total_artworks': 0, 'total_likes': 0, 'total_comments': 0, 'followers': 0}
        return {key: int(value) for key, value in dict(row).items()}
    
    async def search_artists(
        self,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 12
    ) -> Dict[str, Any]:
        """Search artists by name or location.
        
        Returns:
            Dict containing artists and pagination
        """
        await self.ensure_pool()
        offset = (page - 1) * limit
        
        conditions = "WHERE u.role = 'ARTIST'"
        params: List[Any] = []
        param_idx = 1
        if search:
            conditions += f" AND (u.name ILIKE ${param_idx} OR p.location ILIKE ${param_idx})"
            params.append(f"%{search}%")
            param_idx += 1
        
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                f'''
                SELECT {PROFILE_COLUMNS}
                FROM users u
                LEFT JOIN artist_profiles p ON p.user_id = u.id
                {conditions}
                ORDER BY u.created_at DESC
                LIMIT ${param_idx} OFFSET ${param_idx + 1}
                ''',
                *params,
                limit,
                offset
            )
            total = await conn.fetchval(
                f'''
                SELECT COUNT(*)
                FROM users u
                LEFT JOIN artist_profiles p ON p.user_id = u.id
                {conditions}
                ''',
                *params
            )
        
        return {
            'artists': [_format_profile(row) for row in rows],
            'pagination': paginate(page, limit, total)
        }

__all__ = [
    'ArtistManager',
    'FollowManager',
    'PROFILE_FIELDS',
    'SOCIAL_FIELDS'
]
