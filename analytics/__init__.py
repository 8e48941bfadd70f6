"""Analytics module for page views and the artist dashboards built on them.

Page views are recorded anonymously or for the signed-in user. A view of an
artwork page is attributed to the artwork's artist when the client doesn't
name one, so artist totals include every view of their artworks.
"""

import logging
import uuid
from typing import Any, Dict, Optional, Union

from database import get_pool
from errors import ForbiddenError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

PAGE_TYPES = ('artwork', 'artist', 'products', 'home', 'other')

DEFAULT_DAYS = 30
TOP_ARTWORKS_LIMIT = 10
RECENT_REVIEWS_LIMIT = 20

# Rows created within the last $2 days
WINDOW = "created_at >= now() - ($2::int * INTERVAL '1 day')"

def _round_rating(value) -> float:
    return round(float(value or 0), 1)

def _check_days(days: int) -> int:
    if not isinstance(days, int) or days < 1:
        raise ValidationError("Days must be a positive number")
    return days

class AnalyticsManager:
    """Manager class for page views and analytics."""
    
    def __init__(self, pool=None):
        self.pool = pool
    
    async def ensure_pool(self):
        """Ensure we have a database pool."""
        if not self.pool:
            self.pool = await get_pool()
    
    async def track_page_view(
        self,
        page_type: Optional[str] = None,
        artwork_id: Optional[Union[str, uuid.UUID]] = None,
        artist_id: Optional[Union[str, uuid.UUID]] = None,
        user_id: Optional[Union[str, uuid.UUID]] = None,
        referrer: Optional[str] = None,
        user_agent: Optional[str] = None,
        ip_address: Optional[str] = None
    ) -> Dict[str, Any]:
        """Record a page view.
        
        Args:
            page_type: One of PAGE_TYPES, defaults to 'other'
            artwork_id: The viewed artwork, if any
            artist_id: The viewed artist; taken from the artwork when omitted
            user_id: The signed-in viewer, None for anonymous views
            referrer: Referring page
            user_agent: Client user agent
            ip_address: Client address
        
        Returns:
            The stored page view
        
        Raises:
            ValidationError: If the page type is unknown
        """
        page_type = page_type or 'other'
        if page_type not in PAGE_TYPES:
            raise ValidationError(f"Page type must be one of: {', '.join(PAGE_TYPES)}")
        
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            view = await conn.fetchrow(
                '''
                INSERT INTO page_views (
                    artwork_id, artist_id, user_id, page_type, referrer, user_agent, ip_address
                ) VALUES (
                    $1, COALESCE($2, (SELECT artist_id FROM artworks WHERE id = $1)),
                    $3, $4, $5, $6, $7
                )
                RETURNING *
                ''',
                artwork_id,
                artist_id,
                user_id,
                page_type,
                referrer,
                user_agent,
                ip_address
            )
        
        return dict(view)
    
    async def get_artist_analytics(
        self,
        artist_id: Union[str, uuid.UUID],
        days: int = DEFAULT_DAYS
    ) -> Dict[str, Any]:
        """Summarise an artist's views and ratings over the last `days` days.
        
        Returns:
            Dict with the overview totals, views per artwork, per page type
            and per day, the most viewed artworks and the latest reviews
        """
        days = _check_days(days)
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            total_views = await conn.fetchval(
                f'SELECT COUNT(*) FROM page_views WHERE artist_id = $1 AND {WINDOW}',
                artist_id,
                days
            )
            artwork_views = await conn.fetch(
                f'''
                SELECT artwork_id, COUNT(*) AS views
                FROM page_views
                WHERE artist_id = $1 AND artwork_id IS NOT NULL AND {WINDOW}
                GROUP BY artwork_id
                ORDER BY views DESC
                ''',
                artist_id,
                days
            )
            by_page_type = await conn.fetch(
                f'''
                SELECT page_type, COUNT(*) AS count
                FROM page_views
                WHERE artist_id = $1 AND {WINDOW}
                GROUP BY page_type
                ORDER BY count DESC
                ''',
                artist_id,
                days
            )
            by_day = await conn.fetch(
                f'''
                SELECT to_char(created_at, 'YYYY-MM-DD') AS day, COUNT(*) AS views
                FROM page_views
                WHERE artist_id = $1 AND {WINDOW}
                GROUP BY day
                ORDER BY day ASC
                ''',
                artist_id,
                days
            )
            artworks = await conn.fetch(
                f'''
                SELECT a.id, a.title, a.images, a.price, a.likes_count,
                       COALESCE(v.views, 0) AS views,
                       COALESCE(r.average_rating, 0) AS average_rating,
                       COALESCE(r.total_reviews, 0) AS total_reviews
                FROM artworks a
                LEFT JOIN (
                    SELECT artwork_id, COUNT(*) AS views
                    FROM page_views
                    WHERE artist_id = $1 AND {WINDOW}
                    GROUP BY artwork_id
                ) v ON v.artwork_id = a.id
                LEFT JOIN (
                    SELECT artwork_id, AVG(rating) AS average_rating, COUNT(*) AS total_reviews
                    FROM reviews
                    GROUP BY artwork_id
                ) r ON r.artwork_id = a.id
                WHERE a.artist_id = $1
                ORDER BY views DESC, a.created_at DESC
                ''',
                artist_id,
                days
            )
            reviews = await conn.fetch(
                '''
                SELECT r.id, r.artwork_id, r.rating, r.comment, r.created_at,
                       a.title AS artwork_title, u.name AS user_name, u.avatar AS user_avatar
                FROM reviews r
                JOIN artworks a ON a.id = r.artwork_id
                LEFT JOIN users u ON u.id = r.user_id
                WHERE a.artist_id = $1
                ORDER BY r.created_at DESC
                LIMIT $2
                ''',
                artist_id,
                RECENT_REVIEWS_LIMIT
            )
        
        rated = [row for row in artworks if row['total_reviews']]
        average_rating = (
            sum(float(row['average_rating']) for row in rated) / len(rated) if rated else 0
        )
        
        return {
            'overview': {
                'total_views': total_views,
                'total_artworks': len(artworks),
                'total_reviews': sum(row['total_reviews'] for row in artworks),
                'average_rating': _round_rating(average_rating)
            },
            'artwork_views': [dict(row) for row in artwork_views],
            'views_by_page_type': [dict(row) for row in by_page_type],
            'views_by_day': [dict(row) for row in by_day],
            'top_artworks': [
                dict(row, average_rating=_round_rating(row['average_rating']))
                for row in artworks[:TOP_ARTWORKS_LIMIT]
            ],
            'reviews': [dict(row) for row in reviews]
        }
    
    async def get_artwork_analytics(
        self,
        artwork_id: Union[str, uuid.UUID],
        user: Dict[str, Any],
        days: int = DEFAULT_DAYS
    ) -> Dict[str, Any]:
        """Summarise an artwork's views and ratings for its artist.
        
        Raises:
            NotFoundError: If the artwork doesn't exist
            ForbiddenError: If the user isn't the artwork's artist
        """
        days = _check_days(days)
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            artwork = await conn.fetchrow(
                'SELECT id, artist_id, title, likes_count FROM artworks WHERE id = $1',
                artwork_id
            )
            if not artwork:
                raise NotFoundError("Artwork not found")
            if str(artwork['artist_id']) != str(user['id']):
                raise ForbiddenError("Access denied")
            
            all_time_views = await conn.fetchval(
                'SELECT COUNT(*) FROM page_views WHERE artwork_id = $1',
                artwork_id
            )
            window_views = await conn.fetchval(
                f'SELECT COUNT(*) FROM page_views WHERE artwork_id = $1 AND {WINDOW}',
                artwork_id,
                days
            )
            by_day = await conn.fetch(
                f'''
                SELECT to_char(created_at, 'YYYY-MM-DD') AS day, COUNT(*) AS views
                FROM page_views
                WHERE artwork_id = $1 AND {WINDOW}
                GROUP BY day
                ORDER BY day ASC
                ''',
                artwork_id,
                days
            )
            distribution = await conn.fetch(
                '''
                SELECT rating, COUNT(*) AS count
                FROM reviews
                WHERE artwork_id = $1
                GROUP BY rating
                ORDER BY rating DESC
                ''',
                artwork_id
            )
            reviews = await conn.fetch(
                '''
                SELECT r.id, r.rating, r.comment, r.is_verified, r.created_at,
                       u.name AS user_name, u.avatar AS user_avatar
                FROM reviews r
                LEFT JOIN users u ON u.id = r.user_id
                WHERE r.artwork_id = $1
                ORDER BY r.created_at DESC
                ''',
                artwork_id
            )
        
        total_reviews = len(reviews)
        average_rating = sum(row['rating'] for row in reviews) / total_reviews if total_reviews else 0
        
        return {
            'artwork': {
                'id': artwork['id'],
                'title': artwork['title'],
                'views': all_time_views,
                'likes': artwork['likes_count']
            },
            'analytics': {
                'total_views': window_views,
                'total_reviews': total_reviews,
                'average_rating': _round_rating(average_rating),
                'views_by_day': [dict(row) for row in by_day],
                'rating_distribution': [dict(row) for row in distribution]
            },
            'reviews': [dict(row) for row in reviews]
        }
    
    async def get_artwork_views(self, artwork_id: Union[str, uuid.UUID]) -> Dict[str, Any]:
        """Get the all-time view count of an artwork.
        
        Raises:
            NotFoundError: If the artwork doesn't exist
        """
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            exists = await conn.fetchval(
                'SELECT EXISTS(SELECT 1 FROM artworks WHERE id = $1)',
                artwork_id
            )
            if not exists:
                raise NotFoundError("Artwork not found")
            total = await conn.fetchval(
                'SELECT COUNT(*) FROM page_views WHERE artwork_id = $1',
                artwork_id
            )
        return {'artwork_id': artwork_id, 'total_views': total}

__all__ = [
    'AnalyticsManager',
    'PAGE_TYPES'
]
