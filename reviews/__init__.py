"""Reviews module for artwork ratings.

A user has at most one review per artwork; posting again replaces the
rating and comment of the existing review.
"""

import logging
import uuid
from typing import Dict, Union, Any

from database import get_pool, paginate
from errors import ForbiddenError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5

class ReviewManager:
    """Manager class for artwork reviews."""
    
    def __init__(self, pool=None):
        self.pool = pool
    
    async def ensure_pool(self):
        """Ensure we have a database pool."""
        if not self.pool:
            self.pool = await get_pool()
    
    async def upsert_review(
        self,
        artwork_id: Union[str, uuid.UUID],
        user_id: Union[str, uuid.UUID],
        rating: int,
        comment: str = ''
    ) -> Dict[str, Any]:
        """Create or replace a user's review of an artwork.
        
        The review is marked verified when the user has a confirmed or
        completed order for the artwork.
        
        Raises:
            ValidationError: If the rating is out of range
            NotFoundError: If the artwork doesn't exist
        """
        if not isinstance(rating, int) or isinstance(rating, bool) or not MIN_RATING <= rating <= MAX_RATING:
            raise ValidationError(f"Rating must be between {MIN_RATING} and {MAX_RATING}")
        
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            exists = await conn.fetchval(
                'SELECT EXISTS(SELECT 1 FROM artworks WHERE id = $1)',
                artwork_id
            )
            if not exists:
                raise NotFoundError("Artwork not found")
            
            review = await conn.fetchrow(
                '''
                INSERT INTO reviews (artwork_id, user_id, rating, comment, is_verified)
                VALUES ($1, $2, $3, $4, EXISTS(
                    SELECT 1 FROM orders
                    WHERE artwork_id = $1 AND buyer_id = $2
                      AND status IN ('CONFIRMED', 'COMPLETED')
                ))
                ON CONFLICT (artwork_id, user_id) DO UPDATE
                SET rating = excluded.rating,
                    comment = excluded.comment,
                    is_verified = excluded.is_verified,
                    updated_at = now()
                RETURNING *
                ''',
                artwork_id,
                user_id,
                rating,
                (comment or '').strip()
            )
        
        return dict(review)
    
    async def list_reviews(
        self,
        artwork_id: Union[str, uuid.UUID],
        page: int = 1,
        limit: int = 10
    ) -> Dict[str, Any]:
        """Get an artwork's reviews, newest first, with the rating summary.
        
        Returns:
            Dict containing reviews, average_rating, total_reviews and pagination
        """
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                '''
                SELECT r.*, u.name AS user_name, u.avatar AS user_avatar
                FROM reviews r
                LEFT JOIN users u ON u.id = r.user_id
                WHERE r.artwork_id = $1
                ORDER BY r.created_at DESC
                LIMIT $2 OFFSET $3
                ''',
                artwork_id,
                limit,
                (page - 1) * limit
            )
            summary = await conn.fetchrow(
                '''
                SELECT COUNT(*) AS total_reviews, AVG(rating) AS average_rating
                FROM reviews
                WHERE artwork_id = $1
                ''',
                artwork_id
            )
        
        total = summary['total_reviews'] if summary else 0
        average = summary['average_rating'] if summary else None
        
        return {
            'reviews': [dict(row) for row in rows],
            'average_rating': round(float(average), 1) if average is not None else 0,
            'total_reviews': total,
            'pagination': paginate(page, limit, total)
        }
    
    async def delete_review(
        self,
        review_id: Union[str, uuid.UUID],
        user: Dict[str, Any]
    ) -> None:
        """Delete a review.
        
        Raises:
            NotFoundError: If the review doesn't exist
            ForbiddenError: If the user neither wrote the review nor is admin
        """
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            owner = await conn.fetchval('SELECT user_id FROM reviews WHERE id = $1', review_id)
            if owner is None:
                raise NotFoundError("Review not found")
            if str(owner) != str(user['id']) and user['role'] != 'ADMIN':
                raise ForbiddenError("Not authorized to delete this review")
            
            await conn.execute('DELETE FROM reviews WHERE id = $1', review_id)
        
        logger.info(f"Deleted review {review_id}")

__all__ = ['ReviewManager', 'MIN_RATING', 'MAX_RATING']
