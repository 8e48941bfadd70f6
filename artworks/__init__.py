"""Artworks module for managing the marketplace catalog.

This module provides functionality for:
- Creating, updating and deleting artworks
- Browsing published artworks with filters, sorting and pagination
- Keeping the owning artist's artwork counter in step with the catalog
"""

import logging
import uuid
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional, Union, Any

from database import get_pool, paginate
from errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from cascade import CascadeManager
from .likes import LikeManager
from .comments import CommentManager

logger = logging.getLogger(__name__)

STATUSES = ('DRAFT', 'PUBLISHED', 'SOLD')

# Statuses an artist may set directly; SOLD is reached through a confirmed order
ARTIST_STATUSES = ('DRAFT', 'PUBLISHED')

# User-mutable fields for artworks
MUTABLE_FIELDS = {
    'title',
    'description',
    'price',
    'currency',
    'dimensions',
    'medium',
    'year',
    'category',
    'images',
    'status'
}

# System-managed fields (not directly mutable by users)
SYSTEM_FIELDS = {
    'id',
    'artist_id',
    'likes_count',
    'comments_count',
    'created_at',
    'updated_at'
}

# Text columns that are NOT NULL; an explicit null clears them to these values
TEXT_DEFAULTS = {
    'description': '',
    'dimensions': '',
    'medium': '',
    'category': 'General'
}

SORT_ORDERS = {
    'newest': 'a.created_at DESC',
    'popular': 'a.likes_count DESC, a.created_at DESC',
    'price-low': 'a.price ASC, a.created_at DESC',
    'price-high': 'a.price DESC, a.created_at DESC'
}

ARTWORK_COLUMNS = '''
    a.id, a.artist_id, a.title, a.description, a.price, a.currency,
    a.dimensions, a.medium, a.year, a.category, a.images, a.status,
    a.likes_count, a.comments_count, a.created_at, a.updated_at,
    u.name AS artist_name, u.avatar AS artist_avatar
'''

def _validate_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Check user supplied artwork fields and coerce their types.
    
    Raises:
        ValidationError: If a field is immutable, unknown or invalid
    """
    forbidden = set(fields) & SYSTEM_FIELDS
    if forbidden:
        raise ValidationError(f"Cannot update system-managed fields: {', '.join(sorted(forbidden))}")
    unknown = set(fields) - MUTABLE_FIELDS
    if unknown:
        raise ValidationError(f"Unknown artwork fields: {', '.join(sorted(unknown))}")
    
    validated = dict(fields)
    
    if 'title' in validated:
        validated['title'] = (validated['title'] or '').strip()
        if not validated['title']:
            raise ValidationError("Title is required")
    
    for field, default in TEXT_DEFAULTS.items():
        if field in validated and validated[field] is None:
            validated[field] = default
    
    if 'currency' in validated:
        validated['currency'] = (validated['currency'] or '').strip()
        if not validated['currency']:
            raise ValidationError("Currency cannot be empty")
    
    if 'price' in validated:
        try:
            validated['price'] = Decimal(str(validated['price']))
        except (InvalidOperation, TypeError, ValueError):
            raise ValidationError("Price must be a number")
        if validated['price'] < 0:
            raise ValidationError("Price must be positive")
    
    if 'status' in validated and validated['status'] not in ARTIST_STATUSES:
        raise ValidationError(f"Status must be one of: {', '.join(ARTIST_STATUSES)}")
    
    if 'images' in validated:
        validated['images'] = list(validated['images'] or [])
    
    return validated

class ArtworkManager:
    """Manager class for handling artwork operations."""
    
    def __init__(self, pool=None):
        """Initialize the artwork manager.
        
        Args:
            pool: Optional database pool. If not provided, will get from database module.
        """
        self.pool = pool
    
    async def ensure_pool(self):
        """Ensure we have a database pool."""
        if not self.pool:
            self.pool = await get_pool()
    
    async def create_artwork(
        self,
        artist_id: Union[str, uuid.UUID],
        fields: Dict[str, Any],
        default_currency: str = 'RWF'
    ) -> Dict[str, Any]:
        """Create an artwork and bump the artist's artwork counter.
        
        Args:
            artist_id: The owning artist's user id
            fields: Artwork fields, title and price are required
            default_currency: Currency used when none is given
            
        Returns:
            The created artwork
            
        Raises:
            ValidationError: If required fields are missing or invalid
        """
        fields = _validate_fields(fields)
        if 'title' not in fields:
            raise ValidationError("Title is required")
        if 'price' not in fields:
            raise ValidationError("Price is required")
        
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                artwork_id = await conn.fetchval(
                    '''
                    INSERT INTO artworks (
                        artist_id, title, description, price, currency,
                        dimensions, medium, year, category, images, status
                    ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11)
                    RETURNING id
                    ''',
                    artist_id,
                    fields['title'],
                    fields.get('description') or '',
                    fields['price'],
                    fields.get('currency') or default_currency,
                    fields.get('dimensions') or '',
                    fields.get('medium') or '',
                    fields.get('year'),
                    fields.get('category') or 'General',
                    fields.get('images', []),
                    fields.get('status') or 'PUBLISHED'
                )
                
                # Profiles are created on demand for artists registered before they had one
                await conn.execute(
                    '''
                    INSERT INTO artist_profiles (user_id, total_artworks)
                    VALUES ($1, 1)
                    ON CONFLICT (user_id) DO UPDATE
                    SET total_artworks = artist_profiles.total_artworks + 1,
                        updated_at = now()
                    ''',
                    artist_id
                )
        
        logger.info(f"Artist {artist_id} created artwork {artwork_id}")
        return await self.get_artwork(artwork_id)
    
    async def get_artwork(self, artwork_id: Union[str, uuid.UUID]) -> Dict[str, Any]:
        """Get an artwork by ID with its artist's name and avatar.
        
        Raises:
            NotFoundError: If the artwork doesn't exist
        """
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            artwork = await conn.fetchrow(
                f'''
                SELECT {ARTWORK_COLUMNS}
                FROM artworks a
                LEFT JOIN users u ON u.id = a.artist_id
                WHERE a.id = $1
                ''',
                artwork_id
            )
        
        if not artwork:
            raise NotFoundError("Artwork not found")
        return dict(artwork)
    
    async def update_artwork(
        self,
        artwork_id: Union[str, uuid.UUID],
        user: Dict[str, Any],
        updates: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Update the mutable fields of an artwork.
        
        Args:
            artwork_id: The artwork UUID
            user: The acting user; must own the artwork unless admin
            updates: Fields to change
            
        Raises:
            NotFoundError: If the artwork doesn't exist
            ForbiddenError: If the user doesn't own the artwork
            ValidationError: If an update is invalid
            ConflictError: If the status of a sold artwork would change
        """
        updates = _validate_fields(updates)
        artwork = await self.get_artwork(artwork_id)
        
        if str(artwork['artist_id']) != str(user['id']) and user['role'] != 'ADMIN':
            raise ForbiddenError("Not authorized to update this artwork")
        if 'status' in updates and artwork['status'] == 'SOLD':
            raise ConflictError("Artwork is already sold")
        if not updates:
            return artwork
        
        # Build update query dynamically based on provided fields
        update_fields = []
        params: List[Any] = [artwork_id]
        for param_idx, (field, value) in enumerate(sorted(updates.items()), start=2):
            update_fields.append(f"{field} = ${param_idx}")
            params.append(value)
        
        async with self.pool.acquire() as conn:
            await conn.execute(
                f'''
                UPDATE artworks
                SET {", ".join(update_fields)},
                    updated_at = now()
                WHERE id = $1
                ''',
                *params
            )
        
        return await self.get_artwork(artwork_id)
    
    async def delete_artwork(
        self,
        artwork_id: Union[str, uuid.UUID],
        user: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Delete an artwork and everything that references it.
        
        Raises:
            NotFoundError: If the artwork doesn't exist
            ForbiddenError: If the user doesn't own the artwork
        """
        artwork = await self.get_artwork(artwork_id)
        if str(artwork['artist_id']) != str(user['id']) and user['role'] != 'ADMIN':
            raise ForbiddenError("Not authorized to delete this artwork")
        
        return await CascadeManager(self.pool).delete_artwork(artwork_id)
    
    async def list_artworks(
        self,
        page: int = 1,
        limit: int = 12,
        category: Optional[str] = None,
        artist_id: Optional[Union[str, uuid.UUID]] = None,
        search: Optional[str] = None,
        sort: Optional[str] = None,
        status: Optional[str] = 'PUBLISHED'
    ) -> Dict[str, Any]:
        """List artworks with filters.
        
        Args:
            page: 1-based page number
            limit: Page size
            category: Optional category to filter by
            artist_id: Optional artist to filter by
            search: Optional text to search in title and description
            sort: One of SORT_ORDERS, defaults to newest first
            status: Status to filter by, None for every status
            
        Returns:
            Dict containing artworks and pagination
        """
        await self.ensure_pool()
        
        order_by = SORT_ORDERS.get(sort or 'newest', SORT_ORDERS['newest'])
        conditions = ''
        params: List[Any] = []
        param_idx = 1
        
        if status:
            conditions += f" AND a.status = ${param_idx}"
            params.append(status)
            param_idx += 1
        
        if category:
            conditions += f" AND a.category = ${param_idx}"
            params.append(category)
            param_idx += 1
        
        if artist_id:
            conditions += f" AND a.artist_id = ${param_idx}"
            params.append(artist_id)
            param_idx += 1
        
        if search:
            conditions += f" AND (a.title ILIKE ${param_idx} OR a.description ILIKE ${param_idx})"
            params.append(f"%{search}%")
            param_idx += 1
        
        offset = (page - 1) * limit
        
        async with self.pool.acquire() as conn:
            total = await conn.fetchval(
                f'SELECT COUNT(*) FROM artworks a WHERE 1=1{conditions}',
                *params
            )
            rows = await conn.fetch(
                f'''
                SELECT {ARTWORK_COLUMNS}
                FROM artworks a
                LEFT JOIN users u ON u.id = a.artist_id
                WHERE 1=1{conditions}
                ORDER BY {order_by}
                LIMIT ${param_idx} OFFSET ${param_idx + 1}
                ''',
                *params,
                limit,
                offset
            )
        
        return {
            'artworks': [dict(row) for row in rows],
            'pagination': paginate(page, limit, total)
        }

__all__ = [
    'ArtworkManager',
    'LikeManager',
    'CommentManager',
    'STATUSES',
    'MUTABLE_FIELDS'
]
