"""Exhibitions module for artist-run shows and their admin review.

An artist submits an exhibition as a DRAFT or for review (PENDING). Admins
approve or reject it; only APPROVED and published exhibitions are listed
publicly, and only approved ones can be promoted. Editing an exhibition
clears its review and promotion, and approved exhibitions cannot be edited.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from database import get_pool, paginate
from errors import ForbiddenError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

STATUSES = ('DRAFT', 'PENDING', 'APPROVED', 'REJECTED')

REVIEW_ACTIONS = {'APPROVE': 'APPROVED', 'REJECT': 'REJECTED'}

# Fields an artist may set on their exhibition
MUTABLE_FIELDS = {
    'title',
    'description',
    'location',
    'start_date',
    'end_date',
    'cover_image',
    'gallery_images',
    'submission_notes',
    'status'
}

REQUIRED_TEXT_FIELDS = ('title', 'description', 'location')

# Cleared whenever the artist edits the exhibition
REVIEW_RESET = '''
    reviewed_by = NULL, reviewed_at = NULL, review_notes = NULL,
    is_promoted = false, promoted_at = NULL, promotion_notes = NULL
'''

EXHIBITION_COLUMNS = '''
    e.id, e.artist_id, e.title, e.description, e.location, e.start_date,
    e.end_date, e.cover_image, e.gallery_images, e.status, e.submission_notes,
    e.reviewed_by, e.reviewed_at, e.review_notes, e.is_promoted, e.promoted_at,
    e.promotion_notes, e.is_published, e.created_at, e.updated_at,
    u.name AS artist_name, u.avatar AS artist_avatar, u.is_verified AS artist_is_verified
'''

EXHIBITION_JOINS = 'FROM exhibitions e LEFT JOIN users u ON u.id = e.artist_id'

def _timestamp(value: Any, field: str) -> datetime:
    """Coerce a date or ISO string into a naive UTC datetime."""
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace('Z', '+00:00'))
        except ValueError:
            raise ValidationError(f"{field} must be a date")
    if not isinstance(value, datetime):
        raise ValidationError(f"{field} must be a date")
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value

def _validate_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Check user supplied exhibition fields and coerce their types.
    
    Raises:
        ValidationError: If a field is unknown or invalid
    """
    unknown = set(fields) - MUTABLE_FIELDS
    if unknown:
        raise ValidationError(f"Unknown exhibition fields: {', '.join(sorted(unknown))}")
    
    validated = dict(fields)
    for field in REQUIRED_TEXT_FIELDS:
        if field in validated:
            validated[field] = (validated[field] or '').strip()
            if not validated[field]:
                raise ValidationError(f"{field.capitalize()} is required")
    
    for field in ('start_date', 'end_date'):
        if field in validated:
            validated[field] = _timestamp(validated[field], field)
    
    if 'status' in validated:
        # Artists either keep a draft or send it for review
        validated['status'] = 'DRAFT' if validated['status'] == 'DRAFT' else 'PENDING'
    if 'gallery_images' in validated:
        validated['gallery_images'] = list(validated['gallery_images'] or [])
    for field in ('cover_image', 'submission_notes'):
        if field in validated:
            validated[field] = validated[field] or None
    
    return validated

def _check_dates(start_date: datetime, end_date: datetime) -> None:
    if end_date < start_date:
        raise ValidationError("End date must be on or after the start date")

class ExhibitionManager:
    """Manager class for exhibitions."""
    
    def __init__(self, pool=None):
        """Initialize the exhibition manager.
        
        Args:
            pool: Optional database pool. If not provided, will get from database module.
        """
        self.pool = pool
    
    async def ensure_pool(self):
        """Ensure we have a database pool."""
        if not self.pool:
            self.pool = await get_pool()
    
    async def _fetch(self, conn, exhibition_id) -> Dict[str, Any]:
        row = await conn.fetchrow(
            f'SELECT {EXHIBITION_COLUMNS} {EXHIBITION_JOINS} WHERE e.id = $1',
            exhibition_id
        )
        if not row:
            raise NotFoundError("Exhibition not found")
        return dict(row)
    
    async def search_exhibitions(
        self,
        page: int = 1,
        limit: int = 15,
        status: Optional[str] = None,
        artist_id: Optional[Union[str, uuid.UUID]] = None,
        promoted: bool = False,
        search: Optional[str] = None,
        published_only: bool = False
    ) -> Dict[str, Any]:
        """Search exhibitions with various filters, newest first.
        
        Args:
            page: 1-based page number
            limit: Page size
            status: Optional status to filter by
            artist_id: Optional artist to filter by
            promoted: Only promoted exhibitions when true
            search: Optional text matched against title, description and location
            published_only: Only published exhibitions when true
        
        Returns:
            Dict containing exhibitions and pagination
        """
        if status and status not in STATUSES:
            raise ValidationError(f"Status must be one of: {', '.join(STATUSES)}")
        
        await self.ensure_pool()
        
        conditions = 'WHERE 1=1'
        params: List[Any] = []
        param_idx = 1
        
        if status:
            conditions += f" AND e.status = ${param_idx}"
            params.append(status)
            param_idx += 1
        
        if artist_id:
            conditions += f" AND e.artist_id = ${param_idx}"
            params.append(artist_id)
            param_idx += 1
        
        if search and search.strip():
            conditions += (
                f" AND (e.title ILIKE ${param_idx} OR e.description ILIKE ${param_idx}"
                f" OR e.location ILIKE ${param_idx})"
            )
            params.append(f"%{search.strip()}%")
            param_idx += 1
        
        if promoted:
            conditions += " AND e.is_promoted"
        if published_only:
            conditions += " AND e.is_published"
        
        # Public listings show promoted shows first, then the soonest
        order = 'e.is_promoted DESC, e.start_date ASC' if published_only else 'e.created_at DESC'
        
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                f'''
                SELECT {EXHIBITION_COLUMNS} {EXHIBITION_JOINS}
                {conditions}
                ORDER BY {order}
                LIMIT ${param_idx} OFFSET ${param_idx + 1}
                ''',
                *params,
                limit,
                (page - 1) * limit
            )
            total = await conn.fetchval(
                f'SELECT COUNT(*) FROM exhibitions e {conditions}',
                *params
            )
        
        return {
            'exhibitions': [dict(row) for row in rows],
            'pagination': paginate(page, limit, total)
        }
    
    async def list_approved(
        self,
        page: int = 1,
        limit: int = 9,
        search: Optional[str] = None,
        artist_id: Optional[Union[str, uuid.UUID]] = None,
        promoted: bool = False
    ) -> Dict[str, Any]:
        """List the approved, published exhibitions shown to everyone."""
        return await self.search_exhibitions(
            page=page,
            limit=limit,
            status='APPROVED',
            artist_id=artist_id,
            promoted=promoted,
            search=search,
            published_only=True
        )
    
    async def get_exhibition(
        self,
        exhibition_id: Union[str, uuid.UUID],
        viewer: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Get an exhibition.
        
        Exhibitions that are not approved are only visible to their artist and admins.
        
        Raises:
            NotFoundError: If the exhibition doesn't exist
            ForbiddenError: If the viewer may not see it
        """
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            exhibition = await self._fetch(conn, exhibition_id)
        
        if exhibition['status'] != 'APPROVED':
            is_owner = viewer is not None and str(viewer['id']) == str(exhibition['artist_id'])
            if not is_owner and (viewer is None or viewer['role'] != 'ADMIN'):
                raise ForbiddenError("You are not authorized to view this exhibition")
        return exhibition
    
    async def create_exhibition(
        self,
        artist_id: Union[str, uuid.UUID],
        fields: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Create an exhibition, as a draft or submitted for review.
        
        Raises:
            ValidationError: If a required field is missing or invalid
        """
        fields = _validate_fields(fields)
        for field in REQUIRED_TEXT_FIELDS + ('start_date', 'end_date'):
            if field not in fields:
                raise ValidationError(f"{field.replace('_', ' ').capitalize()} is required")
        _check_dates(fields['start_date'], fields['end_date'])
        
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            exhibition_id = await conn.fetchval(
                '''
                INSERT INTO exhibitions (
                    artist_id, title, description, location, start_date, end_date,
                    cover_image, gallery_images, submission_notes, status
                ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10)
                RETURNING id
                ''',
                artist_id,
                fields['title'],
                fields['description'],
                fields['location'],
                fields['start_date'],
                fields['end_date'],
                fields.get('cover_image'),
                fields.get('gallery_images', []),
                fields.get('submission_notes'),
                fields.get('status', 'PENDING')
            )
            exhibition = await self._fetch(conn, exhibition_id)
        
        logger.info(f"Created exhibition {exhibition_id} by artist {artist_id}")
        return exhibition
    
    async def update_exhibition(
        self,
        exhibition_id: Union[str, uuid.UUID],
        user: Dict[str, Any],
        updates: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Update an exhibition and clear its review and promotion.
        
        Raises:
            NotFoundError: If the exhibition doesn't exist
            ForbiddenError: If the user isn't its artist
            ValidationError: If it is approved or an update is invalid
        """
        updates = _validate_fields(updates)
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                current = await conn.fetchrow(
                    'SELECT artist_id, status, start_date, end_date FROM exhibitions WHERE id = $1 FOR UPDATE',
                    exhibition_id
                )
                if not current:
                    raise NotFoundError("Exhibition not found")
                if str(current['artist_id']) != str(user['id']):
                    raise ForbiddenError("Not authorized to update this exhibition")
                if current['status'] == 'APPROVED':
                    raise ValidationError("Approved exhibitions cannot be edited. Please contact support.")
                _check_dates(
                    updates.get('start_date', current['start_date']),
                    updates.get('end_date', current['end_date'])
                )
                
                update_fields = []
                params: List[Any] = [exhibition_id]
                for param_idx, (field, value) in enumerate(sorted(updates.items()), start=2):
                    update_fields.append(f"{field} = ${param_idx}")
                    params.append(value)
                update_fields.append(REVIEW_RESET.strip())
                
                await conn.execute(
                    f'''
                    UPDATE exhibitions
                    SET {", ".join(update_fields)},
                        updated_at = now()
                    WHERE id = $1
                    ''',
                    *params
                )
                exhibition = await self._fetch(conn, exhibition_id)
        
        logger.info(f"Updated exhibition {exhibition_id}")
        return exhibition
    
    async def delete_exhibition(
        self,
        exhibition_id: Union[str, uuid.UUID],
        user: Dict[str, Any]
    ) -> None:
        """Delete an exhibition.
        
        Raises:
            NotFoundError: If the exhibition doesn't exist
            ForbiddenError: If the user isn't its artist
        """
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                artist_id = await conn.fetchval(
                    'SELECT artist_id FROM exhibitions WHERE id = $1',
                    exhibition_id
                )
                if artist_id is None:
                    raise NotFoundError("Exhibition not found")
                if str(artist_id) != str(user['id']):
                    raise ForbiddenError("Not authorized to delete this exhibition")
                await conn.execute('DELETE FROM exhibitions WHERE id = $1', exhibition_id)
        
        logger.info(f"Deleted exhibition {exhibition_id}")
    
    async def review_exhibition(
        self,
        exhibition_id: Union[str, uuid.UUID],
        admin: Dict[str, Any],
        action: str,
        notes: Optional[str] = None
    ) -> Dict[str, Any]:
        """Approve or reject an exhibition. Rejection also ends any promotion.
        
        Raises:
            ValidationError: If the action is not APPROVE or REJECT
            NotFoundError: If the exhibition doesn't exist
        """
        if action not in REVIEW_ACTIONS:
            raise ValidationError("Invalid review action. Allowed actions are APPROVE or REJECT.")
        
        status = REVIEW_ACTIONS[action]
        promotion_reset = (
            ', is_promoted = false, promoted_at = NULL, promotion_notes = NULL'
            if status == 'REJECTED' else ''
        )
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            updated = await conn.fetchval(
                f'''
                UPDATE exhibitions
                SET status = $2, reviewed_by = $3, reviewed_at = now(),
                    review_notes = $4, updated_at = now(){promotion_reset}
                WHERE id = $1
                RETURNING id
                ''',
                exhibition_id,
                status,
                admin['id'],
                (notes or '').strip() or None
            )
            if not updated:
                raise NotFoundError("Exhibition not found")
            exhibition = await self._fetch(conn, exhibition_id)
        
        logger.info(f"Exhibition {exhibition_id} {status.lower()} by admin {admin['id']}")
        return exhibition
    
    async def set_promotion(
        self,
        exhibition_id: Union[str, uuid.UUID],
        enable: bool,
        notes: Optional[str] = None
    ) -> Dict[str, Any]:
        """Turn promotion of an approved exhibition on or off.
        
        Raises:
            NotFoundError: If the exhibition doesn't exist
            ValidationError: If it is not approved
        """
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                status = await conn.fetchval(
                    'SELECT status FROM exhibitions WHERE id = $1 FOR UPDATE',
                    exhibition_id
                )
                if status is None:
                    raise NotFoundError("Exhibition not found")
                if status != 'APPROVED':
                    raise ValidationError("Only approved exhibitions can be promoted")
                await conn.execute(
                    '''
                    UPDATE exhibitions
                    SET is_promoted = $2,
                        promoted_at = CASE WHEN $2 THEN now() ELSE NULL END,
                        promotion_notes = $3,
                        updated_at = now()
                    WHERE id = $1
                    ''',
                    exhibition_id,
                    enable,
                    (notes or '').strip() or None
                )
                exhibition = await self._fetch(conn, exhibition_id)
        
        return exhibition

__all__ = [
    'ExhibitionManager',
    'STATUSES',
    'REVIEW_ACTIONS'
]
