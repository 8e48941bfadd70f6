"""Verification module for artist identity checks.

Each artist has at most one verification request. A pending or approved
request blocks new submissions; a rejected one is reused when the artist
submits again. Admins approve or reject pending requests, which sets the
artist's is_verified flag, and may comment on any request.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional, Union

from database import get_pool, paginate
from errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

STATUSES = ('PENDING', 'APPROVED', 'REJECTED')

REQUEST_COLUMNS = '''
    r.id, r.user_id, r.status, r.id_document, r.license, r.other_documents,
    r.submitted_at, r.reviewed_at, r.reviewed_by, r.rejection_reason, r.notes,
    r.created_at, r.updated_at,
    u.name AS user_name, u.email AS user_email, u.avatar AS user_avatar,
    rv.name AS reviewer_name
'''

REQUEST_JOINS = '''
    FROM verification_requests r
    LEFT JOIN users u ON u.id = r.user_id
    LEFT JOIN users rv ON rv.id = r.reviewed_by
'''

class VerificationManager:
    """Manager class for artist verification requests."""
    
    def __init__(self, pool=None):
        self.pool = pool
    
    async def ensure_pool(self):
        """Ensure we have a database pool."""
        if not self.pool:
            self.pool = await get_pool()
    
    async def _fetch(self, conn, request_id) -> Dict[str, Any]:
        row = await conn.fetchrow(f'SELECT {REQUEST_COLUMNS} {REQUEST_JOINS} WHERE r.id = $1', request_id)
        if not row:
            raise NotFoundError("Verification request not found")
        request = dict(row)
        request['comments'] = [dict(comment) for comment in await conn.fetch(
            '''
            SELECT c.id, c.comment, c.commented_by, c.commented_at, u.name AS commented_by_name
            FROM verification_comments c
            LEFT JOIN users u ON u.id = c.commented_by
            WHERE c.request_id = $1
            ORDER BY c.commented_at ASC
            ''',
            request_id
        )]
        return request
    
    async def submit_request(
        self,
        user_id: Union[str, uuid.UUID],
        id_document: Optional[str],
        license: Optional[str] = None,
        other_documents: Optional[List[str]] = None
    ) -> Dict[str, Any]:
        """Submit the user's documents for verification.
        
        Args:
            user_id: The submitting artist
            id_document: Link to the identity document
            license: Optional link to a license document
            other_documents: Optional links to further documents
        
        Returns:
            The pending request
        
        Raises:
            ValidationError: If the ID document is missing, a request is
                pending or the artist is already verified
        """
        if not (id_document or '').strip():
            raise ValidationError("ID document is required")
        
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                existing = await conn.fetchrow(
                    'SELECT id, status FROM verification_requests WHERE user_id = $1 FOR UPDATE',
                    user_id
                )
                if existing and existing['status'] == 'PENDING':
                    raise ValidationError("You already have a pending verification request")
                if existing and existing['status'] == 'APPROVED':
                    raise ValidationError("You are already verified")
                
                documents = (id_document.strip(), license or None, list(other_documents or []))
                if existing:
                    # Resubmission after a rejection reuses the request
                    request_id = existing['id']
                    await conn.execute(
                        '''
                        UPDATE verification_requests
                        SET status = 'PENDING', id_document = $2, license = $3,
                            other_documents = $4, submitted_at = now(),
                            reviewed_at = NULL, reviewed_by = NULL,
                            rejection_reason = NULL, notes = NULL, updated_at = now()
                        WHERE id = $1
                        ''',
                        request_id,
                        *documents
                    )
                else:
                    request_id = await conn.fetchval(
                        '''
                        INSERT INTO verification_requests (user_id, id_document, license, other_documents)
                        VALUES ($1, $2, $3, $4)
                        RETURNING id
                        ''',
                        user_id,
                        *documents
                    )
                request = await self._fetch(conn, request_id)
        
        logger.info(f"Verification request {request_id} submitted by {user_id}")
        return request
    
    async def get_status(self, user_id: Union[str, uuid.UUID]) -> Dict[str, Any]:
        """Get the user's verification request, if any."""
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            request_id = await conn.fetchval(
                'SELECT id FROM verification_requests WHERE user_id = $1',
                user_id
            )
            if request_id is None:
                return {'has_request': False, 'status': None}
            request = await self._fetch(conn, request_id)
        return {'has_request': True, 'status': request['status'], 'request': request}
    
    async def list_requests(
        self,
        status: Optional[str] = None,
        page: int = 1,
        limit: int = 10
    ) -> Dict[str, Any]:
        """List verification requests, newest first."""
        if status and status not in STATUSES:
            raise ValidationError(f"Status must be one of: {', '.join(STATUSES)}")
        
        await self.ensure_pool()
        conditions = 'WHERE r.status = $1' if status else ''
        params: List[Any] = [status] if status else []
        param_idx = len(params) + 1
        
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                f'''
                SELECT {REQUEST_COLUMNS} {REQUEST_JOINS}
                {conditions}
                ORDER BY r.created_at DESC
                LIMIT ${param_idx} OFFSET ${param_idx + 1}
                ''',
                *params,
                limit,
                (page - 1) * limit
            )
            total = await conn.fetchval(
                f'SELECT COUNT(*) FROM verification_requests r {conditions}',
                *params
            )
        
        return {
            'requests': [dict(row) for row in rows],
            'pagination': paginate(page, limit, total)
        }
    
    async def get_request(self, request_id: Union[str, uuid.UUID]) -> Dict[str, Any]:
        """Get a verification request with its comments.
        
        Raises:
            NotFoundError: If the request doesn't exist
        """
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            return await self._fetch(conn, request_id)
    
    async def review_request(
        self,
        request_id: Union[str, uuid.UUID],
        admin: Dict[str, Any],
        approve: bool,
        rejection_reason: Optional[str] = None,
        notes: Optional[str] = None
    ) -> Dict[str, Any]:
        """Approve or reject a pending request and set the user's verified flag.
        
        Raises:
            ValidationError: If a rejection has no reason or the request isn't pending
            NotFoundError: If the request doesn't exist
        """
        rejection_reason = (rejection_reason or '').strip() or None
        if not approve and not rejection_reason:
            raise ValidationError("Rejection reason is required")
        
        status = 'APPROVED' if approve else 'REJECTED'
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                current = await conn.fetchrow(
                    'SELECT user_id, status FROM verification_requests WHERE id = $1 FOR UPDATE',
                    request_id
                )
                if not current:
                    raise NotFoundError("Verification request not found")
                if current['status'] != 'PENDING':
                    raise ValidationError(
                        f"Only pending requests can be {'approved' if approve else 'rejected'}"
                    )
                
                await conn.execute(
                    '''
                    UPDATE verification_requests
                    SET status = $2, reviewed_at = now(), reviewed_by = $3,
                        rejection_reason = $4, notes = $5, updated_at = now()
                    WHERE id = $1
                    ''',
                    request_id,
                    status,
                    admin['id'],
                    None if approve else rejection_reason,
                    (notes or '').strip() or None
                )
                await conn.execute(
                    'UPDATE users SET is_verified = $2, updated_at = now() WHERE id = $1',
                    current['user_id'],
                    approve
                )
                request = await self._fetch(conn, request_id)
        
        logger.info(f"Verification request {request_id} {status.lower()} by admin {admin['id']}")
        return request
    
    async def add_comment(
        self,
        request_id: Union[str, uuid.UUID],
        admin: Dict[str, Any],
        comment: str
    ) -> Dict[str, Any]:
        """Add an admin comment to a request.
        
        Raises:
            ValidationError: If the comment is empty
            NotFoundError: If the request doesn't exist
        """
        comment = (comment or '').strip()
        if not comment:
            raise ValidationError("Comment is required")
        
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                '''
                INSERT INTO verification_comments (request_id, comment, commented_by)
                SELECT id, $2, $3 FROM verification_requests WHERE id = $1
                RETURNING id, request_id, comment, commented_by, commented_at
                ''',
                request_id,
                comment,
                admin['id']
            )
        
        if not row:
            raise NotFoundError("Verification request not found")
        return dict(row)

__all__ = [
    'VerificationManager',
    'STATUSES'
]
