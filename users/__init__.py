"""Users module for admin moderation of accounts.

Admins can inspect and edit any account, but never change their own role or
delete themselves, so there is always at least the acting admin left.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional, Union

from asyncpg.exceptions import UniqueViolationError

from auth import ROLES, USER_COLUMNS, normalize_email
from cascade import CascadeManager
from database import get_pool, paginate
from errors import ConflictError, ForbiddenError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

# Fields an admin may change on a user
ADMIN_MUTABLE_FIELDS = {'role', 'is_verified', 'name', 'email'}

RECENT_LIMIT = 5

class UserManager:
    """Manager class for admin user operations and site statistics."""
    
    def __init__(self, pool=None):
        """Initialize the user manager.
        
        Args:
            pool: Optional database pool. If not provided, will get from database module.
        """
        self.pool = pool
    
    async def ensure_pool(self):
        """Ensure we have a database pool."""
        if not self.pool:
            self.pool = await get_pool()
    
    async def get_stats(self) -> Dict[str, Any]:
        """Get site-wide totals for the admin dashboard.
        
        Returns:
            Dict containing:
                - totals: Row counts per kind of entity
                - revenue: Sum of COMPLETED order amounts
                - pending_orders: Number of PENDING orders
                - recent_users: The newest users
                - recent_orders: The newest orders
        """
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            totals = await conn.fetchrow(
                '''
                SELECT
                    (SELECT COUNT(*) FROM users) AS users,
                    (SELECT COUNT(*) FROM users WHERE role = 'ARTIST') AS artists,
                    (SELECT COUNT(*) FROM users WHERE role = 'BUYER') AS buyers,
                    (SELECT COUNT(*) FROM artworks) AS artworks,
                    (SELECT COUNT(*) FROM orders) AS orders,
                    (SELECT COUNT(*) FROM likes) AS likes,
                    (SELECT COUNT(*) FROM comments) AS comments,
                    (SELECT COUNT(*) FROM reviews) AS reviews,
                    (SELECT COUNT(*) FROM notifications) AS notifications
                '''
            )
            revenue = await conn.fetchval(
                "SELECT COALESCE(SUM(amount), 0) FROM orders WHERE status = 'COMPLETED'"
            )
            pending_orders = await conn.fetchval(
                "SELECT COUNT(*) FROM orders WHERE status = 'PENDING'"
            )
            recent_users = await conn.fetch(
                f'SELECT {USER_COLUMNS} FROM users ORDER BY created_at DESC LIMIT $1',
                RECENT_LIMIT
            )
            recent_orders = await conn.fetch(
                '''
                SELECT o.id, o.amount, o.currency, o.status, o.created_at,
                       a.title AS artwork_title, b.name AS buyer_name
                FROM orders o
                LEFT JOIN artworks a ON a.id = o.artwork_id
                LEFT JOIN users b ON b.id = o.buyer_id
                ORDER BY o.created_at DESC
                LIMIT $1
                ''',
                RECENT_LIMIT
            )
        
        return {
            'totals': dict(totals) if totals else {},
            'revenue': revenue or 0,
            'pending_orders': pending_orders or 0,
            'recent_users': [dict(row) for row in recent_users],
            'recent_orders': [dict(row) for row in recent_orders]
        }
    
    async def list_users(
        self,
        page: int = 1,
        limit: int = 20,
        role: Optional[str] = None,
        search: Optional[str] = None
    ) -> Dict[str, Any]:
        """List users, newest first, optionally filtered by role or name/email."""
        await self.ensure_pool()
        
        conditions = 'WHERE 1=1'
        params: List[Any] = []
        param_idx = 1
        
        if role:
            conditions += f" AND role = ${param_idx}"
            params.append(role)
            param_idx += 1
        
        if search:
            conditions += f" AND (name ILIKE ${param_idx} OR email ILIKE ${param_idx})"
            params.append(f"%{search}%")
            param_idx += 1
        
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                f'''
                SELECT {USER_COLUMNS} FROM users
                {conditions}
                ORDER BY created_at DESC
                LIMIT ${param_idx} OFFSET ${param_idx + 1}
                ''',
                *params,
                limit,
                (page - 1) * limit
            )
            total = await conn.fetchval(f'SELECT COUNT(*) FROM users {conditions}', *params)
        
        return {
            'users': [dict(row) for row in rows],
            'pagination': paginate(page, limit, total)
        }
    
    async def get_user(self, user_id: Union[str, uuid.UUID]) -> Dict[str, Any]:
        """Get a user by ID.
        
        Raises:
            NotFoundError: If the user doesn't exist
        """
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            user = await conn.fetchrow(f'SELECT {USER_COLUMNS} FROM users WHERE id = $1', user_id)
        
        if not user:
            raise NotFoundError("User not found")
        return dict(user)
    
    async def update_user(
        self,
        user_id: Union[str, uuid.UUID],
        updates: Dict[str, Any],
        actor: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Update a user's role, verification flag, name or email.
        
        Args:
            user_id: The user to change
            updates: Fields from ADMIN_MUTABLE_FIELDS
            actor: The acting admin
            
        Raises:
            ValidationError: If a field is unknown or a value invalid
            ForbiddenError: If an admin tries to change their own role
            NotFoundError: If the user doesn't exist
            ConflictError: If the new email is taken
        """
        unknown = set(updates) - ADMIN_MUTABLE_FIELDS
        if unknown:
            raise ValidationError(f"Unknown user fields: {', '.join(sorted(unknown))}")
        
        updates = dict(updates)
        if 'role' in updates:
            if updates['role'] not in ROLES:
                raise ValidationError(f"Role must be one of: {', '.join(ROLES)}")
            if str(user_id) == str(actor['id']) and updates['role'] != actor['role']:
                raise ForbiddenError("You cannot change your own role")
        if 'email' in updates:
            updates['email'] = normalize_email(updates['email'])
            if not updates['email']:
                raise ValidationError("Email cannot be empty")
        if 'name' in updates:
            updates['name'] = (updates['name'] or '').strip()
            if not updates['name']:
                raise ValidationError("Name cannot be empty")
        
        user = await self.get_user(user_id)
        if not updates:
            return user
        
        update_fields = []
        params: List[Any] = [user_id]
        for param_idx, (field, value) in enumerate(sorted(updates.items()), start=2):
            update_fields.append(f"{field} = ${param_idx}")
            params.append(value)
        
        try:
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    await conn.execute(
                        f'''
                        UPDATE users
                        SET {", ".join(update_fields)},
                            updated_at = now()
                        WHERE id = $1
                        ''',
                        *params
                    )
                    if updates.get('role') == 'ARTIST':
                        await conn.execute(
                            'INSERT INTO artist_profiles (user_id) VALUES ($1) ON CONFLICT (user_id) DO NOTHING',
                            user_id
                        )
        except UniqueViolationError:
            raise ConflictError("Email is already in use")
        
        logger.info(f"Admin {actor['id']} updated user {user_id}: {sorted(updates)}")
        return await self.get_user(user_id)
    
    async def delete_user(
        self,
        user_id: Union[str, uuid.UUID],
        actor: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Delete a user and everything that references them.
        
        Raises:
            ValidationError: If an admin tries to delete themselves
            NotFoundError: If the user doesn't exist
        """
        if str(user_id) == str(actor['id']):
            raise ValidationError("You cannot delete your own account")
        
        await self.ensure_pool()
        result = await CascadeManager(self.pool).delete_user(user_id)
        logger.info(f"Admin {actor['id']} deleted user {user_id}")
        return result

__all__ = ['UserManager', 'ADMIN_MUTABLE_FIELDS']
