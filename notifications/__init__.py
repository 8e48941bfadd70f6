"""Notifications module for best-effort event fan-out.

Likes, comments, orders and follows each leave a notification for the user
they concern. Creating one must never fail or hold up the action that caused
it, so:
1. `dispatch` schedules the insert as a background task and returns at once
2. `NotificationManager.notify` writes on its own connection, outside any
   caller transaction, and swallows every error after logging it
3. Stored notifications are pushed to the user's realtime subscribers

The notifications table is append-only from the producers' side and doubles
as the audit log of what was emitted.
"""

import asyncio
import json
import logging
import uuid
from typing import Dict, List, Optional, Set, Union, Any

from database import get_pool, paginate
from errors import NotFoundError

logger = logging.getLogger(__name__)

NOTIFICATION_TYPES = {'LIKE', 'COMMENT', 'ORDER', 'FOLLOW'}

# Background inserts that have not finished yet
_pending: Set[asyncio.Task] = set()

# Realtime subscribers keyed by user id
_subscribers: Dict[str, Set[asyncio.Queue]] = {}

def subscribe(user_id: Union[str, uuid.UUID]) -> asyncio.Queue:
    """Register a queue that receives every new notification for a user."""
    queue: asyncio.Queue = asyncio.Queue()
    _subscribers.setdefault(str(user_id), set()).add(queue)
    return queue

def unsubscribe(user_id: Union[str, uuid.UUID], queue: asyncio.Queue) -> None:
    """Remove a queue registered with `subscribe`."""
    queues = _subscribers.get(str(user_id))
    if not queues:
        return
    queues.discard(queue)
    if not queues:
        del _subscribers[str(user_id)]

def _publish(notification: Dict[str, Any]) -> None:
    for queue in _subscribers.get(str(notification['user_id']), ()):
        queue.put_nowait(notification)

class NotificationManager:
    """Manager class for creating and reading notifications."""
    
    def __init__(self, pool=None):
        """Initialize the notification manager.
        
        Args:
            pool: Optional database pool. If not provided, will get from database module.
        """
        self.pool = pool
    
    async def ensure_pool(self):
        """Ensure we have a database pool."""
        if not self.pool:
            self.pool = await get_pool()
    
    async def notify(
        self,
        user_id: Union[str, uuid.UUID],
        type: str,
        message: str,
        data: Optional[Dict[str, Any]] = None
    ) -> Optional[Dict[str, Any]]:
        """Store a notification for a user.
        
        Never raises: any failure is logged and reported as None.
        
        Args:
            user_id: Recipient of the notification
            type: One of NOTIFICATION_TYPES
            message: Human readable text
            data: Optional JSON payload with ids of the related entities
            
        Returns:
            The stored notification, or None if it could not be created
        """
        try:
            if type not in NOTIFICATION_TYPES:
                raise ValueError(f"Unknown notification type: {type}")
            
            # Ids and timestamps become strings so the payload is plain JSON
            payload = json.loads(json.dumps(data or {}, default=str))
            
            await self.ensure_pool()
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(
                    '''
                    INSERT INTO notifications (user_id, type, message, data)
                    VALUES ($1, $2, $3, $4)
                    RETURNING id, user_id, type, message, data, read, created_at
                    ''',
                    user_id,
                    type,
                    message,
                    payload
                )
            
            notification = dict(row)
            _publish(notification)
            return notification
            
        except Exception as e:
            logger.error(f"Error creating {type} notification for {user_id}: {e}")
            return None
    
    async def list_notifications(
        self,
        user_id: Union[str, uuid.UUID],
        page: int = 1,
        limit: int = 20,
        unread_only: bool = False
    ) -> Dict[str, Any]:
        """Get a page of a user's notifications, newest first.
        
        Returns:
            Dict with notifications, unread_count and pagination
        """
        await self.ensure_pool()
        offset = (page - 1) * limit
        
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                '''
                SELECT id, user_id, type, message, data, read, created_at
                FROM notifications
                WHERE user_id = $1
                AND ($2 = false OR read = false)
                ORDER BY created_at DESC
                LIMIT $3 OFFSET $4
                ''',
                user_id,
                unread_only,
                limit,
                offset
            )
            total = await conn.fetchval(
                '''
                SELECT COUNT(*) FROM notifications
                WHERE user_id = $1 AND ($2 = false OR read = false)
                ''',
                user_id,
                unread_only
            )
            unread_count = await conn.fetchval(
                'SELECT COUNT(*) FROM notifications WHERE user_id = $1 AND read = false',
                user_id
            )
        
        return {
            'notifications': [dict(row) for row in rows],
            'unread_count': unread_count,
            'pagination': paginate(page, limit, total)
        }
    
    async def mark_read(
        self,
        notification_id: Union[str, uuid.UUID],
        user_id: Union[str, uuid.UUID]
    ) -> Dict[str, Any]:
        """Mark one of the user's notifications as read.
        
        Raises:
            NotFoundError: If the notification doesn't exist or belongs to someone else
        """
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                '''
                UPDATE notifications SET read = true
                WHERE id = $1 AND user_id = $2
                RETURNING id, user_id, type, message, data, read, created_at
                ''',
                notification_id,
                user_id
            )
        if not row:
            raise NotFoundError("Notification not found")
        return dict(row)
    
    async def mark_all_read(self, user_id: Union[str, uuid.UUID]) -> int:
        """Mark all of a user's notifications as read.
        
        Returns:
            Number of notifications that changed state
        """
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                '''
                UPDATE notifications SET read = true
                WHERE user_id = $1 AND read = false
                RETURNING id
                ''',
                user_id
            )
        return len(rows)
    
    async def delete_notification(
        self,
        notification_id: Union[str, uuid.UUID],
        user_id: Union[str, uuid.UUID]
    ) -> None:
        """Delete one of the user's notifications.
        
        Raises:
            NotFoundError: If the notification doesn't exist or belongs to someone else
        """
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            deleted = await conn.fetchval(
                'DELETE FROM notifications WHERE id = $1 AND user_id = $2 RETURNING id',
                notification_id,
                user_id
            )
        if not deleted:
            raise NotFoundError("Notification not found")

def dispatch(
    user_id: Union[str, uuid.UUID],
    type: str,
    message: str,
    data: Optional[Dict[str, Any]] = None,
    manager: Optional[NotificationManager] = None
) -> Optional[asyncio.Task]:
    """Schedule a notification without waiting for it.
    
    Returns:
        The background task, or None if it could not be scheduled
    """
    manager = manager or NotificationManager()
    try:
        task = asyncio.get_running_loop().create_task(
            manager.notify(user_id, type, message, data)
        )
    except RuntimeError as e:
        logger.error(f"Could not schedule {type} notification for {user_id}: {e}")
        return None
    
    _pending.add(task)
    task.add_done_callback(_pending.discard)
    return task

async def wait_pending(timeout: Optional[float] = None) -> int:
    """Wait for scheduled notifications to finish.
    
    Args:
        timeout: Optional number of seconds to wait
        
    Returns:
        Number of notifications still pending afterwards
    """
    if _pending:
        await asyncio.wait(set(_pending), timeout=timeout)
    return len(_pending)

__all__ = [
    'NotificationManager',
    'NOTIFICATION_TYPES',
    'dispatch',
    'wait_pending',
    'subscribe',
    'unsubscribe'
]
