"""Artwork comments, replies and comment likes.

Comments nest one level deep: a reply always points at a top-level comment.
Deleting a comment removes its replies too, and the artwork's
comments_count drops by the number of rows actually deleted.
"""

import logging
import uuid
from typing import Any, Callable, Dict, List, Optional, Union

from database import get_pool, paginate
from errors import ForbiddenError, NotFoundError, ValidationError
from notifications import dispatch

logger = logging.getLogger(__name__)

MAX_REPLIES_SHOWN = 5

COMMENT_COLUMNS = '''
    c.id, c.artwork_id, c.user_id, c.content, c.parent_comment_id,
    c.created_at, c.updated_at,
    u.name AS user_name, u.avatar AS user_avatar,
    (SELECT COUNT(*) FROM comment_likes cl WHERE cl.comment_id = c.id) AS likes_count
'''

class CommentManager:
    """Manager class for artwork comments."""
    
    def __init__(self, pool=None, notifier: Optional[Callable] = None):
        """Initialize the comment manager.
        
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
    
    async def list_comments(
        self,
        artwork_id: Union[str, uuid.UUID],
        page: int = 1,
        limit: int = 20
    ) -> Dict[str, Any]:
        """Get top-level comments, newest first, each with its oldest replies.
        
        Returns:
            Dict containing comments (each with a `replies` list) and pagination
        """
        await self.ensure_pool()
        offset = (page - 1) * limit
        
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                f'''
                SELECT {COMMENT_COLUMNS}
                FROM comments c
                LEFT JOIN users u ON u.id = c.user_id
                WHERE c.artwork_id = $1 AND c.parent_comment_id IS NULL
                ORDER BY c.created_at DESC
                LIMIT $2 OFFSET $3
                ''',
                artwork_id,
                limit,
                offset
            )
            total = await conn.fetchval(
                '''
                SELECT COUNT(*) FROM comments
                WHERE artwork_id = $1 AND parent_comment_id IS NULL
                ''',
                artwork_id
            )
            
            comments = [dict(row) for row in rows]
            replies: List[Any] = []
            if comments:
                replies = await conn.fetch(
                    f'''
                    SELECT * FROM (
                        SELECT {COMMENT_COLUMNS},
                            ROW_NUMBER() OVER (
                                PARTITION BY c.parent_comment_id
                                ORDER BY c.created_at ASC
                            ) AS position
                        FROM comments c
                        LEFT JOIN users u ON u.id = c.user_id
                        WHERE c.parent_comment_id = ANY($1::UUID[])
                    ) ranked
                    WHERE position <= $2
                    ORDER BY created_at ASC
                    ''',
                    [comment['id'] for comment in comments],
                    MAX_REPLIES_SHOWN
                )
        
        by_parent: Dict[Any, List[Dict[str, Any]]] = {}
        for reply in replies:
            reply = dict(reply)
            reply.pop('position', None)
            by_parent.setdefault(reply['parent_comment_id'], []).append(reply)
        for comment in comments:
            comment['replies'] = by_parent.get(comment['id'], [])
        
        return {
            'comments': comments,
            'pagination': paginate(page, limit, total)
        }
    
    async def add_comment(
        self,
        artwork_id: Union[str, uuid.UUID],
        user_id: Union[str, uuid.UUID],
        content: str,
        parent_comment_id: Optional[Union[str, uuid.UUID]] = None,
        user_name: Optional[str] = None
    ) -> Dict[str, Any]:
        """Comment on an artwork, or reply to one of its comments.
        
        A reply to a reply is attached to the top-level comment of the thread.
        
        Raises:
            ValidationError: If the content is empty or the parent is on another artwork
            NotFoundError: If the artwork or parent comment doesn't exist
        """
        content = (content or '').strip()
        if not content:
            raise ValidationError("Comment content is required")
        
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                artwork = await conn.fetchrow(
                    'SELECT id, artist_id, title FROM artworks WHERE id = $1',
                    artwork_id
                )
                if not artwork:
                    raise NotFoundError("Artwork not found")
                
                thread_id = None
                if parent_comment_id:
                    parent = await conn.fetchrow(
                        'SELECT id, artwork_id, parent_comment_id FROM comments WHERE id = $1',
                        parent_comment_id
                    )
                    if not parent:
                        raise NotFoundError("Parent comment not found")
                    if str(parent['artwork_id']) != str(artwork_id):
                        raise ValidationError("Parent comment belongs to another artwork")
                    thread_id = parent['parent_comment_id'] or parent['id']
                
                comment_id = await conn.fetchval(
                    '''
                    INSERT INTO comments (artwork_id, user_id, content, parent_comment_id)
                    VALUES ($1, $2, $3, $4)
                    RETURNING id
                    ''',
                    artwork_id,
                    user_id,
                    content,
                    thread_id
                )
                
                await conn.execute(
                    'UPDATE artworks SET comments_count = comments_count + 1 WHERE id = $1',
                    artwork_id
                )
                
                comment = await conn.fetchrow(
                    f'''
                    SELECT {COMMENT_COLUMNS}
                    FROM comments c
                    LEFT JOIN users u ON u.id = c.user_id
                    WHERE c.id = $1
                    ''',
                    comment_id
                )
        
        if str(artwork['artist_id']) != str(user_id):
            self.notifier(
                artwork['artist_id'],
                'COMMENT',
                f"{user_name or 'Someone'} commented on your artwork \"{artwork['title']}\"",
                {'artwork_id': artwork_id, 'comment_id': comment_id, 'user_id': user_id}
            )
        
        return dict(comment)
    
    async def delete_comment(
        self,
        comment_id: Union[str, uuid.UUID],
        user: Dict[str, Any]
    ) -> Dict[str, int]:
        """Delete a comment together with its replies.
        
        Args:
            comment_id: The comment UUID
            user: The acting user; must own the comment unless admin
            
        Returns:
            Dict with the number of comments deleted
            
        Raises:
            NotFoundError: If the comment doesn't exist
            ForbiddenError: If the user doesn't own the comment
        """
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                comment = await conn.fetchrow(
                    'SELECT id, artwork_id, user_id FROM comments WHERE id = $1',
                    comment_id
                )
                if not comment:
                    raise NotFoundError("Comment not found")
                if str(comment['user_id']) != str(user['id']) and user['role'] != 'ADMIN':
                    raise ForbiddenError("Not authorized to delete this comment")
                
                deleted = await conn.fetch(
                    '''
                    DELETE FROM comments
                    WHERE id = $1 OR parent_comment_id = $1
                    RETURNING id
                    ''',
                    comment_id
                )
                deleted_ids = [row['id'] for row in deleted]
                
                await conn.execute(
                    'DELETE FROM comment_likes WHERE comment_id = ANY($1::UUID[])',
                    deleted_ids
                )
                
                await conn.execute(
                    '''
                    UPDATE artworks
                    SET comments_count = GREATEST(comments_count - $2, 0)
                    WHERE id = $1
                    ''',
                    comment['artwork_id'],
                    len(deleted_ids)
                )
        
        logger.info(f"Deleted comment {comment_id} with {len(deleted_ids) - 1} replies")
        return {'deleted': len(deleted_ids)}
    
    async def toggle_comment_like(
        self,
        comment_id: Union[str, uuid.UUID],
        user_id: Union[str, uuid.UUID]
    ) -> Dict[str, Any]:
        """Like a comment, or remove the like if it already exists.
        
        Raises:
            NotFoundError: If the comment doesn't exist
        """
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                exists = await conn.fetchval(
                    'SELECT EXISTS(SELECT 1 FROM comments WHERE id = $1)',
                    comment_id
                )
                if not exists:
                    raise NotFoundError("Comment not found")
                
                removed = await conn.fetchval(
                    '''
                    DELETE FROM comment_likes
                    WHERE comment_id = $1 AND user_id = $2
                    RETURNING user_id
                    ''',
                    comment_id,
                    user_id
                )
                if not removed:
                    await conn.execute(
                        '''
                        INSERT INTO comment_likes (comment_id, user_id)
                        VALUES ($1, $2)
                        ON CONFLICT (comment_id, user_id) DO NOTHING
                        ''',
                        comment_id,
                        user_id
                    )
                
                likes_count = await conn.fetchval(
                    'SELECT COUNT(*) FROM comment_likes WHERE comment_id = $1',
                    comment_id
                )
        
        return {
            'liked': not removed,
            'likes_count': likes_count
        }
