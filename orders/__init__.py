"""Orders module for managing marketplace orders.

This module handles order placement and the order lifecycle:
PENDING -> CONFIRMED | CANCELLED, CONFIRMED -> COMPLETED | CANCELLED.
CANCELLED and COMPLETED are final. Confirming an order marks its artwork SOLD
in the same transaction, which keeps a sold artwork from being sold a second
time. Cancelling a confirmed order puts the artwork back on sale.
"""
import logging
from typing import Any, Callable, Dict, List, Optional, Union
from uuid import UUID

from asyncpg.exceptions import PostgresError

from database.exceptions import DatabaseError
from database import get_pool, paginate
from errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from notifications import dispatch

logger = logging.getLogger(__name__)

ORDER_STATUSES = ('PENDING', 'CONFIRMED', 'CANCELLED', 'COMPLETED')

ORDER_TRANSITIONS = {
    'PENDING': ('CONFIRMED', 'CANCELLED'),
    'CONFIRMED': ('COMPLETED', 'CANCELLED'),
    'CANCELLED': (),
    'COMPLETED': ()
}

ORDER_COLUMNS = '''
    o.id, o.buyer_id, o.artist_id, o.artwork_id, o.amount, o.currency,
    o.message, o.status, o.created_at, o.updated_at,
    a.title AS artwork_title, a.images AS artwork_images,
    b.name AS buyer_name, b.email AS buyer_email,
    s.name AS artist_name
'''

ORDER_JOINS = '''
    FROM orders o
    LEFT JOIN artworks a ON a.id = o.artwork_id
    LEFT JOIN users b ON b.id = o.buyer_id
    LEFT JOIN users s ON s.id = o.artist_id
'''

STATUS_MESSAGES = {
    'CONFIRMED': 'was confirmed',
    'CANCELLED': 'was cancelled',
    'COMPLETED': 'is completed'
}

class OrderManager:
    """Manages order operations and state transitions."""
    
    def __init__(self, pool=None, notifier: Optional[Callable] = None) -> None:
        """Initialize order manager.
        
        Args:
            pool: Optional database connection pool. If not provided, will get from database module.
            notifier: Optional callable used to send notifications, defaults to `dispatch`
        """
        self.pool = pool
        self.notifier = notifier or dispatch
        
    async def ensure_pool(self):
        """Ensure we have a database pool."""
        if not self.pool:
            self.pool = await get_pool()
        
    async def create_order(
        self,
        buyer_id: Union[str, UUID],
        artwork_id: Union[str, UUID],
        message: str = '',
        buyer_name: Optional[str] = None
    ) -> Dict[str, Any]:
        """Place an order for an artwork.
        
        The amount and currency are copied from the artwork at order time.
        
        Args:
            buyer_id: The ordering user
            artwork_id: The artwork to buy
            message: Optional note for the artist
            buyer_name: Name used in the artist's notification
            
        Returns:
            The created order
            
        Raises:
            NotFoundError: If the artwork doesn't exist
            ConflictError: If the artwork is already sold
            ValidationError: If the buyer is the artist
        """
        await self.ensure_pool()
        
        try:
            async with self.pool.acquire() as conn:
                artwork = await conn.fetchrow(
                    'SELECT id, artist_id, title, price, currency, status FROM artworks WHERE id = $1',
                    artwork_id
                )
                if not artwork:
                    raise NotFoundError("Artwork not found")
                if artwork['status'] == 'SOLD':
                    raise ConflictError("Artwork is already sold")
                if str(artwork['artist_id']) == str(buyer_id):
                    raise ValidationError("You cannot order your own artwork")
                
                order_id = await conn.fetchval(
                    '''
                    INSERT INTO orders (buyer_id, artist_id, artwork_id, amount, currency, message)
                    VALUES ($1, $2, $3, $4, $5, $6)
                    RETURNING id
                    ''',
                    buyer_id,
                    artwork['artist_id'],
                    artwork_id,
                    artwork['price'],
                    artwork['currency'],
                    message or ''
                )
        except PostgresError as e:
            logger.error(f"Database error creating order: {e}")
            raise DatabaseError(f"Failed to create order: {e}")
        
        logger.info(f"Created order {order_id} for artwork {artwork_id} by buyer {buyer_id}")
        
        self.notifier(
            artwork['artist_id'],
            'ORDER',
            f"{buyer_name or 'Someone'} placed an order for \"{artwork['title']}\"",
            {'order_id': order_id, 'artwork_id': artwork_id, 'buyer_id': buyer_id}
        )
        
        return await self.get_order(order_id)
    
    async def get_order(self, order_id: Union[str, UUID]) -> Dict[str, Any]:
        """Get order details by ID.
        
        Raises:
            NotFoundError: If the order doesn't exist
        """
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            order = await conn.fetchrow(
                f'SELECT {ORDER_COLUMNS} {ORDER_JOINS} WHERE o.id = $1',
                order_id
            )
        
        if not order:
            raise NotFoundError("Order not found")
        return dict(order)
    
    async def search_orders(
        self,
        buyer_id: Optional[Union[str, UUID]] = None,
        artist_id: Optional[Union[str, UUID]] = None,
        status: Optional[str] = None,
        page: int = 1,
        limit: int = 20
    ) -> Dict[str, Any]:
        """Search orders with various filters.
        
        Args:
            buyer_id: Optional buyer to filter by
            artist_id: Optional artist to filter by
            status: Optional order status to filter by
            page: 1-based page number
            limit: Page size
            
        Returns:
            Dict containing orders and pagination
        """
        await self.ensure_pool()
        
        # Build the base query
        conditions = 'WHERE 1=1'
        params: List[Any] = []
        param_idx = 1
        
        if buyer_id:
            conditions += f" AND o.buyer_id = ${param_idx}"
            params.append(buyer_id)
            param_idx += 1
            
        if artist_id:
            conditions += f" AND o.artist_id = ${param_idx}"
            params.append(artist_id)
            param_idx += 1
            
        if status:
            conditions += f" AND o.status = ${param_idx}"
            params.append(status)
            param_idx += 1
        
        query = (
            f"SELECT {ORDER_COLUMNS} {ORDER_JOINS} {conditions}"
            f" ORDER BY o.created_at DESC LIMIT ${param_idx} OFFSET ${param_idx + 1}"
        )
        
        logger.debug("Executing order search query: %s with params: %r", query, params)
        
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(query, *params, limit, (page - 1) * limit)
            total = await conn.fetchval(
                f"SELECT COUNT(*) FROM orders o {conditions}",
                *params
            )
        
        return {
            'orders': [dict(row) for row in rows],
            'pagination': paginate(page, limit, total)
        }
    
    async def list_orders(
        self,
        user: Dict[str, Any],
        status: Optional[str] = None,
        page: int = 1,
        limit: int = 20
    ) -> Dict[str, Any]:
        """List a user's orders: sales for artists, purchases for everyone else."""
        if user['role'] == 'ARTIST':
            return await self.search_orders(artist_id=user['id'], status=status, page=page, limit=limit)
        return await self.search_orders(buyer_id=user['id'], status=status, page=page, limit=limit)
    
    async def update_status(
        self,
        order_id: Union[str, UUID],
        status: str,
        actor: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Move an order to a new status.
        
        Args:
            order_id: The order UUID
            status: One of ORDER_STATUSES
            actor: The acting user; must be the order's artist unless admin
            
        Returns:
            The updated order
            
        Raises:
            ValidationError: If the status is unknown
            NotFoundError: If the order doesn't exist
            ForbiddenError: If the actor is not the order's artist
            ConflictError: If the transition is not allowed or the artwork is already sold
        """
        if status not in ORDER_STATUSES:
            raise ValidationError(f"Status must be one of: {', '.join(ORDER_STATUSES)}")
        
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                order = await conn.fetchrow(
                    'SELECT id, buyer_id, artist_id, artwork_id, status FROM orders WHERE id = $1',
                    order_id
                )
                if not order:
                    raise NotFoundError("Order not found")
                if str(order['artist_id']) != str(actor['id']) and actor['role'] != 'ADMIN':
                    raise ForbiddenError("Not authorized to update this order")
                
                unchanged = status == order['status']
                if not unchanged and status not in ORDER_TRANSITIONS[order['status']]:
                    raise ConflictError(f"Cannot move an order from {order['status']} to {status}")
                
                if not unchanged:
                    if status == 'CONFIRMED':
                        # Only one order can flip the artwork to SOLD
                        sold = await conn.fetchval(
                            '''
                            UPDATE artworks
                            SET status = 'SOLD', updated_at = now()
                            WHERE id = $1 AND status != 'SOLD'
                            RETURNING id
                            ''',
                            order['artwork_id']
                        )
                        if not sold:
                            raise ConflictError("Artwork is already sold")
                    elif order['status'] == 'CONFIRMED' and status == 'CANCELLED':
                        # The cancelled order was the sale
                        await conn.execute(
                            '''
                            UPDATE artworks
                            SET status = 'PUBLISHED', updated_at = now()
                            WHERE id = $1 AND status = 'SOLD'
                            ''',
                            order['artwork_id']
                        )
                    
                    await conn.execute(
                        'UPDATE orders SET status = $2, updated_at = now() WHERE id = $1',
                        order_id,
                        status
                    )
        
        if unchanged:
            return await self.get_order(order_id)
        
        logger.info(f"Order {order_id} moved from {order['status']} to {status}")
        
        updated = await self.get_order(order_id)
        self.notifier(
            order['buyer_id'],
            'ORDER',
            f"Your order for \"{updated['artwork_title']}\" {STATUS_MESSAGES[status]}",
            {'order_id': order_id, 'artwork_id': order['artwork_id'], 'status': status}
        )
        return updated

__all__ = [
    'OrderManager',
    'ORDER_STATUSES',
    'ORDER_TRANSITIONS'
]
