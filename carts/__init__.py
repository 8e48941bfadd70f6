"""Carts module for buyers' shopping carts.

Each user has one cart holding at most one item per artwork. Artworks can be
deleted while they sit in carts; reading a cart deletes such dangling items
from storage before returning it, so the stored cart heals itself and a
second read returns the same thing.
"""

import logging
import uuid
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Union

from database import get_pool
from errors import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

class CartManager:
    """Manager class for shopping carts."""
    
    def __init__(self, pool=None):
        """Initialize the cart manager.
        
        Args:
            pool: Optional database pool. If not provided, will get from database module.
        """
        self.pool = pool
    
    async def ensure_pool(self):
        """Ensure we have a database pool."""
        if not self.pool:
            self.pool = await get_pool()
    
    @staticmethod
    async def _cart_id(conn, user_id: Union[str, uuid.UUID]) -> uuid.UUID:
        """Get the id of a user's cart, creating the cart on first use."""
        return await conn.fetchval(
            '''
            INSERT INTO carts (user_id) VALUES ($1)
            ON CONFLICT (user_id) DO UPDATE SET updated_at = now()
            RETURNING id
            ''',
            user_id
        )
    
    @staticmethod
    def _check_quantity(quantity: Any) -> int:
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
            raise ValidationError("Quantity must be at least 1")
        return quantity
    
    async def get_cart(self, user_id: Union[str, uuid.UUID]) -> Dict[str, Any]:
        """Get a user's cart, pruning items whose artwork no longer exists.
        
        Returns:
            Dict containing id, user_id, items, total_items and total_price
        """
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                cart_id = await self._cart_id(conn, user_id)
                
                pruned = await conn.fetch(
                    '''
                    DELETE FROM cart_items ci
                    WHERE ci.cart_id = $1
                      AND NOT EXISTS (SELECT 1 FROM artworks a WHERE a.id = ci.artwork_id)
                    RETURNING ci.artwork_id
                    ''',
                    cart_id
                )
                if pruned:
                    logger.info(f"Pruned {len(pruned)} dangling items from cart {cart_id}")
                
                rows = await conn.fetch(
                    '''
                    SELECT ci.artwork_id, ci.quantity, ci.added_at,
                           a.title, a.price, a.currency, a.images, a.status,
                           a.artist_id, u.name AS artist_name
                    FROM cart_items ci
                    JOIN artworks a ON a.id = ci.artwork_id
                    LEFT JOIN users u ON u.id = a.artist_id
                    WHERE ci.cart_id = $1
                    ORDER BY ci.added_at ASC
                    ''',
                    cart_id
                )
        
        items = [dict(row) for row in rows]
        return {
            'id': cart_id,
            'user_id': user_id,
            'items': items,
            'total_items': sum(item['quantity'] for item in items),
            'total_price': sum((Decimal(item['price']) * item['quantity'] for item in items), Decimal('0'))
        }
    
    async def add_item(
        self,
        user_id: Union[str, uuid.UUID],
        artwork_id: Union[str, uuid.UUID],
        quantity: int = 1
    ) -> Dict[str, Any]:
        """Add an artwork to the cart, increasing the quantity if already there.
        
        Raises:
            ValidationError: If the quantity is invalid or the artwork is the user's own
            NotFoundError: If the artwork doesn't exist
            ConflictError: If the artwork is already sold
        """
        quantity = self._check_quantity(quantity)
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                artwork = await conn.fetchrow(
                    'SELECT id, artist_id, status FROM artworks WHERE id = $1',
                    artwork_id
                )
                if not artwork:
                    raise NotFoundError("Artwork not found")
                if str(artwork['artist_id']) == str(user_id):
                    raise ValidationError("You cannot add your own artwork to the cart")
                if artwork['status'] == 'SOLD':
                    raise ConflictError("Artwork is already sold")
                
                cart_id = await self._cart_id(conn, user_id)
                await conn.execute(
                    '''
                    INSERT INTO cart_items (cart_id, artwork_id, quantity)
                    VALUES ($1, $2, $3)
                    ON CONFLICT (cart_id, artwork_id) DO UPDATE
                    SET quantity = cart_items.quantity + excluded.quantity
                    ''',
                    cart_id,
                    artwork_id,
                    quantity
                )
        
        return await self.get_cart(user_id)
    
    async def update_item(
        self,
        user_id: Union[str, uuid.UUID],
        artwork_id: Union[str, uuid.UUID],
        quantity: int
    ) -> Dict[str, Any]:
        """Set the quantity of an item already in the cart.
        
        Raises:
            ValidationError: If the quantity is below 1
            NotFoundError: If the artwork is not in the cart
        """
        quantity = self._check_quantity(quantity)
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            updated = await conn.fetchval(
                '''
                UPDATE cart_items
                SET quantity = $3
                WHERE cart_id = (SELECT id FROM carts WHERE user_id = $1)
                  AND artwork_id = $2
                RETURNING artwork_id
                ''',
                user_id,
                artwork_id,
                quantity
            )
        if not updated:
            raise NotFoundError("Item not found in cart")
        
        return await self.get_cart(user_id)
    
    async def remove_item(
        self,
        user_id: Union[str, uuid.UUID],
        artwork_id: Union[str, uuid.UUID]
    ) -> Dict[str, Any]:
        """Remove an artwork from the cart.
        
        Raises:
            NotFoundError: If the artwork is not in the cart
        """
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            removed = await conn.fetchval(
                '''
                DELETE FROM cart_items
                WHERE cart_id = (SELECT id FROM carts WHERE user_id = $1)
                  AND artwork_id = $2
                RETURNING artwork_id
                ''',
                user_id,
                artwork_id
            )
        if not removed:
            raise NotFoundError("Item not found in cart")
        
        return await self.get_cart(user_id)
    
    async def clear(self, user_id: Union[str, uuid.UUID]) -> Dict[str, Any]:
        """Remove every item from the cart."""
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            await conn.execute(
                'DELETE FROM cart_items WHERE cart_id = (SELECT id FROM carts WHERE user_id = $1)',
                user_id
            )
        
        return await self.get_cart(user_id)
    
    async def sync(
        self,
        user_id: Union[str, uuid.UUID],
        items: Iterable[Dict[str, Any]]
    ) -> Dict[str, Any]:
        """Merge a client-side cart into the stored one.
        
        For artworks present on both sides the larger quantity wins. Items
        with malformed ids, unknown or sold artworks and the user's own
        artworks are skipped.
        """
        wanted: Dict[uuid.UUID, int] = {}
        for item in items:
            try:
                artwork_id = uuid.UUID(str(item['artwork_id']))
            except (KeyError, ValueError):
                logger.debug(f"Skipping malformed cart item {item!r}")
                continue
            quantity = item.get('quantity', 1)
            if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
                continue
            wanted[artwork_id] = max(quantity, wanted.get(artwork_id, 0))
        
        await self.ensure_pool()
        
        if wanted:
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    rows = await conn.fetch(
                        '''
                        SELECT id FROM artworks
                        WHERE id = ANY($1::UUID[])
                          AND artist_id != $2
                          AND status != 'SOLD'
                        ''',
                        list(wanted),
                        user_id
                    )
                    valid: List[uuid.UUID] = [row['id'] for row in rows]
                    
                    cart_id = await self._cart_id(conn, user_id)
                    for artwork_id in valid:
                        await conn.execute(
                            '''
                            INSERT INTO cart_items (cart_id, artwork_id, quantity)
                            VALUES ($1, $2, $3)
                            ON CONFLICT (cart_id, artwork_id) DO UPDATE
                            SET quantity = GREATEST(cart_items.quantity, excluded.quantity)
                            ''',
                            cart_id,
                            artwork_id,
                            wanted[artwork_id]
                        )
            
            skipped = len(wanted) - len(valid)
            if skipped:
                logger.info(f"Skipped {skipped} items while syncing cart of {user_id}")
        
        return await self.get_cart(user_id)

__all__ = ['CartManager']
