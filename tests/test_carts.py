"""Tests for carts and their self-healing reads."""

import uuid
from decimal import Decimal

import pytest

from carts import CartManager
from errors import ConflictError, NotFoundError, ValidationError

def item_row(artwork_id, price, quantity=1):
    return {
        'artwork_id': artwork_id,
        'quantity': quantity,
        'title': 'Sunrise',
        'price': Decimal(price),
        'currency': 'RWF',
        'status': 'PUBLISHED'
    }

@pytest.mark.asyncio
async def test_get_cart_prunes_dangling_items(make_pool, ids):
    """Test that items of deleted artworks are removed from storage on read."""
    kept = uuid.uuid4()
    pool = make_pool(
        fetchval=[ids['cart']],
        fetch=[
            [{'artwork_id': uuid.uuid4()}],
            [item_row(kept, '100.00', quantity=2), item_row(uuid.uuid4(), '50.50')]
        ]
    )
    
    cart = await CartManager(pool).get_cart(ids['buyer'])
    
    prune_sql = pool.conn.sql('fetch')[0]
    assert 'DELETE FROM cart_items' in prune_sql
    assert 'NOT EXISTS' in prune_sql
    assert pool.conn.calls[1]['args'] == (ids['cart'],)
    
    assert cart['id'] == ids['cart']
    assert cart['items'][0]['artwork_id'] == kept
    assert cart['total_items'] == 3
    assert cart['total_price'] == Decimal('250.50')

@pytest.mark.asyncio
async def test_add_own_artwork_is_rejected(make_pool, ids):
    pool = make_pool(fetchrow=[{'id': ids['artwork'], 'artist_id': ids['artist'], 'status': 'PUBLISHED'}])
    
    with pytest.raises(ValidationError):
        await CartManager(pool).add_item(ids['artist'], ids['artwork'])
    
    assert pool.conn.sql('execute') == []

@pytest.mark.asyncio
async def test_add_sold_artwork_is_rejected(make_pool, ids):
    pool = make_pool(fetchrow=[{'id': ids['artwork'], 'artist_id': ids['artist'], 'status': 'SOLD'}])
    
    with pytest.raises(ConflictError):
        await CartManager(pool).add_item(ids['buyer'], ids['artwork'])

@pytest.mark.asyncio
async def test_add_missing_artwork(make_pool, ids):
    with pytest.raises(NotFoundError):
        await CartManager(make_pool()).add_item(ids['buyer'], ids['artwork'])

@pytest.mark.asyncio
async def test_add_existing_artwork_increases_quantity(make_pool, ids):
    pool = make_pool(
        fetchrow=[{'id': ids['artwork'], 'artist_id': ids['artist'], 'status': 'PUBLISHED'}],
        fetchval=[ids['cart'], ids['cart']],
        fetch=[[], [item_row(ids['artwork'], '10', quantity=3)]]
    )
    
    cart = await CartManager(pool).add_item(ids['buyer'], ids['artwork'], 2)
    
    upsert = pool.conn.calls[2]
    assert 'quantity = cart_items.quantity + excluded.quantity' in upsert['sql']
    assert upsert['args'] == (ids['cart'], ids['artwork'], 2)
    assert cart['total_items'] == 3

@pytest.mark.parametrize("quantity", [0, -1, 1.5, True])
@pytest.mark.asyncio
async def test_invalid_quantity(make_pool, ids, quantity):
    pool = make_pool()
    
    with pytest.raises(ValidationError):
        await CartManager(pool).update_item(ids['buyer'], ids['artwork'], quantity)
    
    assert pool.acquired == 0

@pytest.mark.asyncio
async def test_remove_item_not_in_cart(make_pool, ids):
    with pytest.raises(NotFoundError):
        await CartManager(make_pool()).remove_item(ids['buyer'], ids['artwork'])

@pytest.mark.asyncio
async def test_sync_keeps_larger_quantity_and_skips_bad_items(make_pool, ids):
    """Test merging a client-side cart."""
    valid = uuid.uuid4()
    own = uuid.uuid4()
    pool = make_pool(
        fetch=[[{'id': valid}]],
        fetchval=[ids['cart'], ids['cart']]
    )
    
    await CartManager(pool).sync(ids['buyer'], [
        {'artwork_id': str(valid), 'quantity': 1},
        {'artwork_id': str(valid), 'quantity': 4},
        {'artwork_id': str(own), 'quantity': 1},
        {'artwork_id': 'not-a-uuid', 'quantity': 1},
        {'quantity': 2},
        {'artwork_id': str(uuid.uuid4()), 'quantity': 0}
    ])
    
    lookup = pool.conn.calls[0]
    assert set(lookup['args'][0]) == {valid, own}
    assert lookup['args'][1] == ids['buyer']
    
    upserts = [call for call in pool.conn.calls if 'INSERT INTO cart_items' in call['sql']]
    assert len(upserts) == 1
    assert upserts[0]['args'] == (ids['cart'], valid, 4)
    assert 'GREATEST(cart_items.quantity, excluded.quantity)' in upserts[0]['sql']

@pytest.mark.asyncio
async def test_sync_with_nothing_valid_only_reads(make_pool, ids):
    pool = make_pool(fetchval=[ids['cart']])
    
    cart = await CartManager(pool).sync(ids['buyer'], [{'artwork_id': 'nope'}])
    
    assert cart['items'] == []
    assert not any('INSERT INTO cart_items' in sql for sql in pool.conn.sql())
