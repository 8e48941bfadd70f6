"""Tests for order placement and status transitions."""

import uuid
from decimal import Decimal

import pytest

from orders import OrderManager
from errors import ConflictError, ForbiddenError, NotFoundError, ValidationError

def artwork_row(ids, status='PUBLISHED'):
    return {
        'id': ids['artwork'],
        'artist_id': ids['artist'],
        'title': 'Sunrise',
        'price': Decimal('1500'),
        'currency': 'RWF',
        'status': status
    }

def order_row(ids, status='PENDING'):
    return {
        'id': ids['order'],
        'buyer_id': ids['buyer'],
        'artist_id': ids['artist'],
        'artwork_id': ids['artwork'],
        'amount': Decimal('1500'),
        'currency': 'RWF',
        'status': status,
        'artwork_title': 'Sunrise'
    }

@pytest.mark.asyncio
async def test_create_order_copies_price_and_notifies_artist(make_pool, notifier, ids):
    pool = make_pool(
        fetchrow=[artwork_row(ids), order_row(ids)],
        fetchval=[ids['order']]
    )
    
    order = await OrderManager(pool, notifier=notifier).create_order(
        ids['buyer'], ids['artwork'], message='Please ship framed', buyer_name='Ben'
    )
    
    assert order['id'] == ids['order']
    insert = pool.conn.calls[1]
    assert insert['args'] == (
        ids['buyer'], ids['artist'], ids['artwork'], Decimal('1500'), 'RWF', 'Please ship framed'
    )
    assert [call['type'] for call in notifier.calls] == ['ORDER']
    assert notifier.calls[0]['user_id'] == ids['artist']

@pytest.mark.asyncio
async def test_sold_artwork_cannot_be_ordered(make_pool, notifier, ids):
    pool = make_pool(fetchrow=[artwork_row(ids, status='SOLD')])
    
    with pytest.raises(ConflictError, match="already sold"):
        await OrderManager(pool, notifier=notifier).create_order(ids['buyer'], ids['artwork'])
    
    assert pool.conn.sql('fetchval') == []
    assert notifier.calls == []

@pytest.mark.asyncio
async def test_artist_cannot_order_own_artwork(make_pool, ids):
    with pytest.raises(ValidationError):
        await OrderManager(make_pool(fetchrow=[artwork_row(ids)])).create_order(ids['artist'], ids['artwork'])

@pytest.mark.asyncio
async def test_confirm_marks_artwork_sold(make_pool, notifier, ids, artist):
    """Test that confirming flips the artwork to SOLD in the same transaction."""
    pool = make_pool(
        fetchrow=[order_row(ids), order_row(ids, status='CONFIRMED')],
        fetchval=[ids['artwork']]
    )
    
    order = await OrderManager(pool, notifier=notifier).update_status(ids['order'], 'CONFIRMED', artist)
    
    assert order['status'] == 'CONFIRMED'
    sold_sql = pool.conn.sql('fetchval')[0]
    assert "SET status = 'SOLD'" in sold_sql
    assert "status != 'SOLD'" in sold_sql
    assert pool.conn.transactions == ['begin', 'commit']
    assert notifier.calls[0]['user_id'] == ids['buyer']
    assert 'confirmed' in notifier.calls[0]['message']

@pytest.mark.asyncio
async def test_confirm_when_artwork_already_sold(make_pool, notifier, ids, artist):
    pool = make_pool(fetchrow=[order_row(ids)], fetchval=[None])
    
    with pytest.raises(ConflictError):
        await OrderManager(pool, notifier=notifier).update_status(ids['order'], 'CONFIRMED', artist)
    
    assert pool.conn.transactions == ['begin', 'rollback']
    assert pool.conn.sql('execute') == []
    assert notifier.calls == []

@pytest.mark.asyncio
async def test_cancel_does_not_touch_artwork(make_pool, notifier, ids, artist):
    pool = make_pool(fetchrow=[order_row(ids), order_row(ids, status='CANCELLED')])
    
    await OrderManager(pool, notifier=notifier).update_status(ids['order'], 'CANCELLED', artist)
    
    assert pool.conn.sql('fetchval') == []
    assert 'cancelled' in notifier.calls[0]['message']

@pytest.mark.asyncio
async def test_only_the_orders_artist_may_update(make_pool, ids):
    other = {'id': uuid.uuid4(), 'role': 'ARTIST'}
    
    with pytest.raises(ForbiddenError):
        await OrderManager(make_pool(fetchrow=[order_row(ids)])).update_status(ids['order'], 'CONFIRMED', other)

@pytest.mark.asyncio
async def test_unknown_status(make_pool, ids, artist):
    pool = make_pool()
    
    with pytest.raises(ValidationError):
        await OrderManager(pool).update_status(ids['order'], 'SHIPPED', artist)
    
    assert pool.acquired == 0

@pytest.mark.asyncio
async def test_update_missing_order(make_pool, ids, admin):
    with pytest.raises(NotFoundError):
        await OrderManager(make_pool()).update_status(ids['order'], 'COMPLETED', admin)

@pytest.mark.asyncio
async def test_artists_list_their_sales_and_buyers_their_purchases(make_pool, ids, artist, buyer):
    pool = make_pool(fetchval=[0, 0])
    manager = OrderManager(pool)
    
    await manager.list_orders(artist)
    await manager.list_orders(buyer, status='PENDING')
    
    artist_query, buyer_query = pool.conn.sql('fetch')
    assert 'o.artist_id = $1' in artist_query
    assert 'o.buyer_id = $1' in buyer_query and 'o.status = $2' in buyer_query
    assert pool.conn.calls[2]['args'] == (ids['buyer'], 'PENDING', 20, 0)

@pytest.mark.asyncio
async def test_cancelling_a_confirmed_order_puts_the_artwork_back_on_sale(make_pool, notifier, ids, artist):
    pool = make_pool(fetchrow=[order_row(ids, status='CONFIRMED'), order_row(ids, status='CANCELLED')])
    
    await OrderManager(pool, notifier=notifier).update_status(ids['order'], 'CANCELLED', artist)
    
    release_sql, order_sql = pool.conn.sql('execute')
    assert "SET status = 'PUBLISHED'" in release_sql
    assert "status = 'SOLD'" in release_sql
    assert pool.conn.calls[1]['args'] == (ids['artwork'],)
    assert 'UPDATE orders' in order_sql
    assert pool.conn.transactions == ['begin', 'commit']
    assert 'cancelled' in notifier.calls[0]['message']

@pytest.mark.asyncio
async def test_completing_a_confirmed_order_keeps_the_artwork_sold(make_pool, notifier, ids, artist):
    pool = make_pool(fetchrow=[order_row(ids, status='CONFIRMED'), order_row(ids, status='COMPLETED')])
    
    await OrderManager(pool, notifier=notifier).update_status(ids['order'], 'COMPLETED', artist)
    
    assert [sql for sql in pool.conn.sql('execute') if 'artworks' in sql] == []
    assert pool.conn.sql('fetchval') == []

@pytest.mark.asyncio
@pytest.mark.parametrize('current,requested', [
    ('CANCELLED', 'CONFIRMED'),
    ('CANCELLED', 'PENDING'),
    ('COMPLETED', 'CANCELLED'),
    ('CONFIRMED', 'PENDING'),
    ('PENDING', 'COMPLETED')
])
async def test_disallowed_transitions_are_conflicts(make_pool, notifier, ids, admin, current, requested):
    pool = make_pool(fetchrow=[order_row(ids, status=current)])
    
    with pytest.raises(ConflictError, match=f"from {current} to {requested}"):
        await OrderManager(pool, notifier=notifier).update_status(ids['order'], requested, admin)
    
    assert pool.conn.sql('execute') == []
    assert pool.conn.sql('fetchval') == []
    assert pool.conn.transactions == ['begin', 'rollback']
    assert notifier.calls == []

@pytest.mark.asyncio
async def test_repeating_the_current_status_changes_nothing(make_pool, notifier, ids, artist):
    pool = make_pool(fetchrow=[order_row(ids, status='CONFIRMED'), order_row(ids, status='CONFIRMED')])
    
    order = await OrderManager(pool, notifier=notifier).update_status(ids['order'], 'CONFIRMED', artist)
    
    assert order['status'] == 'CONFIRMED'
    assert pool.conn.sql('execute') == []
    assert pool.conn.sql('fetchval') == []
    assert notifier.calls == []
