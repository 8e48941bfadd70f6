"""Tests for artwork likes and the likes_count counter."""

import pytest

from artworks import LikeManager
from errors import NotFoundError

def artwork_row(ids, **overrides):
    row = {'id': ids['artwork'], 'artist_id': ids['artist'], 'title': 'Sunrise'}
    row.update(overrides)
    return row

@pytest.mark.asyncio
async def test_first_like_increments_and_notifies(make_pool, notifier, ids):
    """Test liking an artwork that the user has not liked yet."""
    pool = make_pool(
        fetchrow=[artwork_row(ids)],
        fetchval=[None, ids['buyer'], 1]
    )
    manager = LikeManager(pool, notifier=notifier)
    
    result = await manager.toggle_like(ids['artwork'], ids['buyer'], user_name='Ben')
    
    assert result == {'liked': True, 'likes_count': 1}
    assert 'likes_count = likes_count + 1' in pool.conn.sql('fetchval')[2]
    assert pool.conn.transactions == ['begin', 'commit']
    
    assert len(notifier.calls) == 1
    call = notifier.calls[0]
    assert call['user_id'] == ids['artist']
    assert call['type'] == 'LIKE'
    assert 'Ben' in call['message'] and 'Sunrise' in call['message']

@pytest.mark.asyncio
async def test_second_toggle_removes_like(make_pool, notifier, ids):
    """Test that toggling an existing like removes it and decrements the counter."""
    pool = make_pool(
        fetchrow=[artwork_row(ids)],
        fetchval=[ids['buyer'], 0]
    )
    manager = LikeManager(pool, notifier=notifier)
    
    result = await manager.toggle_like(ids['artwork'], ids['buyer'])
    
    assert result == {'liked': False, 'likes_count': 0}
    decrement = pool.conn.sql('fetchval')[1]
    assert 'GREATEST(likes_count - 1, 0)' in decrement
    assert not any('INSERT' in sql for sql in pool.conn.sql())
    assert notifier.calls == []

@pytest.mark.asyncio
async def test_artist_liking_own_artwork_is_not_notified(make_pool, notifier, ids):
    pool = make_pool(
        fetchrow=[artwork_row(ids)],
        fetchval=[None, ids['artist'], 3]
    )
    manager = LikeManager(pool, notifier=notifier)
    
    result = await manager.toggle_like(ids['artwork'], ids['artist'])
    
    assert result['liked'] is True
    assert notifier.calls == []

@pytest.mark.asyncio
async def test_concurrent_duplicate_insert_does_not_increment(make_pool, notifier, ids):
    """Test the path where another request inserted the same like first."""
    pool = make_pool(
        fetchrow=[artwork_row(ids)],
        fetchval=[None, None, 5]
    )
    manager = LikeManager(pool, notifier=notifier)
    
    result = await manager.toggle_like(ids['artwork'], ids['buyer'])
    
    assert result == {'liked': True, 'likes_count': 5}
    assert not any('likes_count + 1' in sql for sql in pool.conn.sql())
    assert notifier.calls == []

@pytest.mark.asyncio
async def test_like_missing_artwork(make_pool, notifier, ids):
    """Test that liking a non-existent artwork raises and changes nothing."""
    pool = make_pool(fetchrow=[None])
    manager = LikeManager(pool, notifier=notifier)
    
    with pytest.raises(NotFoundError):
        await manager.toggle_like(ids['artwork'], ids['buyer'])
    
    assert pool.conn.sql('fetchval') == []
    assert pool.conn.transactions == ['begin', 'rollback']
    assert notifier.calls == []

@pytest.mark.asyncio
async def test_has_liked(make_pool, ids):
    pool = make_pool(fetchval=[True])
    
    assert await LikeManager(pool).has_liked(ids['artwork'], ids['buyer']) == {'liked': True}
