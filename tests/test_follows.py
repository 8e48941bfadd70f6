"""Tests for the follow graph."""

import pytest

from artists import FollowManager
from errors import NotFoundError, ValidationError

@pytest.mark.asyncio
async def test_self_follow_is_rejected_without_database_access(make_pool, notifier, ids):
    pool = make_pool()
    
    with pytest.raises(ValidationError):
        await FollowManager(pool, notifier=notifier).follow_artist(ids['artist'], ids['artist'])
    
    assert pool.acquired == 0
    assert pool.conn.calls == []

@pytest.mark.asyncio
async def test_self_follow_with_string_id(make_pool, ids):
    """Test that ids are compared by value whatever their type."""
    with pytest.raises(ValidationError):
        await FollowManager(make_pool()).follow_artist(str(ids['artist']), ids['artist'])

@pytest.mark.asyncio
async def test_follow_new_artist_notifies_once(make_pool, notifier, ids):
    pool = make_pool(
        fetchrow=[{'id': ids['artist']}],
        fetchval=[ids['artist'], 1]
    )
    
    result = await FollowManager(pool, notifier=notifier).follow_artist(
        ids['buyer'], ids['artist'], follower_name='Ben'
    )
    
    assert result == {'follower_count': 1, 'is_following': True}
    assert 'ON CONFLICT (follower_id, artist_id) DO NOTHING' in pool.conn.sql('fetchval')[0]
    assert len(notifier.of_type('FOLLOW')) == 1
    assert notifier.calls[0]['user_id'] == ids['artist']

@pytest.mark.asyncio
async def test_follow_twice_is_idempotent(make_pool, notifier, ids):
    """Test that a repeated follow keeps the count and sends no notification."""
    pool = make_pool(
        fetchrow=[{'id': ids['artist']}],
        fetchval=[None, 1]
    )
    
    result = await FollowManager(pool, notifier=notifier).follow_artist(ids['buyer'], ids['artist'])
    
    assert result == {'follower_count': 1, 'is_following': True}
    assert notifier.calls == []

@pytest.mark.asyncio
async def test_follow_unknown_artist(make_pool, notifier, ids):
    pool = make_pool(fetchrow=[None])
    
    with pytest.raises(NotFoundError):
        await FollowManager(pool, notifier=notifier).follow_artist(ids['buyer'], ids['artist'])
    
    assert pool.conn.sql('fetchval') == []
    assert notifier.calls == []

@pytest.mark.asyncio
async def test_unfollow_when_not_following(make_pool, ids):
    pool = make_pool(execute=['DELETE 0'], fetchval=[0])
    
    result = await FollowManager(pool).unfollow_artist(ids['buyer'], ids['artist'])
    
    assert result == {'follower_count': 0, 'is_following': False}

@pytest.mark.asyncio
async def test_follower_count_and_is_following(make_pool, ids):
    pool = make_pool(fetchval=[4, False])
    manager = FollowManager(pool)
    
    assert await manager.follower_count(ids['artist']) == 4
    assert await manager.is_following(ids['buyer'], ids['artist']) is False
