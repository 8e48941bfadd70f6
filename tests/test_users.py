"""Tests for admin user moderation."""

import uuid
from decimal import Decimal

import pytest
from asyncpg.exceptions import UniqueViolationError

from users import UserManager
from errors import ConflictError, ForbiddenError, NotFoundError, ValidationError

@pytest.mark.asyncio
async def test_admin_cannot_change_own_role(make_pool, admin):
    pool = make_pool()
    
    with pytest.raises(ForbiddenError):
        await UserManager(pool).update_user(admin['id'], {'role': 'BUYER'}, admin)
    
    assert pool.acquired == 0

@pytest.mark.asyncio
async def test_admin_can_update_own_name(make_pool, admin):
    pool = make_pool(fetchrow=[dict(admin), dict(admin, name='New Name')])
    
    user = await UserManager(pool).update_user(admin['id'], {'name': 'New Name', 'role': 'ADMIN'}, admin)
    
    assert user['name'] == 'New Name'

@pytest.mark.asyncio
async def test_promoting_to_artist_creates_profile(make_pool, buyer, admin):
    pool = make_pool(fetchrow=[dict(buyer), dict(buyer, role='ARTIST')])
    
    await UserManager(pool).update_user(buyer['id'], {'role': 'ARTIST', 'is_verified': True}, admin)
    
    update, profile = pool.conn.calls[1], pool.conn.calls[2]
    assert 'is_verified = $2' in update['sql'] and 'role = $3' in update['sql']
    assert update['args'] == (buyer['id'], True, 'ARTIST')
    assert 'INSERT INTO artist_profiles' in profile['sql']

@pytest.mark.asyncio
async def test_update_with_taken_email(make_pool, buyer, admin):
    pool = make_pool(fetchrow=[dict(buyer)], execute=[UniqueViolationError("duplicate key")])
    
    with pytest.raises(ConflictError):
        await UserManager(pool).update_user(buyer['id'], {'email': ' Taken@Example.com '}, admin)
    
    assert pool.conn.calls[1]['args'] == (buyer['id'], 'taken@example.com')

@pytest.mark.parametrize("updates", [{'password_hash': 'x'}, {'role': 'ROOT'}, {'name': '  '}])
@pytest.mark.asyncio
async def test_invalid_updates(make_pool, buyer, admin, updates):
    with pytest.raises(ValidationError):
        await UserManager(make_pool()).update_user(buyer['id'], updates, admin)

@pytest.mark.asyncio
async def test_update_missing_user(make_pool, admin):
    with pytest.raises(NotFoundError):
        await UserManager(make_pool()).update_user(uuid.uuid4(), {'is_verified': True}, admin)

@pytest.mark.asyncio
async def test_admin_cannot_delete_self(make_pool, admin):
    pool = make_pool()
    
    with pytest.raises(ValidationError):
        await UserManager(pool).delete_user(str(admin['id']), admin)
    
    assert pool.acquired == 0

@pytest.mark.asyncio
async def test_delete_user_runs_cascade(make_pool, buyer, admin):
    pool = make_pool(fetchval=[True])
    
    result = await UserManager(pool).delete_user(buyer['id'], admin)
    
    assert result['user_id'] == buyer['id']
    assert pool.conn.sql('execute')[-1].strip() == 'DELETE FROM users WHERE id = $1'

@pytest.mark.asyncio
async def test_stats(make_pool):
    totals = {'users': 3, 'artists': 1, 'buyers': 1, 'artworks': 4, 'orders': 2,
              'likes': 5, 'comments': 6, 'reviews': 1, 'notifications': 9}
    pool = make_pool(fetchrow=[totals], fetchval=[Decimal('3000'), 1])
    
    stats = await UserManager(pool).get_stats()
    
    assert stats['totals'] == totals
    assert stats['revenue'] == Decimal('3000')
    assert stats['pending_orders'] == 1
    assert "status = 'COMPLETED'" in pool.conn.sql('fetchval')[0]
