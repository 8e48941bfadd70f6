"""End-to-end checks of the counter, cascade and follow guarantees.

These run against a real PostgreSQL or CockroachDB database named by
MARKET_TEST_DB_URL and are skipped when it is not set. Every table is
truncated before each test.
"""

import os

import pytest
import pytest_asyncio

from artists import FollowManager
from artworks import ArtworkManager, CommentManager, LikeManager
from auth import AuthManager
from carts import CartManager
from cascade import CascadeManager
from database import init_db, get_pool, close as db_close
from notifications import wait_pending
from orders import OrderManager
from reviews import ReviewManager

DB_URL = os.environ.get('MARKET_TEST_DB_URL')

pytestmark = pytest.mark.skipif(not DB_URL, reason="MARKET_TEST_DB_URL not set")

TABLES = (
    'users', 'artist_profiles', 'follows', 'artworks', 'likes', 'comments',
    'comment_likes', 'reviews', 'orders', 'notifications', 'carts', 'cart_items',
    'newsletter_subscriptions', 'exhibitions', 'verification_requests',
    'verification_comments', 'page_views'
)

@pytest_asyncio.fixture
async def pool():
    await init_db(DB_URL)
    pool = await get_pool()
    async with pool.acquire() as conn:
        await conn.execute(f"TRUNCATE {', '.join(TABLES)}")
    yield pool
    await wait_pending(5)
    await db_close()

@pytest_asyncio.fixture
async def users(pool):
    auth = AuthManager(pool)
    return {
        'artist': await auth.create_user('Ada', 'ada@example.com', 'secret1', 'ARTIST'),
        'buyer': await auth.create_user('Ben', 'ben@example.com', 'secret1', 'BUYER'),
        'other': await auth.create_user('Cy', 'cy@example.com', 'secret1', 'BUYER')
    }

@pytest_asyncio.fixture
async def artwork(pool, users):
    return await ArtworkManager(pool).create_artwork(
        users['artist']['id'], {'title': 'Sunrise', 'price': 1500}
    )

async def count(pool, sql, *args):
    async with pool.acquire() as conn:
        return await conn.fetchval(sql, *args)

@pytest.mark.asyncio
async def test_like_sequence(pool, users, artwork):
    likes = LikeManager(pool)
    
    first = await likes.toggle_like(artwork['id'], users['buyer']['id'])
    second = await likes.toggle_like(artwork['id'], users['other']['id'])
    third = await likes.toggle_like(artwork['id'], users['buyer']['id'])
    
    assert [first['likes_count'], second['likes_count'], third['likes_count']] == [1, 2, 1]
    assert third['liked'] is False
    stored = await count(pool, 'SELECT likes_count FROM artworks WHERE id = $1', artwork['id'])
    rows = await count(pool, 'SELECT COUNT(*) FROM likes WHERE artwork_id = $1', artwork['id'])
    assert stored == rows == 1

@pytest.mark.asyncio
async def test_deleting_comment_removes_replies_from_counter(pool, users, artwork):
    comments = CommentManager(pool)
    root = await comments.add_comment(artwork['id'], users['buyer']['id'], 'Lovely')
    for text in ('Agreed', 'Same'):
        await comments.add_comment(
            artwork['id'], users['other']['id'], text, parent_comment_id=root['id']
        )
    await comments.add_comment(artwork['id'], users['other']['id'], 'Unrelated')
    
    result = await comments.delete_comment(root['id'], users['buyer'])
    
    assert result == {'deleted': 3}
    stored = await count(pool, 'SELECT comments_count FROM artworks WHERE id = $1', artwork['id'])
    assert stored == 1

@pytest.mark.asyncio
async def test_follow_is_idempotent(pool, users):
    follows = FollowManager(pool)
    artist_id = users['artist']['id']
    
    await follows.follow_artist(users['buyer']['id'], artist_id)
    again = await follows.follow_artist(users['buyer']['id'], artist_id)
    await wait_pending(5)
    
    assert again == {'follower_count': 1, 'is_following': True}
    notified = await count(
        pool,
        "SELECT COUNT(*) FROM notifications WHERE user_id = $1 AND type = 'FOLLOW'",
        artist_id
    )
    assert notified == 1
    
    await follows.unfollow_artist(users['buyer']['id'], artist_id)
    result = await follows.unfollow_artist(users['buyer']['id'], artist_id)
    assert result['is_following'] is False
    assert result['follower_count'] == 0

@pytest.mark.asyncio
async def test_deleting_artist_leaves_no_references(pool, users, artwork):
    buyer_id = users['buyer']['id']
    await LikeManager(pool).toggle_like(artwork['id'], buyer_id)
    await CommentManager(pool).add_comment(artwork['id'], buyer_id, 'Lovely')
    await ReviewManager(pool).upsert_review(artwork['id'], buyer_id, 5)
    await OrderManager(pool).create_order(buyer_id, artwork['id'])
    await CartManager(pool).add_item(buyer_id, artwork['id'])
    await FollowManager(pool).follow_artist(buyer_id, users['artist']['id'])
    await wait_pending(5)
    
    await CascadeManager(pool).delete_user(users['artist']['id'])
    
    for table, column in (
        ('artworks', 'id'),
        ('likes', 'artwork_id'),
        ('comments', 'artwork_id'),
        ('reviews', 'artwork_id'),
        ('orders', 'artwork_id'),
        ('cart_items', 'artwork_id')
    ):
        remaining = await count(pool, f'SELECT COUNT(*) FROM {table} WHERE {column} = $1', artwork['id'])
        assert remaining == 0, table
    assert await count(pool, 'SELECT COUNT(*) FROM follows') == 0
    assert await count(pool, 'SELECT COUNT(*) FROM users') == 2

@pytest.mark.asyncio
async def test_cart_prunes_deleted_artworks(pool, users, artwork):
    carts = CartManager(pool)
    await carts.add_item(users['buyer']['id'], artwork['id'])
    async with pool.acquire() as conn:
        await conn.execute('DELETE FROM artworks WHERE id = $1', artwork['id'])
    
    first = await carts.get_cart(users['buyer']['id'])
    second = await carts.get_cart(users['buyer']['id'])
    
    assert first['items'] == second['items'] == []
    assert first['total_price'] == second['total_price'] == 0

@pytest.mark.asyncio
async def test_deleting_a_buyer_keeps_counters_equal_to_rows(pool, users, artwork):
    buyer_id, other_id = users['buyer']['id'], users['other']['id']
    likes, comments = LikeManager(pool), CommentManager(pool)
    await likes.toggle_like(artwork['id'], buyer_id)
    await likes.toggle_like(artwork['id'], other_id)
    mine = await comments.add_comment(artwork['id'], buyer_id, 'Lovely')
    await comments.add_comment(artwork['id'], other_id, 'Agreed', parent_comment_id=mine['id'])
    theirs = await comments.add_comment(artwork['id'], other_id, 'Great light')
    await comments.add_comment(artwork['id'], buyer_id, 'Thanks', parent_comment_id=theirs['id'])
    await wait_pending(5)
    
    result = await CascadeManager(pool).delete_user(buyer_id)
    
    assert result['steps']['likes'] == 1
    assert result['steps']['comments'] == 3
    stored = await count(
        pool, 'SELECT likes_count FROM artworks WHERE id = $1', artwork['id']
    )
    assert stored == await count(pool, 'SELECT COUNT(*) FROM likes WHERE artwork_id = $1', artwork['id']) == 1
    stored = await count(
        pool, 'SELECT comments_count FROM artworks WHERE id = $1', artwork['id']
    )
    assert stored == await count(pool, 'SELECT COUNT(*) FROM comments WHERE artwork_id = $1', artwork['id']) == 1
