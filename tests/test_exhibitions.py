"""Tests for exhibitions and their admin review."""

import uuid
from datetime import datetime, timezone

import pytest

from errors import ForbiddenError, NotFoundError, ValidationError
from exhibitions import ExhibitionManager

START = datetime(2025, 3, 1, 10, 0)
END = datetime(2025, 3, 14, 18, 0)

@pytest.fixture
def exhibition_id():
    return uuid.uuid4()

def exhibition_row(exhibition_id, artist_id, status='PENDING', **extra):
    row = {
        'id': exhibition_id,
        'artist_id': artist_id,
        'title': 'Light and Clay',
        'description': 'New ceramics',
        'location': 'Kigali',
        'start_date': START,
        'end_date': END,
        'status': status,
        'is_promoted': False,
        'is_published': True
    }
    row.update(extra)
    return row

def new_exhibition(**overrides):
    fields = {
        'title': ' Light and Clay ',
        'description': 'New ceramics',
        'location': 'Kigali',
        'start_date': START,
        'end_date': END
    }
    fields.update(overrides)
    return fields

@pytest.mark.asyncio
async def test_create_is_submitted_for_review(make_pool, ids, exhibition_id):
    pool = make_pool(fetchval=[exhibition_id], fetchrow=[exhibition_row(exhibition_id, ids['artist'])])
    
    exhibition = await ExhibitionManager(pool).create_exhibition(ids['artist'], new_exhibition())
    
    assert exhibition['id'] == exhibition_id
    insert = pool.conn.calls[0]
    assert insert['args'] == (
        ids['artist'], 'Light and Clay', 'New ceramics', 'Kigali', START, END, None, [], None, 'PENDING'
    )

@pytest.mark.asyncio
@pytest.mark.parametrize("requested,stored", [('DRAFT', 'DRAFT'), ('APPROVED', 'PENDING'), ('REJECTED', 'PENDING')])
async def test_artists_only_choose_draft_or_review(make_pool, ids, exhibition_id, requested, stored):
    pool = make_pool(fetchval=[exhibition_id], fetchrow=[exhibition_row(exhibition_id, ids['artist'])])
    
    await ExhibitionManager(pool).create_exhibition(ids['artist'], new_exhibition(status=requested))
    
    assert pool.conn.calls[0]['args'][-1] == stored

@pytest.mark.asyncio
async def test_create_accepts_iso_dates_with_offsets(make_pool, ids, exhibition_id):
    pool = make_pool(fetchval=[exhibition_id], fetchrow=[exhibition_row(exhibition_id, ids['artist'])])
    
    await ExhibitionManager(pool).create_exhibition(ids['artist'], new_exhibition(
        start_date='2025-03-01T12:00:00+02:00',
        end_date=datetime(2025, 3, 2, tzinfo=timezone.utc)
    ))
    
    args = pool.conn.calls[0]['args']
    assert args[4] == START
    assert args[5] == datetime(2025, 3, 2)

@pytest.mark.asyncio
@pytest.mark.parametrize("overrides", [
    {'end_date': datetime(2025, 2, 1)},
    {'location': '  '},
    {'start_date': 'next week'},
    {'ticket_price': 10}
])
async def test_create_validation(make_pool, ids, overrides):
    pool = make_pool()
    
    with pytest.raises(ValidationError):
        await ExhibitionManager(pool).create_exhibition(ids['artist'], new_exhibition(**overrides))
    
    assert pool.acquired == 0

@pytest.mark.asyncio
async def test_create_requires_dates(make_pool, ids):
    fields = new_exhibition()
    del fields['end_date']
    
    with pytest.raises(ValidationError, match="End date is required"):
        await ExhibitionManager(make_pool()).create_exhibition(ids['artist'], fields)

@pytest.mark.asyncio
async def test_update_clears_review_and_promotion(make_pool, ids, artist, exhibition_id):
    current = {'artist_id': ids['artist'], 'status': 'REJECTED', 'start_date': START, 'end_date': END}
    pool = make_pool(fetchrow=[current, exhibition_row(exhibition_id, ids['artist'])])
    
    await ExhibitionManager(pool).update_exhibition(exhibition_id, artist, {'title': 'Clay', 'status': 'PENDING'})
    
    update = pool.conn.sql('execute')[0]
    assert 'status = $2' in update and 'title = $3' in update
    assert 'reviewed_by = NULL' in update and 'is_promoted = false' in update
    assert pool.conn.calls[1]['args'] == (exhibition_id, 'PENDING', 'Clay')
    assert pool.conn.transactions == ['begin', 'commit']

@pytest.mark.asyncio
async def test_approved_exhibition_cannot_be_edited(make_pool, ids, artist, exhibition_id):
    current = {'artist_id': ids['artist'], 'status': 'APPROVED', 'start_date': START, 'end_date': END}
    pool = make_pool(fetchrow=[current])
    
    with pytest.raises(ValidationError, match="Approved exhibitions cannot be edited"):
        await ExhibitionManager(pool).update_exhibition(exhibition_id, artist, {'title': 'Clay'})
    
    assert pool.conn.sql('execute') == []
    assert pool.conn.transactions == ['begin', 'rollback']

@pytest.mark.asyncio
async def test_update_checks_dates_against_stored_ones(make_pool, ids, artist, exhibition_id):
    current = {'artist_id': ids['artist'], 'status': 'PENDING', 'start_date': START, 'end_date': END}
    pool = make_pool(fetchrow=[current])
    
    with pytest.raises(ValidationError, match="End date"):
        await ExhibitionManager(pool).update_exhibition(
            exhibition_id, artist, {'end_date': datetime(2025, 2, 28)}
        )

@pytest.mark.asyncio
async def test_only_the_artist_updates_or_deletes(make_pool, ids, buyer, exhibition_id):
    current = {'artist_id': ids['artist'], 'status': 'PENDING', 'start_date': START, 'end_date': END}
    
    with pytest.raises(ForbiddenError):
        await ExhibitionManager(make_pool(fetchrow=[current])).update_exhibition(
            exhibition_id, buyer, {'title': 'Mine'}
        )
    with pytest.raises(ForbiddenError):
        await ExhibitionManager(make_pool(fetchval=[ids['artist']])).delete_exhibition(exhibition_id, buyer)

@pytest.mark.asyncio
async def test_delete_exhibition(make_pool, ids, artist, exhibition_id):
    pool = make_pool(fetchval=[ids['artist']])
    
    await ExhibitionManager(pool).delete_exhibition(exhibition_id, artist)
    
    assert pool.conn.calls[1]['sql'] == 'DELETE FROM exhibitions WHERE id = $1'

@pytest.mark.asyncio
async def test_delete_missing_exhibition(make_pool, artist, exhibition_id):
    with pytest.raises(NotFoundError):
        await ExhibitionManager(make_pool()).delete_exhibition(exhibition_id, artist)

@pytest.mark.asyncio
async def test_unapproved_exhibition_visibility(make_pool, ids, artist, buyer, admin, exhibition_id):
    row = exhibition_row(exhibition_id, ids['artist'], status='PENDING')
    
    for viewer in (artist, admin):
        exhibition = await ExhibitionManager(make_pool(fetchrow=[row])).get_exhibition(exhibition_id, viewer)
        assert exhibition['status'] == 'PENDING'
    for viewer in (buyer, None):
        with pytest.raises(ForbiddenError):
            await ExhibitionManager(make_pool(fetchrow=[row])).get_exhibition(exhibition_id, viewer)

@pytest.mark.asyncio
async def test_approved_exhibition_is_public(make_pool, ids, exhibition_id):
    row = exhibition_row(exhibition_id, ids['artist'], status='APPROVED')
    
    exhibition = await ExhibitionManager(make_pool(fetchrow=[row])).get_exhibition(exhibition_id)
    
    assert exhibition['id'] == exhibition_id

@pytest.mark.asyncio
async def test_public_listing_shows_approved_promoted_first(make_pool, ids):
    pool = make_pool(fetchval=[0])
    
    await ExhibitionManager(pool).list_approved(page=2, limit=9, search='clay', promoted=True)
    
    query = pool.conn.sql('fetch')[0]
    assert 'e.status = $1' in query and 'e.is_published' in query and 'e.is_promoted' in query
    assert 'ORDER BY e.is_promoted DESC, e.start_date ASC' in query
    assert pool.conn.calls[0]['args'] == ('APPROVED', '%clay%', 9, 9)

@pytest.mark.asyncio
async def test_search_rejects_unknown_status(make_pool):
    with pytest.raises(ValidationError):
        await ExhibitionManager(make_pool()).search_exhibitions(status='LIVE')

@pytest.mark.asyncio
async def test_rejecting_ends_promotion(make_pool, ids, admin, exhibition_id):
    pool = make_pool(
        fetchval=[exhibition_id],
        fetchrow=[exhibition_row(exhibition_id, ids['artist'], status='REJECTED')]
    )
    
    await ExhibitionManager(pool).review_exhibition(exhibition_id, admin, 'REJECT', ' Blurry photos ')
    
    review = pool.conn.calls[0]
    assert 'is_promoted = false' in review['sql']
    assert review['args'] == (exhibition_id, 'REJECTED', ids['admin'], 'Blurry photos')

@pytest.mark.asyncio
async def test_approving_keeps_promotion(make_pool, ids, admin, exhibition_id):
    pool = make_pool(
        fetchval=[exhibition_id],
        fetchrow=[exhibition_row(exhibition_id, ids['artist'], status='APPROVED')]
    )
    
    await ExhibitionManager(pool).review_exhibition(exhibition_id, admin, 'APPROVE')
    
    review = pool.conn.calls[0]
    assert 'is_promoted' not in review['sql']
    assert review['args'] == (exhibition_id, 'APPROVED', ids['admin'], None)

@pytest.mark.asyncio
async def test_review_validation(make_pool, admin, exhibition_id):
    with pytest.raises(ValidationError, match="APPROVE or REJECT"):
        await ExhibitionManager(make_pool()).review_exhibition(exhibition_id, admin, 'PUBLISH')
    with pytest.raises(NotFoundError):
        await ExhibitionManager(make_pool()).review_exhibition(exhibition_id, admin, 'APPROVE')

@pytest.mark.asyncio
async def test_only_approved_exhibitions_are_promoted(make_pool, exhibition_id):
    pool = make_pool(fetchval=['PENDING'])
    
    with pytest.raises(ValidationError, match="Only approved"):
        await ExhibitionManager(pool).set_promotion(exhibition_id, True)
    
    assert pool.conn.sql('execute') == []

@pytest.mark.asyncio
async def test_promotion_toggle(make_pool, ids, exhibition_id):
    pool = make_pool(
        fetchval=['APPROVED'],
        fetchrow=[exhibition_row(exhibition_id, ids['artist'], status='APPROVED', is_promoted=True)]
    )
    
    exhibition = await ExhibitionManager(pool).set_promotion(exhibition_id, True, 'Front page')
    
    assert exhibition['is_promoted'] is True
    assert pool.conn.calls[1]['args'] == (exhibition_id, True, 'Front page')
