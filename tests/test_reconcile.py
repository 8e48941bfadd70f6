"""Tests for the counter reconciliation worker."""

import logging

import pytest
from asyncpg.exceptions import SerializationError

from workers.reconcile_counters import RECONCILE_MAX_TRIES, RECONCILE_QUERIES, reconcile_counters

@pytest.fixture
def no_retry_wait(monkeypatch):
    """Skip the backoff sleeps between passes."""
    async def no_sleep(seconds):
        return None
    monkeypatch.setattr('asyncio.sleep', no_sleep)

@pytest.mark.asyncio
async def test_reports_corrected_rows(make_pool, caplog):
    pool = make_pool(execute=['UPDATE 2', 'UPDATE 0', 'UPDATE 1'])
    
    with caplog.at_level(logging.WARNING):
        corrected = await reconcile_counters(pool)
    
    assert corrected == {'likes_count': 2, 'comments_count': 0, 'total_artworks': 1}
    assert pool.conn.transactions == ['begin', 'commit']
    assert pool.conn.transaction_options == [{'isolation': 'serializable'}]
    assert "Corrected likes_count on 2 rows" in caplog.text
    assert "comments_count" not in caplog.text

@pytest.mark.asyncio
async def test_only_drifted_rows_are_rewritten(make_pool):
    pool = make_pool()
    
    await reconcile_counters(pool)
    
    assert pool.conn.sql() == list(RECONCILE_QUERIES.values())
    for sql in pool.conn.sql():
        assert '!= c.actual' in sql

@pytest.mark.asyncio
async def test_failed_pass_rolls_back(make_pool):
    pool = make_pool(execute=['UPDATE 1', RuntimeError("deadlock detected")])
    
    with pytest.raises(RuntimeError):
        await reconcile_counters(pool)
    
    assert pool.conn.transactions == ['begin', 'rollback']

@pytest.mark.asyncio
async def test_pass_is_retried_when_a_like_races_it(make_pool, no_retry_wait):
    """Test that a serialization failure reruns the whole pass."""
    pool = make_pool(execute=[
        'UPDATE 0',
        SerializationError("could not serialize access due to concurrent update"),
        'UPDATE 1', 'UPDATE 0', 'UPDATE 0'
    ])
    
    corrected = await reconcile_counters(pool)
    
    assert corrected == {'likes_count': 1, 'comments_count': 0, 'total_artworks': 0}
    assert pool.conn.transactions == ['begin', 'rollback', 'begin', 'commit']

@pytest.mark.asyncio
async def test_gives_up_after_repeated_serialization_failures(make_pool, no_retry_wait):
    failure = SerializationError("could not serialize access")
    pool = make_pool(execute=[failure] * RECONCILE_MAX_TRIES)
    
    with pytest.raises(SerializationError):
        await reconcile_counters(pool)
    
    assert pool.conn.transactions.count('rollback') == RECONCILE_MAX_TRIES
