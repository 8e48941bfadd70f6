"""Tests for newsletter subscriptions."""

import uuid
from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from api import app
from errors import NotFoundError, ValidationError
from newsletter import (
    ALREADY_SUBSCRIBED, REACTIVATED, SUBSCRIBED, NewsletterManager, validate_email
)

def subscription_row(email='ada@example.com', is_active=True):
    return {
        'id': uuid.uuid4(),
        'email': email,
        'is_active': is_active,
        'created_at': datetime(2024, 1, 1),
        'updated_at': datetime(2024, 1, 1)
    }

@pytest.mark.parametrize("email", [None, '', '   ', 'ada', 'ada@example', 'a da@example.com'])
def test_invalid_emails_are_rejected(email):
    with pytest.raises(ValidationError):
        validate_email(email)

def test_email_is_normalized():
    assert validate_email('  Ada@Example.COM ') == 'ada@example.com'

@pytest.mark.asyncio
async def test_new_email_is_subscribed(make_pool):
    row = subscription_row()
    pool = make_pool(fetchrow=[None, row])
    
    result = await NewsletterManager(pool).subscribe(' Ada@Example.com')
    
    assert result == {'subscription': row, 'status': SUBSCRIBED}
    lookup, insert = pool.conn.calls
    assert lookup['args'] == ('ada@example.com',)
    assert 'FOR UPDATE' in lookup['sql']
    assert 'ON CONFLICT (email) DO NOTHING' in insert['sql']
    assert pool.conn.transactions == ['begin', 'commit']

@pytest.mark.asyncio
async def test_active_email_is_already_subscribed(make_pool):
    row = subscription_row()
    pool = make_pool(fetchrow=[row])
    
    result = await NewsletterManager(pool).subscribe('ada@example.com')
    
    assert result['status'] == ALREADY_SUBSCRIBED
    assert len(pool.conn.calls) == 1

@pytest.mark.asyncio
async def test_inactive_email_is_reactivated(make_pool):
    inactive = subscription_row(is_active=False)
    pool = make_pool(fetchrow=[inactive, dict(inactive, is_active=True)])
    
    result = await NewsletterManager(pool).subscribe('ada@example.com')
    
    assert result['status'] == REACTIVATED
    assert result['subscription']['is_active'] is True
    update = pool.conn.calls[1]
    assert 'SET is_active = true' in update['sql']
    assert update['args'] == (inactive['id'],)

@pytest.mark.asyncio
async def test_concurrent_insert_counts_as_already_subscribed(make_pool):
    row = subscription_row()
    pool = make_pool(fetchrow=[None, None, row])
    
    result = await NewsletterManager(pool).subscribe('ada@example.com')
    
    assert result == {'subscription': row, 'status': ALREADY_SUBSCRIBED}

@pytest.mark.asyncio
async def test_unsubscribe_deactivates(make_pool):
    pool = make_pool(fetchrow=[subscription_row(is_active=False)])
    
    result = await NewsletterManager(pool).unsubscribe('ADA@example.com')
    
    assert result['is_active'] is False
    assert 'SET is_active = false' in pool.conn.calls[0]['sql']
    assert pool.conn.calls[0]['args'] == ('ada@example.com',)

@pytest.mark.asyncio
async def test_unsubscribe_unknown_email(make_pool):
    with pytest.raises(NotFoundError, match="not found in our newsletter list"):
        await NewsletterManager(make_pool()).unsubscribe('nobody@example.com')

@pytest.mark.asyncio
async def test_unsubscribe_requires_an_email(make_pool):
    pool = make_pool()
    
    with pytest.raises(ValidationError):
        await NewsletterManager(pool).unsubscribe('  ')
    
    assert pool.acquired == 0

@pytest.mark.parametrize("outcome,code,message", [
    (SUBSCRIBED, 201, "Successfully subscribed to newsletter"),
    (ALREADY_SUBSCRIBED, 200, "You are already subscribed to our newsletter"),
    (REACTIVATED, 200, "Welcome back! Your subscription has been reactivated")
])
def test_subscribe_endpoint_status_codes(monkeypatch, outcome, code, message):
    async def subscribe(self, email):
        return {'subscription': {'email': email, 'is_active': True}, 'status': outcome}
    monkeypatch.setattr(NewsletterManager, 'subscribe', subscribe)
    
    response = TestClient(app).post("/newsletter/subscribe", json={'email': 'ada@example.com'})
    
    assert response.status_code == code
    assert response.json()['message'] == message
    assert response.json()['data']['email'] == 'ada@example.com'

def test_subscribe_endpoint_rejects_bad_email():
    response = TestClient(app).post("/newsletter/subscribe", json={'email': 'not-an-email'})
    
    assert response.status_code == 400
    assert response.json() == {'success': False, 'message': "Please enter a valid email address"}
