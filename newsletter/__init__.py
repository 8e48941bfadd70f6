"""Newsletter module for public email subscriptions.

Subscriptions are keyed by the lower-cased email. Unsubscribing keeps the
row with is_active false, so subscribing again reactivates it.
"""

import logging
import re
from typing import Any, Dict, Optional

from auth import normalize_email
from database import get_pool
from errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')

SUBSCRIPTION_COLUMNS = 'id, email, is_active, created_at, updated_at'

# Outcomes of subscribe()
SUBSCRIBED = 'subscribed'
ALREADY_SUBSCRIBED = 'already_subscribed'
REACTIVATED = 'reactivated'

def validate_email(email: Optional[str]) -> str:
    """Normalize an email address and check its shape.
    
    Raises:
        ValidationError: If the email is missing or malformed
    """
    email = normalize_email(email)
    if not email:
        raise ValidationError("Email is required")
    if not EMAIL_PATTERN.match(email):
        raise ValidationError("Please enter a valid email address")
    return email

class NewsletterManager:
    """Manager class for newsletter subscriptions."""
    
    def __init__(self, pool=None):
        self.pool = pool
    
    async def ensure_pool(self):
        """Ensure we have a database pool."""
        if not self.pool:
            self.pool = await get_pool()
    
    async def subscribe(self, email: str) -> Dict[str, Any]:
        """Subscribe an email, reactivating an earlier subscription.
        
        Subscribing an active email again changes nothing.
        
        Returns:
            Dict with the subscription row and the outcome, one of
            SUBSCRIBED, ALREADY_SUBSCRIBED or REACTIVATED
            
        Raises:
            ValidationError: If the email is missing or malformed
        """
        email = validate_email(email)
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                existing = await conn.fetchrow(
                    f'SELECT {SUBSCRIPTION_COLUMNS} FROM newsletter_subscriptions WHERE email = $1 FOR UPDATE',
                    email
                )
                if existing and existing['is_active']:
                    return {'subscription': dict(existing), 'status': ALREADY_SUBSCRIBED}
                
                if existing:
                    subscription = await conn.fetchrow(
                        f'''
                        UPDATE newsletter_subscriptions
                        SET is_active = true, updated_at = now()
                        WHERE id = $1
                        RETURNING {SUBSCRIPTION_COLUMNS}
                        ''',
                        existing['id']
                    )
                    outcome = REACTIVATED
                else:
                    subscription = await conn.fetchrow(
                        f'''
                        INSERT INTO newsletter_subscriptions (email)
                        VALUES ($1)
                        ON CONFLICT (email) DO NOTHING
                        RETURNING {SUBSCRIPTION_COLUMNS}
                        ''',
                        email
                    )
                    if not subscription:
                        # A concurrent request created the row first
                        subscription = await conn.fetchrow(
                            f'SELECT {SUBSCRIPTION_COLUMNS} FROM newsletter_subscriptions WHERE email = $1',
                            email
                        )
                        return {'subscription': dict(subscription), 'status': ALREADY_SUBSCRIBED}
                    outcome = SUBSCRIBED
        
        logger.info(f"Newsletter subscription {outcome}: {email}")
        return {'subscription': dict(subscription), 'status': outcome}
    
    async def unsubscribe(self, email: str) -> Dict[str, Any]:
        """Deactivate an email's subscription.
        
        Raises:
            ValidationError: If the email is missing
            NotFoundError: If the email never subscribed
        """
        email = normalize_email(email)
        if not email:
            raise ValidationError("Email is required")
        
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            subscription = await conn.fetchrow(
                f'''
                UPDATE newsletter_subscriptions
                SET is_active = false, updated_at = now()
                WHERE email = $1
                RETURNING {SUBSCRIPTION_COLUMNS}
                ''',
                email
            )
        
        if not subscription:
            raise NotFoundError("Email not found in our newsletter list")
        
        logger.info(f"Newsletter unsubscribed: {email}")
        return dict(subscription)

__all__ = [
    'NewsletterManager',
    'validate_email',
    'SUBSCRIBED',
    'ALREADY_SUBSCRIBED',
    'REACTIVATED'
]
