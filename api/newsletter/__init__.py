"""Newsletter API endpoints."""

from fastapi import APIRouter, Response, status
from typing import Optional
from pydantic import BaseModel

from newsletter import NewsletterManager, SUBSCRIBED, REACTIVATED
from ..responses import ok

router = APIRouter(
    prefix="/newsletter",
    tags=["Newsletter"]
)

class EmailRequest(BaseModel):
    """Request model carrying an email address."""
    email: Optional[str] = None

SUBSCRIBE_MESSAGES = {
    SUBSCRIBED: "Successfully subscribed to newsletter",
    REACTIVATED: "Welcome back! Your subscription has been reactivated"
}

@router.post("/subscribe")
async def subscribe(request: EmailRequest, response: Response):
    """Subscribe an email to the newsletter."""
    result = await NewsletterManager().subscribe(request.email)
    if result['status'] == SUBSCRIBED:
        response.status_code = status.HTTP_201_CREATED
    message = SUBSCRIBE_MESSAGES.get(result['status'], "You are already subscribed to our newsletter")
    return ok(result['subscription'], message)

@router.post("/unsubscribe")
async def unsubscribe(request: EmailRequest):
    """Unsubscribe an email from the newsletter."""
    await NewsletterManager().unsubscribe(request.email)
    return ok(message="Successfully unsubscribed from newsletter")

__all__ = ['router']
