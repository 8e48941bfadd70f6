"""Analytics API endpoints: page view tracking and artist dashboards."""

from fastapi import APIRouter, Depends, Query, Request, status
from typing import Any, Dict, Optional
from pydantic import BaseModel
from uuid import UUID

from analytics import AnalyticsManager
from auth import authorize, get_optional_user
from ..responses import ok

router = APIRouter(
    prefix="/analytics",
    tags=["Analytics"]
)

class PageViewRequest(BaseModel):
    """Request model for a page view."""
    page_type: Optional[str] = None
    artwork_id: Optional[UUID] = None
    artist_id: Optional[UUID] = None
    referrer: Optional[str] = None
    user_agent: Optional[str] = None
    ip_address: Optional[str] = None

@router.post("/pageview", status_code=status.HTTP_201_CREATED)
async def track_page_view(
    body: PageViewRequest,
    request: Request,
    user: Optional[Dict[str, Any]] = Depends(get_optional_user)
):
    """Record a page view, for the signed-in user when a token is sent."""
    view = await AnalyticsManager().track_page_view(
        page_type=body.page_type,
        artwork_id=body.artwork_id,
        artist_id=body.artist_id,
        user_id=user['id'] if user else None,
        referrer=body.referrer,
        user_agent=body.user_agent or request.headers.get('user-agent'),
        ip_address=body.ip_address or (request.client.host if request.client else None)
    )
    return ok(view)

@router.get("/artwork/{artwork_id}/views")
async def artwork_views(artwork_id: UUID):
    """Get an artwork's all-time view count."""
    return ok(await AnalyticsManager().get_artwork_views(artwork_id))

@router.get("/artist")
async def artist_analytics(
    days: int = Query(30, ge=1, le=365),
    user: Dict[str, Any] = Depends(authorize('ARTIST'))
):
    """Get the current artist's views and ratings."""
    return ok(await AnalyticsManager().get_artist_analytics(user['id'], days=days))

@router.get("/artwork/{artwork_id}")
async def artwork_analytics(
    artwork_id: UUID,
    days: int = Query(30, ge=1, le=365),
    user: Dict[str, Any] = Depends(authorize('ARTIST'))
):
    """Get one of the current artist's artworks' views and ratings."""
    return ok(await AnalyticsManager().get_artwork_analytics(artwork_id, user, days=days))

__all__ = ['router']
