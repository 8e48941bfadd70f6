"""Review API endpoints."""

from fastapi import APIRouter, Depends, Query, status
from typing import Any, Dict, Optional
from pydantic import BaseModel
from uuid import UUID

from auth import get_current_user
from reviews import ReviewManager
from ..responses import ok

router = APIRouter(
    prefix="/reviews",
    tags=["Reviews"]
)

class ReviewRequest(BaseModel):
    """Request model for reviewing an artwork."""
    artwork_id: UUID
    rating: int
    comment: Optional[str] = ''

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_review(
    request: ReviewRequest,
    user: Dict[str, Any] = Depends(get_current_user)
):
    """Review an artwork, replacing the user's earlier review of it."""
    review = await ReviewManager().upsert_review(
        request.artwork_id,
        user['id'],
        request.rating,
        request.comment or ''
    )
    return ok(review, "Review saved successfully")

@router.get("/artwork/{artwork_id}")
async def list_reviews(
    artwork_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100)
):
    """Get an artwork's reviews with the average rating."""
    return ok(await ReviewManager().list_reviews(artwork_id, page=page, limit=limit))

@router.delete("/{review_id}")
async def delete_review(
    review_id: UUID,
    user: Dict[str, Any] = Depends(get_current_user)
):
    """Delete a review."""
    await ReviewManager().delete_review(review_id, user)
    return ok(message="Review deleted successfully")

__all__ = ['router']
