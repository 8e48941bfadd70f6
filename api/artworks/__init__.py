"""Artworks API endpoints, including likes and comments on an artwork."""

from fastapi import APIRouter, Depends, Query, status
from typing import Any, Dict, List, Optional
from decimal import Decimal
from pydantic import BaseModel, Field
from uuid import UUID

from artworks import ArtworkManager, LikeManager, CommentManager
from auth import authorize, get_current_user
from config import settings_conf
from ..responses import ok

router = APIRouter(
    prefix="/artworks",
    tags=["Artworks"]
)

class ArtworkFields(BaseModel):
    """Fields shared by artwork create and update requests."""
    description: Optional[str] = None
    currency: Optional[str] = None
    dimensions: Optional[str] = None
    medium: Optional[str] = None
    year: Optional[int] = None
    category: Optional[str] = None
    images: Optional[List[str]] = None
    status: Optional[str] = None

class CreateArtworkRequest(ArtworkFields):
    """Request model for creating an artwork."""
    title: str
    price: Decimal = Field(..., ge=0)

class UpdateArtworkRequest(ArtworkFields):
    """Request model for updating an artwork."""
    title: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0)

class CommentRequest(BaseModel):
    """Request model for commenting on an artwork."""
    content: str
    parent_comment_id: Optional[UUID] = None

""" Public Endpoints - No Authentication Required """
@router.get("")
async def list_artworks(
    page: int = Query(1, ge=1),
    limit: int = Query(settings_conf['page_size'], ge=1, le=100),
    category: Optional[str] = None,
    artist: Optional[UUID] = None,
    search: Optional[str] = None,
    sort: Optional[str] = None
):
    """Browse published artworks."""
    return ok(await ArtworkManager().list_artworks(
        page=page,
        limit=limit,
        category=category,
        artist_id=artist,
        search=search,
        sort=sort
    ))

@router.get("/{artwork_id}")
async def get_artwork(artwork_id: UUID):
    """Get an artwork by ID."""
    return ok(await ArtworkManager().get_artwork(artwork_id))

@router.get("/{artwork_id}/comments")
async def list_comments(
    artwork_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100)
):
    """Get an artwork's comments with their first replies."""
    return ok(await CommentManager().list_comments(artwork_id, page=page, limit=limit))

""" Protected Endpoints """
@router.post("", status_code=status.HTTP_201_CREATED)
async def create_artwork(
    request: CreateArtworkRequest,
    user: Dict[str, Any] = Depends(authorize('ARTIST'))
):
    """Create an artwork owned by the current artist."""
    artwork = await ArtworkManager().create_artwork(
        user['id'],
        request.model_dump(exclude_none=True),
        default_currency=settings_conf['default_currency']
    )
    return ok(artwork, "Artwork created successfully")

@router.put("/{artwork_id}")
async def update_artwork(
    artwork_id: UUID,
    request: UpdateArtworkRequest,
    user: Dict[str, Any] = Depends(authorize('ARTIST', 'ADMIN'))
):
    """Update an artwork's fields."""
    artwork = await ArtworkManager().update_artwork(
        artwork_id,
        user,
        request.model_dump(exclude_unset=True)
    )
    return ok(artwork, "Artwork updated successfully")

@router.delete("/{artwork_id}")
async def delete_artwork(
    artwork_id: UUID,
    user: Dict[str, Any] = Depends(authorize('ARTIST', 'ADMIN'))
):
    """Delete an artwork with its likes, comments, reviews, orders and cart items."""
    await ArtworkManager().delete_artwork(artwork_id, user)
    return ok(message="Artwork deleted successfully")

@router.post("/{artwork_id}/like")
async def toggle_like(
    artwork_id: UUID,
    user: Dict[str, Any] = Depends(get_current_user)
):
    """Like the artwork, or unlike it when already liked."""
    result = await LikeManager().toggle_like(artwork_id, user['id'], user_name=user['name'])
    return ok(result, "Artwork liked" if result['liked'] else "Artwork unliked")

@router.get("/{artwork_id}/like")
async def check_like(
    artwork_id: UUID,
    user: Dict[str, Any] = Depends(get_current_user)
):
    """Check whether the current user likes the artwork."""
    return ok(await LikeManager().has_liked(artwork_id, user['id']))

@router.post("/{artwork_id}/comments", status_code=status.HTTP_201_CREATED)
async def add_comment(
    artwork_id: UUID,
    request: CommentRequest,
    user: Dict[str, Any] = Depends(get_current_user)
):
    """Comment on the artwork or reply to one of its comments."""
    comment = await CommentManager().add_comment(
        artwork_id,
        user['id'],
        request.content,
        parent_comment_id=request.parent_comment_id,
        user_name=user['name']
    )
    return ok(comment, "Comment added successfully")

# Export the router
__all__ = ['router']
