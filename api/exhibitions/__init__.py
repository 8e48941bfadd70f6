"""Exhibition API endpoints."""

from datetime import datetime
from fastapi import APIRouter, Depends, Query, status
from typing import Any, Dict, List, Optional
from pydantic import BaseModel
from uuid import UUID

from auth import authorize, get_optional_user
from exhibitions import ExhibitionManager
from ..responses import ok

router = APIRouter(
    prefix="/exhibitions",
    tags=["Exhibitions"]
)

class CreateExhibitionRequest(BaseModel):
    """Request model for creating an exhibition."""
    title: str
    description: str
    location: str
    start_date: datetime
    end_date: datetime
    cover_image: Optional[str] = None
    gallery_images: List[str] = []
    submission_notes: Optional[str] = None
    status: Optional[str] = None

class UpdateExhibitionRequest(BaseModel):
    """Request model for updating an exhibition; only given fields change."""
    title: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    cover_image: Optional[str] = None
    gallery_images: Optional[List[str]] = None
    submission_notes: Optional[str] = None
    status: Optional[str] = None

@router.get("")
async def list_exhibitions(
    page: int = Query(1, ge=1),
    limit: int = Query(9, ge=1, le=100),
    search: Optional[str] = None,
    artist_id: Optional[UUID] = None,
    is_promoted: bool = False
):
    """List approved exhibitions, promoted ones first."""
    return ok(await ExhibitionManager().list_approved(
        page=page, limit=limit, search=search, artist_id=artist_id, promoted=is_promoted
    ))

@router.get("/me")
async def my_exhibitions(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[str] = None,
    user: Dict[str, Any] = Depends(authorize('ARTIST'))
):
    """List the current artist's exhibitions of every status."""
    return ok(await ExhibitionManager().search_exhibitions(
        page=page, limit=limit, status=status, artist_id=user['id']
    ))

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_exhibition(
    request: CreateExhibitionRequest,
    user: Dict[str, Any] = Depends(authorize('ARTIST'))
):
    """Create an exhibition as a draft or for review."""
    fields = request.model_dump(exclude_none=True)
    exhibition = await ExhibitionManager().create_exhibition(user['id'], fields)
    return ok(exhibition, "Exhibition created successfully")

@router.get("/{exhibition_id}")
async def get_exhibition(
    exhibition_id: UUID,
    user: Optional[Dict[str, Any]] = Depends(get_optional_user)
):
    """Get an exhibition; unapproved ones only for their artist and admins."""
    return ok(await ExhibitionManager().get_exhibition(exhibition_id, user))

@router.put("/{exhibition_id}")
async def update_exhibition(
    exhibition_id: UUID,
    request: UpdateExhibitionRequest,
    user: Dict[str, Any] = Depends(authorize('ARTIST'))
):
    """Update an exhibition that is not approved yet."""
    exhibition = await ExhibitionManager().update_exhibition(
        exhibition_id, user, request.model_dump(exclude_unset=True)
    )
    return ok(exhibition, "Exhibition updated successfully")

@router.delete("/{exhibition_id}")
async def delete_exhibition(
    exhibition_id: UUID,
    user: Dict[str, Any] = Depends(authorize('ARTIST'))
):
    """Delete an exhibition."""
    await ExhibitionManager().delete_exhibition(exhibition_id, user)
    return ok(message="Exhibition deleted successfully")

__all__ = ['router']
