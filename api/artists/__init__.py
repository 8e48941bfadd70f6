"""Artist API endpoints: profiles, statistics and follows."""

from fastapi import APIRouter, Depends, Query
from typing import Any, Dict, Optional
from pydantic import BaseModel
from uuid import UUID

from artists import ArtistManager, FollowManager
from auth import authorize, get_current_user, get_optional_user
from config import settings_conf
from ..responses import ok

router = APIRouter(
    prefix="/artists",
    tags=["Artists"]
)

class SocialLinks(BaseModel):
    """Social links, each merged into the stored ones when given."""
    instagram: Optional[str] = None
    facebook: Optional[str] = None
    twitter: Optional[str] = None

class UpdateProfileRequest(BaseModel):
    """Request model for updating the current artist's profile."""
    name: Optional[str] = None
    avatar: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    banner_image: Optional[str] = None
    social_links: Optional[SocialLinks] = None

@router.get("")
async def search_artists(
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(settings_conf['page_size'], ge=1, le=100)
):
    """Search artists by name or location."""
    return ok(await ArtistManager().search_artists(search, page=page, limit=limit))

""" Current artist """
@router.get("/me/artworks")
async def my_artworks(
    page: int = Query(1, ge=1),
    limit: int = Query(settings_conf['page_size'], ge=1, le=100),
    user: Dict[str, Any] = Depends(authorize('ARTIST'))
):
    """Get the current artist's artworks, drafts and sold ones included."""
    return ok(await ArtistManager().get_artworks(
        user['id'], page=page, limit=limit, include_unpublished=True
    ))

@router.get("/me/stats")
async def my_stats(user: Dict[str, Any] = Depends(authorize('ARTIST'))):
    """Get the current artist's totals."""
    return ok(await ArtistManager().get_stats(user['id']))

@router.put("/me")
async def update_my_profile(
    request: UpdateProfileRequest,
    user: Dict[str, Any] = Depends(authorize('ARTIST'))
):
    """Update the current artist's profile."""
    updates = request.model_dump(exclude_unset=True)
    if request.social_links is not None:
        updates['social_links'] = request.social_links.model_dump(exclude_unset=True)
    profile = await ArtistManager().update_profile(user['id'], updates)
    return ok(profile, "Profile updated successfully")

@router.get("/me/following")
async def my_following(user: Dict[str, Any] = Depends(get_current_user)):
    """Get the artists the current user follows."""
    return ok(await FollowManager().get_following(user['id']))

""" Any artist """
@router.get("/{artist_id}")
async def get_artist(
    artist_id: UUID,
    user: Optional[Dict[str, Any]] = Depends(get_optional_user)
):
    """Get an artist's profile."""
    viewer_id = user['id'] if user else None
    return ok(await ArtistManager().get_profile(artist_id, viewer_id=viewer_id))

@router.get("/{artist_id}/artworks")
async def get_artist_artworks(
    artist_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(settings_conf['page_size'], ge=1, le=100)
):
    """Get an artist's published artworks."""
    return ok(await ArtistManager().get_artworks(artist_id, page=page, limit=limit))

@router.get("/{artist_id}/followers")
async def get_artist_followers(artist_id: UUID):
    """Get the users following an artist."""
    return ok(await FollowManager().get_followers(artist_id))

@router.post("/{artist_id}/follow")
async def follow_artist(
    artist_id: UUID,
    user: Dict[str, Any] = Depends(get_current_user)
):
    """Follow an artist."""
    result = await FollowManager().follow_artist(user['id'], artist_id, follower_name=user['name'])
    return ok(result, "Artist followed")

@router.delete("/{artist_id}/follow")
async def unfollow_artist(
    artist_id: UUID,
    user: Dict[str, Any] = Depends(get_current_user)
):
    """Stop following an artist."""
    result = await FollowManager().unfollow_artist(user['id'], artist_id)
    return ok(result, "Artist unfollowed")

__all__ = ['router']
