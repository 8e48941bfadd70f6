"""Admin moderation API endpoints. Every route requires the ADMIN role."""

from fastapi import APIRouter, Depends, Query
from typing import Any, Dict, Optional
from pydantic import BaseModel
from uuid import UUID

from artworks import ArtworkManager
from auth import authorize
from exhibitions import ExhibitionManager
from orders import OrderManager
from users import UserManager
from verification import VerificationManager
from ..responses import ok

router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
    dependencies=[Depends(authorize('ADMIN'))]
)

class UpdateUserRequest(BaseModel):
    """Request model for changing a user."""
    role: Optional[str] = None
    is_verified: Optional[bool] = None
    name: Optional[str] = None
    email: Optional[str] = None

class UpdateStatusRequest(BaseModel):
    """Request model for moving an order to a new status."""
    status: str

class ReviewExhibitionRequest(BaseModel):
    """Request model for approving or rejecting an exhibition."""
    action: str
    review_notes: Optional[str] = None

class PromotionRequest(BaseModel):
    """Request model for turning exhibition promotion on or off."""
    enable: bool
    promotion_notes: Optional[str] = None

class ApproveVerificationRequest(BaseModel):
    """Request model for approving a verification request."""
    notes: Optional[str] = None

class RejectVerificationRequest(BaseModel):
    """Request model for rejecting a verification request."""
    rejection_reason: Optional[str] = None
    notes: Optional[str] = None

class VerificationCommentRequest(BaseModel):
    """Request model for commenting on a verification request."""
    comment: str

@router.get("/stats")
async def get_stats():
    """Get site-wide totals, revenue and recent activity."""
    return ok(await UserManager().get_stats())

""" Users """
@router.get("/users")
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    role: Optional[str] = None,
    search: Optional[str] = None
):
    """List users."""
    return ok(await UserManager().list_users(page=page, limit=limit, role=role, search=search))

@router.get("/users/{user_id}")
async def get_user(user_id: UUID):
    """Get a user."""
    return ok(await UserManager().get_user(user_id))

@router.put("/users/{user_id}")
async def update_user(
    user_id: UUID,
    request: UpdateUserRequest,
    admin: Dict[str, Any] = Depends(authorize('ADMIN'))
):
    """Change a user's role, verification, name or email."""
    user = await UserManager().update_user(user_id, request.model_dump(exclude_none=True), admin)
    return ok(user, "User updated successfully")

@router.delete("/users/{user_id}")
async def delete_user(
    user_id: UUID,
    admin: Dict[str, Any] = Depends(authorize('ADMIN'))
):
    """Delete a user and everything that references them."""
    result = await UserManager().delete_user(user_id, admin)
    return ok(result, "User deleted successfully")

""" Artworks """
@router.get("/artworks")
async def list_artworks(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[str] = None,
    search: Optional[str] = None
):
    """List artworks of every status."""
    return ok(await ArtworkManager().list_artworks(
        page=page, limit=limit, search=search, status=status
    ))

@router.delete("/artworks/{artwork_id}")
async def delete_artwork(
    artwork_id: UUID,
    admin: Dict[str, Any] = Depends(authorize('ADMIN'))
):
    """Delete any artwork with its likes, comments, reviews, orders and cart items."""
    result = await ArtworkManager().delete_artwork(artwork_id, admin)
    return ok(result, "Artwork deleted successfully")

""" Orders """
@router.get("/orders")
async def list_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[str] = None
):
    """List all orders."""
    return ok(await OrderManager().search_orders(status=status, page=page, limit=limit))

@router.put("/orders/{order_id}/status")
async def update_order_status(
    order_id: UUID,
    request: UpdateStatusRequest,
    admin: Dict[str, Any] = Depends(authorize('ADMIN'))
):
    """Move any order to a new status."""
    order = await OrderManager().update_status(order_id, request.status, admin)
    return ok(order, f"Order status updated to {request.status}")

""" Exhibitions """
@router.get("/exhibitions")
async def list_exhibitions(
    page: int = Query(1, ge=1),
    limit: int = Query(15, ge=1, le=100),
    status: Optional[str] = None,
    artist_id: Optional[UUID] = None,
    is_promoted: bool = False
):
    """List exhibitions of every status."""
    return ok(await ExhibitionManager().search_exhibitions(
        page=page, limit=limit, status=status, artist_id=artist_id, promoted=is_promoted
    ))

@router.put("/exhibitions/{exhibition_id}/review")
async def review_exhibition(
    exhibition_id: UUID,
    request: ReviewExhibitionRequest,
    admin: Dict[str, Any] = Depends(authorize('ADMIN'))
):
    """Approve or reject an exhibition."""
    exhibition = await ExhibitionManager().review_exhibition(
        exhibition_id, admin, request.action, request.review_notes
    )
    verdict = 'approved' if exhibition['status'] == 'APPROVED' else 'rejected'
    return ok(exhibition, f"Exhibition {verdict} successfully")

@router.put("/exhibitions/{exhibition_id}/promotion")
async def promote_exhibition(exhibition_id: UUID, request: PromotionRequest):
    """Turn promotion of an approved exhibition on or off."""
    exhibition = await ExhibitionManager().set_promotion(
        exhibition_id, request.enable, request.promotion_notes
    )
    return ok(exhibition, f"Exhibition promotion {'enabled' if request.enable else 'disabled'}")

""" Verification requests """
@router.get("/verification-requests")
async def list_verification_requests(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[str] = None
):
    """List verification requests."""
    return ok(await VerificationManager().list_requests(status=status, page=page, limit=limit))

@router.get("/verification-requests/{request_id}")
async def get_verification_request(request_id: UUID):
    """Get a verification request with its comments."""
    return ok(await VerificationManager().get_request(request_id))

@router.put("/verification-requests/{request_id}/approve")
async def approve_verification_request(
    request_id: UUID,
    request: Optional[ApproveVerificationRequest] = None,
    admin: Dict[str, Any] = Depends(authorize('ADMIN'))
):
    """Approve a pending request and mark the artist verified."""
    result = await VerificationManager().review_request(
        request_id, admin, True, notes=request.notes if request else None
    )
    return ok(result, "Verification request approved successfully")

@router.put("/verification-requests/{request_id}/reject")
async def reject_verification_request(
    request_id: UUID,
    request: RejectVerificationRequest,
    admin: Dict[str, Any] = Depends(authorize('ADMIN'))
):
    """Reject a pending request with a reason."""
    result = await VerificationManager().review_request(
        request_id, admin, False, rejection_reason=request.rejection_reason, notes=request.notes
    )
    return ok(result, "Verification request rejected")

@router.post("/verification-requests/{request_id}/comments")
async def comment_verification_request(
    request_id: UUID,
    request: VerificationCommentRequest,
    admin: Dict[str, Any] = Depends(authorize('ADMIN'))
):
    """Add a comment to a verification request."""
    comment = await VerificationManager().add_comment(request_id, admin, request.comment)
    return ok(comment, "Comment added successfully")

__all__ = ['router']
