"""Comment API endpoints addressed by comment id."""

from fastapi import APIRouter, Depends
from typing import Any, Dict
from uuid import UUID

from artworks import CommentManager
from auth import get_current_user
from ..responses import ok

router = APIRouter(
    prefix="/comments",
    tags=["Comments"]
)

@router.delete("/{comment_id}")
async def delete_comment(
    comment_id: UUID,
    user: Dict[str, Any] = Depends(get_current_user)
):
    """Delete a comment and its replies."""
    result = await CommentManager().delete_comment(comment_id, user)
    return ok(result, "Comment deleted successfully")

@router.post("/{comment_id}/like")
async def toggle_comment_like(
    comment_id: UUID,
    user: Dict[str, Any] = Depends(get_current_user)
):
    """Like the comment, or unlike it when already liked."""
    return ok(await CommentManager().toggle_comment_like(comment_id, user['id']))

__all__ = ['router']
