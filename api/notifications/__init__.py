"""Notifications API endpoints."""

from fastapi import APIRouter, Depends, Query
from typing import Any, Dict
from uuid import UUID

from auth import get_current_user
from notifications import NotificationManager
from ..responses import ok

router = APIRouter(
    prefix="/notifications",
    tags=["Notifications"]
)

@router.get("")
async def list_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    unread_only: bool = False,
    user: Dict[str, Any] = Depends(get_current_user)
):
    """Get the current user's notifications, newest first."""
    return ok(await NotificationManager().list_notifications(
        user['id'], page=page, limit=limit, unread_only=unread_only
    ))

@router.put("/mark-read")
async def mark_all_read(user: Dict[str, Any] = Depends(get_current_user)):
    """Mark all of the current user's notifications as read."""
    updated = await NotificationManager().mark_all_read(user['id'])
    return ok({'updated': updated}, "All notifications marked as read")

@router.put("/{notification_id}/read")
async def mark_read(
    notification_id: UUID,
    user: Dict[str, Any] = Depends(get_current_user)
):
    """Mark one notification as read."""
    return ok(await NotificationManager().mark_read(notification_id, user['id']))

@router.delete("/{notification_id}")
async def delete_notification(
    notification_id: UUID,
    user: Dict[str, Any] = Depends(get_current_user)
):
    """Delete one notification."""
    await NotificationManager().delete_notification(notification_id, user['id'])
    return ok(message="Notification deleted")

__all__ = ['router']
