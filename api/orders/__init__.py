"""Order API endpoints."""

from fastapi import APIRouter, Depends, Query, status
from typing import Any, Dict, Optional
from pydantic import BaseModel
from uuid import UUID

from auth import authorize, get_current_user
from orders import OrderManager
from ..responses import ok

router = APIRouter(
    prefix="/orders",
    tags=["Orders"]
)

class CreateOrderRequest(BaseModel):
    """Request model for ordering an artwork."""
    artwork_id: UUID
    message: Optional[str] = ''

class UpdateStatusRequest(BaseModel):
    """Request model for moving an order to a new status."""
    status: str

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_order(
    request: CreateOrderRequest,
    user: Dict[str, Any] = Depends(get_current_user)
):
    """Place an order for an artwork."""
    order = await OrderManager().create_order(
        user['id'],
        request.artwork_id,
        message=request.message or '',
        buyer_name=user['name']
    )
    return ok(order, "Order placed successfully")

@router.get("/me")
async def my_orders(
    status: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user: Dict[str, Any] = Depends(get_current_user)
):
    """Get the current user's orders: sales for artists, purchases otherwise."""
    return ok(await OrderManager().list_orders(user, status=status, page=page, limit=limit))

@router.put("/{order_id}/status")
async def update_order_status(
    order_id: UUID,
    request: UpdateStatusRequest,
    user: Dict[str, Any] = Depends(authorize('ARTIST', 'ADMIN'))
):
    """Move an order to a new status; confirming marks the artwork sold."""
    order = await OrderManager().update_status(order_id, request.status, user)
    return ok(order, f"Order status updated to {request.status}")

__all__ = ['router']
