"""Cart API endpoints for the current user."""

from fastapi import APIRouter, Depends
from typing import Any, Dict, List
from pydantic import BaseModel, Field
from uuid import UUID

from auth import get_current_user
from carts import CartManager
from ..responses import ok

router = APIRouter(
    prefix="/cart",
    tags=["Cart"]
)

class AddItemRequest(BaseModel):
    """Request model for adding an artwork to the cart."""
    artwork_id: UUID
    quantity: int = Field(1, ge=1)

class UpdateItemRequest(BaseModel):
    """Request model for changing an item's quantity."""
    quantity: int = Field(..., ge=1)

class SyncItem(BaseModel):
    """One item of a client-side cart."""
    artwork_id: str
    quantity: int = 1

class SyncRequest(BaseModel):
    """Request model for merging a client-side cart."""
    items: List[SyncItem] = []

@router.get("")
async def get_cart(user: Dict[str, Any] = Depends(get_current_user)):
    """Get the current user's cart."""
    return ok(await CartManager().get_cart(user['id']))

@router.post("/items")
async def add_item(
    request: AddItemRequest,
    user: Dict[str, Any] = Depends(get_current_user)
):
    """Add an artwork to the cart."""
    cart = await CartManager().add_item(user['id'], request.artwork_id, request.quantity)
    return ok(cart, "Item added to cart")

@router.put("/items/{artwork_id}")
async def update_item(
    artwork_id: UUID,
    request: UpdateItemRequest,
    user: Dict[str, Any] = Depends(get_current_user)
):
    """Change the quantity of a cart item."""
    cart = await CartManager().update_item(user['id'], artwork_id, request.quantity)
    return ok(cart, "Cart updated")

@router.delete("/items/{artwork_id}")
async def remove_item(
    artwork_id: UUID,
    user: Dict[str, Any] = Depends(get_current_user)
):
    """Remove an artwork from the cart."""
    cart = await CartManager().remove_item(user['id'], artwork_id)
    return ok(cart, "Item removed from cart")

@router.delete("")
async def clear_cart(user: Dict[str, Any] = Depends(get_current_user)):
    """Remove every item from the cart."""
    return ok(await CartManager().clear(user['id']), "Cart cleared")

@router.post("/sync")
async def sync_cart(
    request: SyncRequest,
    user: Dict[str, Any] = Depends(get_current_user)
):
    """Merge a client-side cart into the stored cart."""
    cart = await CartManager().sync(user['id'], [item.model_dump() for item in request.items])
    return ok(cart, "Cart synced")

__all__ = ['router']
