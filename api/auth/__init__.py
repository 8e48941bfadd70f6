"""Authentication API endpoints."""

from fastapi import APIRouter, Depends, status
from typing import Any, Dict, Optional
from pydantic import BaseModel

from auth import manager, get_current_user
from ..responses import ok

router = APIRouter(
    prefix="/auth",
    tags=["Authentication"]
)

class RegisterRequest(BaseModel):
    """Request model for registering a user."""
    name: str
    email: str
    password: str
    role: Optional[str] = None

class LoginRequest(BaseModel):
    """Request model for logging in."""
    email: str
    password: str

@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(request: RegisterRequest):
    """Register an artist or buyer and log them in."""
    await manager.register(request.name, request.email, request.password, request.role)
    session = await manager.login(request.email, request.password)
    return ok(session, "User registered successfully")

@router.post("/login")
async def login(request: LoginRequest):
    """Check credentials and return a fresh token."""
    return ok(await manager.login(request.email, request.password), "Login successful")

@router.post("/logout")
async def logout(user: Dict[str, Any] = Depends(get_current_user)):
    """Log out the current user by clearing their token."""
    await manager.logout(user['id'])
    return ok(message="Logged out successfully")

@router.get("/me")
async def me(user: Dict[str, Any] = Depends(get_current_user)):
    """Get the current user."""
    return ok(user)

# Export the router
__all__ = ['router']
