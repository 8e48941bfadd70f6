"""Artist verification API endpoints."""

from fastapi import APIRouter, Depends, status
from typing import Any, Dict, List, Optional
from pydantic import BaseModel

from auth import authorize
from verification import VerificationManager
from ..responses import ok

router = APIRouter(
    prefix="/verification",
    tags=["Verification"]
)

class VerificationRequestBody(BaseModel):
    """Request model carrying the documents to verify."""
    id_document: Optional[str] = None
    license: Optional[str] = None
    other_documents: List[str] = []

@router.post("/request", status_code=status.HTTP_201_CREATED)
async def submit_request(
    request: VerificationRequestBody,
    user: Dict[str, Any] = Depends(authorize('ARTIST'))
):
    """Submit documents for verification."""
    result = await VerificationManager().submit_request(
        user['id'], request.id_document, request.license, request.other_documents
    )
    return ok(result, "Verification request submitted successfully")

@router.get("/status")
async def get_status(user: Dict[str, Any] = Depends(authorize('ARTIST'))):
    """Get the current artist's verification request."""
    return ok(await VerificationManager().get_status(user['id']))

__all__ = ['router']
