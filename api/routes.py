"""
User collection API — list, show, update, delete.

Route prefix: /api
"""

from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Response, status

from api.dependencies import get_credential_service, get_directory, normalize_id
from auth.service import CredentialService
from database.router import StoreRouter
from utils.schemas import UpdateUserRequest, UserOut

router = APIRouter(tags=["users"])


@router.get("/users", response_model=List[UserOut])
async def list_users(
    credentials: CredentialService = Depends(get_credential_service),
) -> List[Dict[str, Any]]:
    return [u.public() for u in await credentials.list_users()]


@router.get("/users/{user_id}", response_model=UserOut)
async def show_user(
    user_id: str,
    credentials: CredentialService = Depends(get_credential_service),
) -> Dict[str, Any]:
    record = await credentials.get_user(normalize_id(user_id))
    return record.public()


@router.put("/users/{user_id}", response_model=UserOut)
async def update_user(
    user_id: str,
    req: UpdateUserRequest,
    credentials: CredentialService = Depends(get_credential_service),
) -> Dict[str, Any]:
    """Partial update; a new password is re-hashed by the service."""
    record = await credentials.update_profile(
        normalize_id(user_id),
        username=req.username,
        email=req.email,
        password=req.password,
    )
    return record.public()


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: str,
    credentials: CredentialService = Depends(get_credential_service),
) -> Response:
    await credentials.delete_user(normalize_id(user_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


health_router = APIRouter(tags=["health"])


@health_router.get("/healthz")
async def healthz(directory: StoreRouter = Depends(get_directory)) -> Dict[str, str]:
    return {"status": "ok", "store": directory.mode}
