"""
Auth API routes — register, login, current user.

Route prefix: /api

Register and login read JSON or form-encoded bodies; missing or ``null``
fields reach the service as blanks so every failure keeps the
``{"error": ...}`` shape.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, Request, status

from api.dependencies import get_credential_service, get_token_service, read_payload, wants_html
from api.web import templates
from auth.dependencies import get_current_user_id
from auth.jwt import TokenService
from auth.service import CredentialService
from utils.schemas import ErrorResponse, LoginResponse, MeResponse, UserOut


router = APIRouter(tags=["auth"])


@router.post(
    "/users/register",
    response_model=UserOut,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
)
async def register(
    request: Request,
    credentials: CredentialService = Depends(get_credential_service),
) -> Dict[str, Any]:
    """Register a new user from ``{username, email, password}``."""
    req = await read_payload(request, "username", "email", "password")
    record = await credentials.register(req["username"], req["email"], req["password"])
    return record.public()


@router.post("/users/login", response_model=LoginResponse, responses={400: {"model": ErrorResponse}})
async def login(
    request: Request,
    credentials: CredentialService = Depends(get_credential_service),
    tokens: TokenService = Depends(get_token_service),
):
    """Login with ``{email, password}``; browsers get the token on a rendered page."""
    req = await read_payload(request, "email", "password")
    result = await credentials.login(req["email"], req["password"])
    token = tokens.issue(result.record.id, result.record.username)
    if wants_html(request):
        return templates.TemplateResponse(
            request,
            "api_login_result.html",
            {"token": token, "user": result.record.public()},
        )
    return {"token": token, "user": result.record.public()}


@router.get("/me", response_model=MeResponse, responses={401: {"model": ErrorResponse}})
async def me(
    user_id: str = Depends(get_current_user_id),
    credentials: CredentialService = Depends(get_credential_service),
) -> Dict[str, Any]:
    """The authenticated caller's own record."""
    record = await credentials.get_user(user_id)
    return {"user": record.public()}
