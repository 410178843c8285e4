"""
FastAPI dependencies (shared across routes).
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import Request

from auth.jwt import TokenService
from auth.service import CredentialService
from database.router import StoreRouter


def get_credential_service(request: Request) -> CredentialService:
    return request.app.state.credentials


def get_token_service(request: Request) -> TokenService:
    return request.app.state.tokens


def get_directory(request: Request) -> StoreRouter:
    """The process-wide store router (used for mode reporting)."""
    return request.app.state.directory


def normalize_id(param: str) -> str:
    """Accept an optional ``id:`` prefix on path ids."""
    user_id = str(param or "").strip()
    if user_id.startswith("id:"):
        user_id = user_id[3:]
    return user_id


def _as_text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def is_form_request(request: Request) -> bool:
    content_type = request.headers.get("content-type", "")
    return content_type.startswith(("application/x-www-form-urlencoded", "multipart/form-data"))


def wants_html(request: Request) -> bool:
    """Browser form posts and HTML-only clients get a rendered page instead of JSON."""
    accept = request.headers.get("accept", "")
    return is_form_request(request) or ("text/html" in accept and "application/json" not in accept)


async def read_payload(request: Request, *fields: str) -> Dict[str, str]:
    """
    Read ``fields`` from a JSON or form-encoded body.

    Missing, ``null`` or non-string values come back as ``""`` so the
    service layer reports them with its own error message.
    """
    if is_form_request(request):
        body: Any = await request.form()
    else:
        try:
            body = await request.json()
        except ValueError:
            body = {}
    if not hasattr(body, "get"):
        body = {}
    return {name: _as_text(body.get(name)) for name in fields}
