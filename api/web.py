"""
Server-rendered HTML views.

Form posts signal their outcome with redirects: success goes to the user's
page, failure back to the form with an ``?error=`` code.
"""

from __future__ import annotations

import logging
import pathlib

from fastapi import APIRouter, Depends, Form, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from api.dependencies import get_credential_service, get_directory, normalize_id
from auth.service import CredentialService
from database.router import StoreRouter
from utils.errors import DuplicateEmail, InvalidCredentials, InvalidInput, NotFound

logger = logging.getLogger(__name__)

router = APIRouter(tags=["web"])
templates = Jinja2Templates(directory=str(pathlib.Path(__file__).resolve().parent / "templates"))

ERROR_MESSAGES = {
    "missing": "Please fill in every field.",
    "exists": "email already in use",
    "bad": "Incorrect email or password.",
    "server": "Something went wrong, please try again.",
}


def _redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url, status_code=status.HTTP_303_SEE_OTHER)


def _render(request: Request, name: str, status_code: int = 200, **ctx) -> HTMLResponse:
    return templates.TemplateResponse(request, name, ctx, status_code=status_code)


def _not_found(request: Request) -> HTMLResponse:
    return _render(request, "not_found.html", status_code=status.HTTP_404_NOT_FOUND)


@router.get("/", response_class=HTMLResponse)
async def index(request: Request):
    return _render(request, "index.html")


@router.get("/register", response_class=HTMLResponse)
async def register_form(request: Request, error: str = ""):
    return _render(request, "register.html", error=ERROR_MESSAGES.get(error))


@router.get("/login", response_class=HTMLResponse)
async def login_form(request: Request, error: str = ""):
    return _render(request, "login.html", error=ERROR_MESSAGES.get(error))


@router.get("/api/users/login", response_class=HTMLResponse)
async def api_login_page(request: Request):
    """Usage notes and a form that posts to the JSON login endpoint."""
    return _render(request, "api_login.html")


@router.post("/users/register")
async def register_submit(
    username: str = Form(""),
    email: str = Form(""),
    password: str = Form(""),
    credentials: CredentialService = Depends(get_credential_service),
):
    try:
        record = await credentials.register(username, email, password)
    except InvalidInput:
        return _redirect("/register?error=missing")
    except DuplicateEmail:
        return _redirect("/register?error=exists")
    except Exception:
        logger.exception("Register (form) error")
        return _redirect("/register?error=server")
    return _redirect(f"/users/{record.id}")


@router.post("/users/login")
async def login_submit(
    email: str = Form(""),
    password: str = Form(""),
    credentials: CredentialService = Depends(get_credential_service),
):
    if not email or not password:
        return _redirect("/login?error=missing")
    try:
        result = await credentials.login(email, password)
    except InvalidCredentials:
        return _redirect("/login?error=bad")
    except Exception:
        logger.exception("Login (form) error")
        return _redirect("/login?error=server")
    return _redirect(f"/users/{result.record.id}")


@router.get("/users", response_class=HTMLResponse)
async def users_page(
    request: Request,
    credentials: CredentialService = Depends(get_credential_service),
    directory: StoreRouter = Depends(get_directory),
):
    users = await credentials.list_users()
    return _render(
        request,
        "users.html",
        users=[u.public() for u in users],
        db_offline=directory.mode == "fallback",
    )


@router.get("/users/{user_id}", response_class=HTMLResponse)
async def show_page(
    request: Request,
    user_id: str,
    credentials: CredentialService = Depends(get_credential_service),
):
    try:
        record = await credentials.get_user(normalize_id(user_id))
    except NotFound:
        return _not_found(request)
    return _render(request, "show.html", user=record.public())


@router.get("/users/{user_id}/edit", response_class=HTMLResponse)
async def edit_page(
    request: Request,
    user_id: str,
    error: str = "",
    credentials: CredentialService = Depends(get_credential_service),
):
    try:
        record = await credentials.get_user(normalize_id(user_id))
    except NotFound:
        return _not_found(request)
    return _render(request, "edit.html", user=record.public(), error=ERROR_MESSAGES.get(error))


@router.post("/users/{user_id}")
async def update_submit(
    request: Request,
    user_id: str,
    username: str = Form(""),
    email: str = Form(""),
    password: str = Form(""),
    credentials: CredentialService = Depends(get_credential_service),
):
    user_id = normalize_id(user_id)
    try:
        record = await credentials.update_profile(
            user_id, username=username, email=email, password=password
        )
    except NotFound:
        return _not_found(request)
    except DuplicateEmail:
        return _redirect(f"/users/{user_id}/edit?error=exists")
    return _redirect(f"/users/{record.id}")


@router.post("/users/{user_id}/delete")
async def delete_submit(
    user_id: str,
    credentials: CredentialService = Depends(get_credential_service),
):
    try:
        await credentials.delete_user(normalize_id(user_id))
    except NotFound:
        logger.info("Delete of unknown user %s ignored", user_id)
    return _redirect("/users")
