"""
Pydantic request / response schemas for the JSON API.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class UpdateUserRequest(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class UserOut(BaseModel):
    id: str
    username: str
    email: str


class LoginResponse(BaseModel):
    token: str
    user: UserOut


class MeResponse(BaseModel):
    user: UserOut


class ErrorResponse(BaseModel):
    error: str
