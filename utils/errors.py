"""
Error kinds shared by the stores, the services and the HTTP layer.

Every ``AccountError`` carries the status code and the public message the
HTTP layer renders; the message never includes internal detail.
"""

from __future__ import annotations


class AccountError(Exception):
    status_code = 500
    public_message = "server error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.public_message)
        self.message = message or self.public_message


class InvalidInput(AccountError):
    status_code = 400
    public_message = "invalid input"


class DuplicateEmail(AccountError):
    status_code = 400
    public_message = "email already in use"


class InvalidCredentials(AccountError):
    """Unknown email and wrong password both map here, with one message."""

    status_code = 400
    public_message = "Incorrect email or password."

    def __init__(self):
        super().__init__(self.public_message)


class Unauthorized(AccountError):
    status_code = 401
    public_message = "Unauthorized"

    def __init__(self, reason: str | None = None):
        # ``reason`` is kept for logs; the rendered message is always generic.
        super().__init__(self.public_message)
        self.reason = reason or "unauthorized"


class InvalidToken(Unauthorized):
    pass


class ExpiredToken(Unauthorized):
    pass


class NotFound(AccountError):
    status_code = 404
    public_message = "User not found"


class StoreUnavailable(Exception):
    """The durable store cannot be reached; routed to the fallback store."""
