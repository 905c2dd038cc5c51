from __future__ import annotations


class AppError(Exception):
    """Base application error; ``detail`` is returned to the client as is."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class UnauthorizedError(AppError):
    """Missing, invalid or anonymous identity token (401)."""


class NotFoundError(AppError):
    """Chat does not exist (404)."""


class ForbiddenError(AppError):
    """Caller is not a participant of the chat (403)."""


class ValidationError(AppError):
    """Request is well-formed but not acceptable, e.g. a chat with oneself (422)."""
