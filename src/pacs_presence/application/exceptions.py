from __future__ import annotations


class AppError(Exception):
    """Base application error."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class InvalidCredentialError(AppError):
    """Token is malformed, lacks required claims or has expired."""


class NotAuthenticatedError(AppError):
    pass


class ValidationError(AppError):
    pass


class ProtocolError(AppError):
    """Inbound payload does not match the schema of its destination."""


class UpstreamError(AppError):
    """REST collaborator failed or answered with a non-2xx status."""
