"""
chapa/errors.py — Error taxonomy shared by every chapa component.

Each error carries an HTTP status so the API layer can convert it with a
single exception handler. Component-internal failures (cache, avatar, fonts)
are absorbed where they happen; only failures that make a request impossible
to serve propagate as one of these.
"""

from typing import Any, Dict, Optional


class ChapaError(Exception):
    """Base exception for all chapa errors."""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_payload(self) -> Dict[str, Any]:
        """JSON body used by the API error handler."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(ChapaError):
    """Malformed or missing input: bad Stats90d, bad handle, bad hash format."""

    status_code = 422


class InvalidHandle(ValidationError):
    """The handle is not a syntactically valid GitHub login."""

    status_code = 400


class HandleNotFound(ChapaError):
    """GitHub has no user with this handle."""

    status_code = 404


class UpstreamUnavailable(ChapaError):
    """GitHub (or another required upstream) could not be reached."""

    status_code = 503


class RenderError(ChapaError):
    """A render resource (font, avatar) could not be acquired and has no fallback."""

    status_code = 500


class RateLimited(ChapaError):
    """Caller exceeded the per-route request cap for the current window."""

    status_code = 429

    def __init__(self, message: str, retry_after: int, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.retry_after = retry_after


class InvalidHash(ValidationError):
    """A verification code is not 8 or 16 lowercase hex characters."""

    status_code = 400


class Unauthorized(ChapaError):
    """Missing or rejected credentials."""

    status_code = 401


class Forbidden(ChapaError):
    """Valid credentials that do not own the requested handle."""

    status_code = 403
