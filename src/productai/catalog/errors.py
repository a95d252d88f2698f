from __future__ import annotations

from typing import Any, Dict, Optional


class CatalogError(Exception):
    """Base error carrying a stable message ``code`` and an HTTP status.

    ``code`` is a key into ``productai.i18n.MESSAGES`` so the HTTP layer can
    localize the message for the caller; ``params`` fill its placeholders.
    """

    status_code = 500
    default_code = "internal_error"

    def __init__(self, message: str, *, code: Optional[str] = None, params: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.params = params or {}


class NotFoundError(CatalogError):
    status_code = 404
    default_code = "not_found"


class ValidationError(CatalogError):
    status_code = 400
    default_code = "invalid_input"


class UpstreamError(CatalogError):
    """The AI service failed, timed out or answered with something unusable."""

    status_code = 500
    default_code = "upstream_unavailable"


class ConfigurationError(UpstreamError):
    """A required credential or setting is missing; detected at call time."""

    default_code = "missing_api_key"
