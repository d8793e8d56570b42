"""
Error taxonomy shared by providers, the resolver and the web layer.

Every error carries the HTTP status it maps to so request handlers can turn it
into a failure envelope without case analysis.
"""
from __future__ import annotations

from typing import Optional


class ScrapeError(Exception):
    status_code = 500
    error = "Internal server error"

    def __init__(self, message: str = "", error: Optional[str] = None):
        super().__init__(message or error or self.error)
        self.message = message
        if error:
            self.error = error


class AuthError(ScrapeError):
    status_code = 401
    error = "Invalid API key"


class ValidationError(ScrapeError):
    status_code = 400
    error = "Invalid request"


class FetchError(ScrapeError):
    status_code = 500
    error = "Upstream fetch failed"

    def __init__(self, message: str = "", upstream_status: Optional[int] = None, url: str = ""):
        super().__init__(message)
        self.upstream_status = upstream_status
        self.url = url


class ExtractionEmptyError(ScrapeError):
    status_code = 404
    error = "No content found"


class ResolutionError(ScrapeError):
    status_code = 404
    error = "Link resolution failed"


class ConfigError(ScrapeError):
    status_code = 500
    error = "Provider configuration unavailable"


class NotFoundError(ScrapeError):
    status_code = 404
    error = "Not found"
