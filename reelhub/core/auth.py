"""
API key authentication and quota accounting for incoming requests.
"""
from dataclasses import dataclass
from typing import Mapping, Optional
import hmac
import logging

from .errors import AuthError
from .sqlite_store import ApiKeyRow, SqliteStore

logger = logging.getLogger(__name__)

AUTH_MESSAGE = "Please provide a valid API key to access this endpoint"


@dataclass
class ApiKeyValidationResult:
    is_valid: bool
    error: str = ""
    api_key: Optional[ApiKeyRow] = None


def extract_api_key(headers: Mapping[str, str], query_params: Mapping[str, str]) -> Optional[str]:
    """x-api-key header, then Authorization: Bearer, then ?api_key=."""
    value = (headers.get("x-api-key") or "").strip()
    if value:
        return value
    authorization = (headers.get("authorization") or "").strip()
    if authorization.lower().startswith("bearer "):
        value = authorization[7:].strip()
        if value:
            return value
    value = (query_params.get("api_key") or "").strip()
    return value or None


class ApiKeyAuth:
    def __init__(self, settings, store: SqliteStore):
        self.settings = settings
        self.store = store

    @property
    def enabled(self) -> bool:
        return bool(self.settings.get("auth_enabled", True))

    def validate(self, headers: Mapping[str, str], query_params: Mapping[str, str]) -> ApiKeyValidationResult:
        if not self.enabled:
            return ApiKeyValidationResult(is_valid=True)

        key_value = extract_api_key(headers, query_params)
        if not key_value:
            return ApiKeyValidationResult(is_valid=False, error="API key is required")

        row = self.store.validate_and_increment(key_value)
        if row is None:
            known = self.store.find_api_key(key_value)
            if known is None:
                error = "Invalid API key"
            elif not known.is_active:
                error = "API key is inactive"
            else:
                error = "Request limit exceeded"
            logger.info("Rejected API key %s: %s", key_value[:8] + "...", error)
            return ApiKeyValidationResult(is_valid=False, error=error)

        logger.debug("API key %s used (%d/%d)", row.preview, row.requests_used, row.requests_limit)
        return ApiKeyValidationResult(is_valid=True, api_key=row)

    def require(self, headers: Mapping[str, str], query_params: Mapping[str, str]) -> Optional[ApiKeyRow]:
        result = self.validate(headers, query_params)
        if not result.is_valid:
            raise AuthError(AUTH_MESSAGE, error=result.error)
        return result.api_key

    def check_admin(self, token: Optional[str]):
        expected = str(self.settings.get("admin_token", "") or "")
        if not expected or not token or not hmac.compare_digest(expected, token):
            raise AuthError("Admin token required for key management", error="Invalid admin token")
