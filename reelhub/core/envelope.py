"""
Response envelope helpers shared by every endpoint.
"""
from typing import Any, Dict, Optional

from .errors import ScrapeError


def _remaining(quota) -> Optional[int]:
    if quota is None:
        return None
    if isinstance(quota, int):
        return max(0, quota)
    remaining = getattr(quota, "remaining_requests", None)
    return None if remaining is None else max(0, int(remaining))


def success_body(data: Any, quota=None, **fields) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": True, "data": data}
    body.update(fields)
    remaining = _remaining(quota)
    if remaining is not None:
        body["remainingRequests"] = remaining
    return body


def failure_body(error: str, message: Optional[str] = None, **fields) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": False, "error": error}
    if message:
        body["message"] = message
    body.update(fields)
    return body


def status_for(exc: BaseException) -> int:
    if isinstance(exc, ScrapeError):
        return int(exc.status_code)
    return 500


def body_for(exc: BaseException) -> Dict[str, Any]:
    if isinstance(exc, ScrapeError):
        return failure_body(exc.error, exc.message or None)
    return failure_body("Internal server error", str(exc) or None)
