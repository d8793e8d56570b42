"""FastAPI app exposing ReelHub providers to API clients."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional
import logging
import os

from fastapi import APIRouter, Depends, FastAPI, Header, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..core.auth import AUTH_MESSAGE
from ..core.envelope import body_for, failure_body, status_for, success_body
from ..core.errors import AuthError, NotFoundError, ScrapeError, ValidationError
from .runtime import ReelHubRuntime, build_runtime

logger = logging.getLogger(__name__)

UNAUTHORIZED_HEADERS = {"WWW-Authenticate": 'Bearer realm="API Key Required"'}


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _page_number(raw: Optional[str]) -> int:
    value = str(raw or "1").strip()
    if not value.isdigit() or int(value) < 1:
        raise ValidationError(f"page must be a positive integer, got {value!r}", error="Invalid page")
    return int(value)


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        where = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{where}: {err.get('msg', 'invalid')}" if where else str(err.get("msg", "invalid")))
    return "; ".join(parts) or "Request could not be validated"


class ApiKeyCreateRequest(BaseModel):
    user_id: str
    key_name: str
    requests_limit: Optional[int] = None


class ApiKeyUpdateRequest(BaseModel):
    is_active: Optional[bool] = None
    requests_limit: Optional[int] = None
    reset_usage: bool = False


def create_app(runtime: Optional[ReelHubRuntime] = None) -> FastAPI:
    runtime = runtime or build_runtime()

    def _unauthorized(error: str, message: str = AUTH_MESSAGE) -> JSONResponse:
        return JSONResponse(
            failure_body(error, message, code="UNAUTHORIZED"),
            status_code=401,
            headers=UNAUTHORIZED_HEADERS,
        )

    def require_api_key(request: Request):
        # Runs only for matched scraping routes, so unknown paths never spend quota.
        result = runtime.auth.validate(request.headers, request.query_params)
        if not result.is_valid:
            raise AuthError(AUTH_MESSAGE, error=result.error or "Invalid API key")
        request.state.api_key = result.api_key
        return result.api_key

    def _ok(request: Request, data: Any, **fields) -> Dict[str, Any]:
        return success_body(data, quota=getattr(request.state, "api_key", None), **fields)

    app = FastAPI(title="ReelHub API", version="1.0.0")
    api = APIRouter(prefix="/api", dependencies=[Depends(require_api_key)])

    @app.exception_handler(ScrapeError)
    async def scrape_error_handler(request: Request, exc: ScrapeError):
        status = status_for(exc)
        if status == 401:
            return _unauthorized(exc.error, exc.message or AUTH_MESSAGE)
        if status >= 500:
            logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(body_for(exc), status_code=status)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(failure_body("Invalid request", _validation_message(exc)), status_code=400)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        error = "Not found" if exc.status_code == 404 else str(exc.detail or "Request failed")
        message = str(exc.detail) if exc.detail and str(exc.detail) != error else None
        return JSONResponse(
            failure_body(error, message),
            status_code=exc.status_code,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(body_for(exc), status_code=500)

    @app.get("/health")
    def health() -> Dict:
        return {"ok": True, "time": _utc_now_iso()}

    @api.get("/providers")
    def providers(request: Request) -> Dict:
        return _ok(
            request,
            {
                "listing": runtime.providers.describe(),
                "details": [p.healthcheck() for p in runtime.details.values()],
                "hosts": runtime.fetcher.get_health_snapshot(),
            },
        )

    @api.get("/global-search")
    def global_search(request: Request, q: Optional[str] = Query(None)) -> Dict:
        payload = runtime.global_search.search(q or "")
        return _ok(request, payload)

    @api.get("/catalog/{provider}")
    def catalog(
        request: Request,
        provider: str,
        q: Optional[str] = Query(None),
        s: Optional[str] = Query(None),
        search: Optional[str] = Query(None),
        page: Optional[str] = Query(None),
    ) -> Dict:
        listing = runtime.providers.get(provider)
        page_number = _page_number(page)
        query = (q or s or search or "").strip()
        if query:
            results = listing.search(query, page_number)
        else:
            results = listing.latest(page_number)
        return _ok(
            request,
            [r.to_dict() for r in results],
            provider=listing.name,
            query=query or None,
            page=page_number,
            totalResults=len(results),
        )

    @api.get("/4khdhub/details")
    def fourkhdhub_details(request: Request, url: Optional[str] = Query(None)) -> Dict:
        return _ok(request, runtime.details["4khdhub"].details(url))

    @api.get("/hdhub4u/details")
    def hdhub4u_details(request: Request, url: Optional[str] = Query(None)) -> Dict:
        return _ok(request, runtime.details["hdhub4u"].details(url))

    @api.get("/kmmovies/details")
    def kmmovies_details(request: Request, url: Optional[str] = Query(None)) -> Dict:
        return _ok(request, runtime.details["kmmovies"].details(url))

    @api.get("/kmmovies/magic-links")
    def kmmovies_magic_links(request: Request, url: Optional[str] = Query(None)) -> Dict:
        return _ok(request, runtime.details["kmmovies"].magic_links(url))

    @api.get("/desiremovies/details")
    def desiremovies_details(request: Request, url: Optional[str] = Query(None)) -> Dict:
        return _ok(request, runtime.details["desiremovies"].details(url))

    @api.get("/moviesdrive/episode")
    def moviesdrive_episode(request: Request, url: Optional[str] = Query(None)) -> Dict:
        return _ok(request, runtime.details["moviesdrive"].episode(url))

    @api.get("/allmovieshub/download")
    def allmovieshub_download(request: Request, movie: Optional[str] = Query(None)) -> Dict:
        return _ok(request, runtime.details["allmovieshub"].download(movie))

    @api.get("/gyanigurus")
    def gyanigurus_links(request: Request, url: Optional[str] = Query(None)) -> Dict:
        return _ok(request, runtime.details["gyanigurus"].links(url))

    @api.get("/filmyfly/details")
    def filmyfly_details(request: Request, url: Optional[str] = Query(None)) -> Dict:
        return _ok(request, runtime.details["filmyfly"].details(url))

    @api.get("/filmyfly/extract")
    def filmyfly_extract(request: Request, url: Optional[str] = Query(None)) -> Dict:
        return _ok(request, runtime.details["filmyfly"].extract(url))

    @api.get("/zinkmovies/details")
    def zinkmovies_details(request: Request, url: Optional[str] = Query(None)) -> Dict:
        return _ok(request, runtime.details["zinkmovies"].details(url))

    @api.get("/zinkmovies/jio")
    def zinkmovies_jio(request: Request, url: Optional[str] = Query(None)) -> Dict:
        return _ok(request, runtime.details["zinkmovies"].jio(url))

    @api.get("/zinkmovies/mirror")
    def zinkmovies_mirror(request: Request, url: Optional[str] = Query(None)) -> Dict:
        return _ok(request, runtime.details["zinkmovies"].mirror(url))

    @api.get("/zinkmovies/resolve")
    def zinkmovies_resolve(request: Request, url: Optional[str] = Query(None)) -> Dict:
        return _ok(request, runtime.details["zinkmovies"].resolve(url).to_dict())

    @api.get("/hubcloud")
    def hubcloud(request: Request, url: Optional[str] = Query(None)) -> Dict:
        return _ok(request, runtime.details["hubcloud"].resolve(url).to_dict())

    @api.get("/showbox/details")
    def showbox_details(request: Request, url: Optional[str] = Query(None)) -> Dict:
        return _ok(request, runtime.details["showbox"].details(url))

    @api.get("/showbox/series")
    def showbox_series(
        request: Request,
        episode_id: Optional[str] = Query(None),
        id: Optional[str] = Query(None),
    ) -> Dict:
        return _ok(request, runtime.details["showbox"].series(episode_id or id))

    # ---- key management (admin token, no API key) ----------------------

    @app.get("/api/api-keys")
    def list_api_keys(user_id: Optional[str] = Query(None), x_admin_token: Optional[str] = Header(None)) -> Dict:
        runtime.auth.check_admin(x_admin_token)
        keys = runtime.store.list_api_keys(user_id)
        return success_body([k.to_dict() for k in keys])

    @app.post("/api/api-keys")
    def create_api_key(body: ApiKeyCreateRequest, x_admin_token: Optional[str] = Header(None)) -> Dict:
        runtime.auth.check_admin(x_admin_token)
        if not body.user_id.strip() or not body.key_name.strip():
            raise ValidationError("user_id and key_name are required", error="Invalid request")
        key = runtime.store.create_api_key(body.user_id.strip(), body.key_name.strip())
        if body.requests_limit is not None:
            runtime.store.set_user_limit(key.user_id, body.requests_limit)
            key = runtime.store.get_api_key(key.id) or key
        logger.info("Created API key %s for user %s", key.preview, key.user_id)
        return success_body(key.to_dict(reveal=True))

    @app.patch("/api/api-keys/{key_id}")
    def update_api_key(key_id: str, body: ApiKeyUpdateRequest, x_admin_token: Optional[str] = Header(None)) -> Dict:
        runtime.auth.check_admin(x_admin_token)
        key = runtime.store.get_api_key(key_id)
        if key is None:
            raise NotFoundError(f"No API key with id {key_id}", error="API key not found")
        if body.is_active is not None:
            runtime.store.set_api_key_active(key_id, body.is_active)
        if body.requests_limit is not None:
            runtime.store.set_user_limit(key.user_id, body.requests_limit)
        if body.reset_usage:
            runtime.store.reset_usage(key.user_id)
        return success_body((runtime.store.get_api_key(key_id) or key).to_dict())

    @app.delete("/api/api-keys/{key_id}")
    def delete_api_key(key_id: str, x_admin_token: Optional[str] = Header(None)) -> Dict:
        runtime.auth.check_admin(x_admin_token)
        if not runtime.store.delete_api_key(key_id):
            raise NotFoundError(f"No API key with id {key_id}", error="API key not found")
        return success_body({"id": key_id, "deleted": True})

    app.include_router(api)
    return app


def main() -> None:
    import uvicorn

    uvicorn.run(
        "reelhub.web.app:create_app",
        factory=True,
        host=os.environ.get("REELHUB_HOST", "0.0.0.0"),
        port=int(os.environ.get("REELHUB_PORT", "8000")),
        log_level="info",
    )


if __name__ == "__main__":
    main()
