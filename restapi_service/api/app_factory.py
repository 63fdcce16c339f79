"""App Factory — the FastAPI application every service is mounted on.

Invariants:
    - No docs/openapi routes: the route table is exactly what the caller declared
    - Middleware installed before the transport starts (Starlette freezes the
      stack on the first ASGI call); routes are added later by the router
    - Every request gets a correlation id in request.state.request_id, echoed
      back in the X-Request-Id response header
    - CORS configured from options.cors over permissive defaults
    - Preflights answer like any OPTIONS request: 200, empty body; a
      disallowed origin or method only loses its Access-Control-Allow-* headers

Design Decisions:
    - Incoming X-Request-Id reused when present: ids stay stable across proxies
    - Unknown cors keys dropped with a warning instead of failing at first request
"""

import logging
from typing import Any, Mapping
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.datastructures import Headers
from starlette.responses import Response

from restapi_service.core.domain_types import ServiceHandle
from restapi_service.core.options import ServiceOptions

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-Id"

CORS_DEFAULTS: dict[str, Any] = {
    "allow_origins": ["*"],
    "allow_methods": ["*"],
    "allow_headers": ["*"],
}
CORS_KEYS = frozenset({
    "allow_origins", "allow_methods", "allow_headers", "allow_credentials",
    "allow_origin_regex", "expose_headers", "max_age",
})


class PreflightCORSMiddleware(CORSMiddleware):
    """CORSMiddleware whose preflight replies are always 200 with no body."""

    def preflight_response(self, request_headers: Headers) -> Response:
        checked = super().preflight_response(request_headers)
        headers = {
            k: v for k, v in checked.headers.items()
            if k not in ("content-length", "content-type")
        }
        return Response(status_code=200, headers=headers)


def build_cors_options(cors: Mapping[str, Any]) -> dict[str, Any]:
    """Merge caller CORS settings over the defaults, keeping known keys only."""
    unknown = sorted(k for k in cors if k not in CORS_KEYS)
    if unknown:
        logger.warning(f"Ignoring unknown cors options: {unknown}")
    return {**CORS_DEFAULTS, **{k: v for k, v in cors.items() if k in CORS_KEYS}}


def create_app(options: ServiceOptions, service: ServiceHandle) -> FastAPI:
    """FastAPI app with CORS and request-id middleware, no routes yet."""
    app = FastAPI(
        title="RESTApiService", docs_url=None, redoc_url=None, openapi_url=None,
    )

    @app.middleware("http")
    async def assign_request_id(request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex
        request.state.request_id = request_id
        service.log(
            f"{request_id} REQUEST  : {request.method} {request.url.path}",
            request_id=request_id, method=request.method, path=request.url.path,
        )
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    # Added last so it wraps the request-id middleware (outermost)
    app.add_middleware(PreflightCORSMiddleware, **build_cors_options(options.cors))
    return app
