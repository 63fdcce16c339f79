"""Request Router — compiles validated route tuples into FastAPI routes.

Invariants:
    - Called exactly once per service, after validation and after the
      transport is listening
    - Registration order: OPTIONS acknowledgment, declared routes in input
      order, then the 404 catch-all
    - Every declared route also answers HEAD (handled by its interceptor)
    - ":name" placeholders become Starlette "{name}" path params
    - Registration errors from FastAPI/Starlette propagate to the caller

Design Decisions:
    - Pattern matching left entirely to Starlette: a path matched by URI but not
      by method falls through to the catch-all, so it answers 404, not 405
"""

import re

from starlette.requests import Request
from starlette.responses import Response

from restapi_service.api.request_interceptor import create_request_interceptor
from restapi_service.core.domain_types import (
    ALL_HTTP_METHODS,
    RouteDescriptor,
    RouteTuple,
    ServiceHandle,
)

WILDCARD_PATH = "/{path:path}"
PLACEHOLDER = re.compile(r":([A-Za-z_][A-Za-z0-9_]*)")


def to_path_template(uri: str) -> str:
    """Rewrite ":name" placeholders: /items/:id -> /items/{id}."""
    return PLACEHOLDER.sub(r"{\1}", uri)


def initialize_request_router(
    service: ServiceHandle, routes: list[RouteTuple],
) -> None:
    """Register one interceptor per route plus the OPTIONS and 404 handlers."""
    app = service.app
    service.log(
        f"RESTApiService : Initializing requests router (routesCount={len(routes)})",
    )

    async def acknowledge_options(request: Request) -> Response:
        return Response(status_code=200)

    app.add_api_route(
        WILDCARD_PATH, acknowledge_options,
        methods=["OPTIONS"], include_in_schema=False,
    )

    for index, route_tuple in enumerate(routes):
        route = RouteDescriptor.from_route(route_tuple)
        service.log(
            f" - Registering route... {route.method.value} {route.uri}"
            f"{' (private)' if route.private else ''}",
            method=route.method.value, path=route.uri, route_index=index,
        )
        interceptor = create_request_interceptor(
            route, service.authorizer, service,
        )
        app.add_api_route(
            to_path_template(route.uri),
            interceptor,
            methods=[route.method.value, "HEAD"],
            name=f"{route.method.value} {route.uri}",
            include_in_schema=False,
        )

    async def not_found(request: Request) -> Response:
        request_id = getattr(request.state, "request_id", None) or "-"
        service.log(
            f"{request_id} RESPONSE : 404",
            request_id=request_id, method=request.method,
            path=request.url.path, status_code=404,
        )
        return Response(status_code=404)

    app.add_api_route(
        WILDCARD_PATH, not_found,
        methods=list(ALL_HTTP_METHODS), include_in_schema=False,
    )
