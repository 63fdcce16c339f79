"""Request Interceptor — per-route lifecycle between the router and the controller.

Invariants:
    - States run strictly in order: METHOD_CHECK → AUTH_GATE → DISPATCH →
      (ERROR_CONTAINMENT | FALLTHROUGH)
    - HEAD on any declared route → 200 with empty body (private or not)
    - AUTH_GATE only runs for private routes; a falsy authorizer result → 401
      {"error": "Token invalid or expired"} and the controller is never called
    - Absent auth-token header reaches authorizer and controller as "undefined"
    - Controller/authorizer exceptions never reach the client: 500, empty body
    - At most one response per request: the responder is single-use, and a
      response already emitted stands even if the controller raises afterwards
    - Controller returned without responding → 200 {}
    - Exception detail goes to the logger only when service.log_errors is set

Design Decisions:
    - Responder records the response instead of writing to the socket: the
      handler returns it to Starlette, which owns the transport
    - Authorizer exceptions contained like controller exceptions (500), instead of
      escaping to the server's default error page
    - Sync and async controllers/authorizers both accepted (awaited if awaitable),
      sync ones run inline on the event loop
"""

import inspect
import logging
from typing import Any, Awaitable, Callable

from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from restapi_service.api.request_payload import MalformedBodyError, build_payload
from restapi_service.core.domain_types import (
    AUTH_TOKEN_HEADER,
    MISSING_TOKEN,
    UNAUTHORIZED_MESSAGE,
    Authorizer,
    RouteDescriptor,
    ServiceHandle,
)
from restapi_service.core.errors import ResponseAlreadySentError

logger = logging.getLogger(__name__)

RequestInterceptor = Callable[[Request], Awaitable[Response]]


async def invoke(handler: Callable[..., Any], *args: Any) -> Any:
    """Call a handler and await the result if it's awaitable."""
    result = handler(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


def extract_token(request: Request) -> str:
    """auth-token header value, or the "undefined" sentinel when absent."""
    return request.headers.get(AUTH_TOKEN_HEADER, MISSING_TOKEN)


class RequestResponder:
    """Single-use callback a controller uses to emit status + JSON body."""

    __slots__ = ("response",)

    def __init__(self) -> None:
        self.response: Response | None = None

    @property
    def sent(self) -> bool:
        return self.response is not None

    def __call__(self, status_code: int, data: Any = None) -> None:
        if self.response is not None:
            raise ResponseAlreadySentError(
                f"Response already sent ({self.response.status_code})",
            )
        self.response = JSONResponse(
            content={} if data is None else data, status_code=status_code,
        )


def empty_response(status_code: int) -> Response:
    return Response(status_code=status_code)


def create_request_interceptor(
    route: RouteDescriptor,
    authorizer: Authorizer,
    service: ServiceHandle,
) -> RequestInterceptor:
    """Build the request handler registered for one route."""

    def finish(request: Request, response: Response) -> Response:
        service.log(
            f"{_request_id(request)} RESPONSE : {response.status_code}",
            request_id=_request_id(request),
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
        )
        return response

    def report(request: Request, stage: str, exc: BaseException) -> None:
        if not service.log_errors:
            return
        logger.error(
            f"{stage} ERROR {route.method.value} {route.uri}: {exc!r}",
            exc_info=exc,
            extra={
                "request_id": _request_id(request),
                "method": request.method,
                "path": request.url.path,
            },
        )

    async def request_interceptor(request: Request) -> Response:
        # METHOD_CHECK
        if request.method == "HEAD":
            return finish(request, empty_response(200))

        token = extract_token(request)

        # AUTH_GATE
        if route.private:
            try:
                authorized = await invoke(authorizer, token)
            except Exception as e:
                report(request, "AUTHORIZER", e)
                return finish(request, empty_response(500))
            if not authorized:
                return finish(request, JSONResponse(
                    content={"error": UNAUTHORIZED_MESSAGE}, status_code=401,
                ))

        # DISPATCH
        try:
            payload = await build_payload(request)
        except MalformedBodyError as e:
            report(request, "PAYLOAD", e)
            return finish(request, empty_response(400))

        responder = RequestResponder()
        try:
            await invoke(route.controller, responder, payload, token)
        except Exception as e:
            # ERROR_CONTAINMENT
            report(request, "CONTROLLER", e)
            if not responder.sent:
                return finish(request, empty_response(500))

        # FALLTHROUGH
        if not responder.sent:
            responder(200)
        return finish(request, responder.response)

    return request_interceptor


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or "-"
