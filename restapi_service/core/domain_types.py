"""Domain Types — route, payload, and contract types shared by every layer.

Invariants:
    - HTTPMethod holds exactly the five routable methods (uppercase, case-sensitive)
    - RouteDescriptor is immutable once built; private defaults to False
    - RequestPayload fields are never None — missing pieces are empty dicts
    - MISSING_TOKEN ("undefined") is what authorizers receive when the
      auth-token header is absent — never "" and never None

Design Decisions:
    - str Enums: compare equal to the raw strings callers put in route tuples
    - Frozen dataclasses over dicts: attribute access in controllers, equality in tests
    - ServiceHandle as a Protocol: router/interceptor depend on the facade's
      shape, not on the facade class (no import cycle with service.py)
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Protocol, Sequence, Union


# ─── Constants ───────────────────────────────────────────────────

AUTH_REQUIRED = True
"""Readable private flag: ("GET", "/me", ctrl, AUTH_REQUIRED)."""

AUTH_TOKEN_HEADER = "auth-token"
MISSING_TOKEN = "undefined"
UNAUTHORIZED_MESSAGE = "Token invalid or expired"


# ─── Enums ───────────────────────────────────────────────────────

class HTTPMethod(str, Enum):
    """Methods a route may be declared with."""
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


class TransportProtocol(str, Enum):
    """Transport protocol selector."""
    HTTP = "http"
    HTTPS = "https"


# Every method the catch-all handlers answer to
ALL_HTTP_METHODS = (
    "GET", "HEAD", "POST", "PUT", "PATCH", "DELETE",
    "OPTIONS", "TRACE", "CONNECT",
)


# ─── Value Types ─────────────────────────────────────────────────

@dataclass(frozen=True)
class RequestPayload:
    """Per-request data handed to a controller."""
    payload: Any = field(default_factory=dict)
    params: dict[str, str] = field(default_factory=dict)
    query: dict[str, Any] = field(default_factory=dict)

    @property
    def body(self) -> Any:
        return self.payload


@dataclass(frozen=True)
class HTTPSCredentials:
    """TLS material. Each field is PEM text or a path to a PEM file."""
    key: str
    cert: str


# ─── Callable Contracts ──────────────────────────────────────────

Authorizer = Callable[[str], Union[bool, Awaitable[bool]]]
Responder = Callable[..., None]
Controller = Callable[
    [Responder, RequestPayload, str], Union[None, Awaitable[None]],
]
RouteTuple = Sequence[Any]


@dataclass(frozen=True)
class RouteDescriptor:
    """Normalized form of a (method, uri, controller, private?) route tuple."""
    method: HTTPMethod
    uri: str
    controller: Controller
    private: bool = False

    @classmethod
    def from_route(cls, route: RouteTuple) -> "RouteDescriptor":
        """Build from an already-validated route tuple."""
        private = route[3] if len(route) > 3 else None
        return cls(
            method=HTTPMethod(route[0]),
            uri=route[1],
            controller=route[2],
            private=bool(private) if private is not None else False,
        )


class ServiceHandle(Protocol):
    """What the router and the interceptors need from the running service."""

    app: Any
    authorizer: Authorizer
    port: int
    verbose: bool
    log_errors: bool

    def log(self, message: str, **extra: Any) -> None: ...
