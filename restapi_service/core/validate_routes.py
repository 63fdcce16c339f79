"""Route Validation — structural checks on the caller's route table.

Invariants:
    - Routes collection must be a list or tuple; each route too
    - Position 0 is one of the five HTTPMethod names (exact, uppercase)
    - Position 1 is a str, position 2 is callable
    - Position 3 (private flag) is only checked when present and not None
    - Every RouteValidationError carries the index of the offending route
    - URI syntax, reachability and collisions are never inspected

Design Decisions:
    - validate_route() usable alone: ServiceBuilder validates incrementally as
      routes are added, with the index they will occupy
    - Short tuples read missing positions as None, so ("GET",) fails the URI
      check instead of raising IndexError
"""

from typing import Any, Sequence

from restapi_service.core.domain_types import HTTPMethod
from restapi_service.core.errors import RouteValidationError, ServiceErrorCode

ALLOWED_METHODS = tuple(m.value for m in HTTPMethod)


def _is_sequence(x: Any) -> bool:
    return isinstance(x, (list, tuple))


def _at(route: Sequence[Any], position: int) -> Any:
    return route[position] if len(route) > position else None


class RoutesValidator:
    """Static checks for the collection and for each route field."""

    @staticmethod
    def check_collection_type(r: Any) -> None:
        if not _is_sequence(r):
            raise RouteValidationError(
                "First argument must be an array",
                ServiceErrorCode.INVALID_ROUTES_COLLECTION,
            )

    @staticmethod
    def check_route_type(x: Any, i: int | None = None) -> None:
        # each route must be a list/tuple
        if not _is_sequence(x):
            raise RouteValidationError(
                f"Route in index {i} must be an array",
                ServiceErrorCode.INVALID_ROUTE_TYPE, i,
            )

    @staticmethod
    def check_method(x: Any, i: int | None = None) -> None:
        # HTTPMethod members are str, so an enum member passes too
        if not isinstance(x, str) or x not in ALLOWED_METHODS:
            raise RouteValidationError(
                f"Invalid http method set for route with index {i}. "
                f"Allowed methods are : {','.join(ALLOWED_METHODS)}",
                ServiceErrorCode.INVALID_ROUTE_METHOD, i,
            )

    @staticmethod
    def check_uri(x: Any, i: int | None = None) -> None:
        if not isinstance(x, str):
            raise RouteValidationError(
                f"Invalid URI set for route with index {i}. Expecting a string",
                ServiceErrorCode.INVALID_ROUTE_URI, i,
            )

    @staticmethod
    def check_controller(x: Any, i: int | None = None) -> None:
        if not callable(x):
            raise RouteValidationError(
                f"Invalid Controller set for route with index {i}. "
                f"Expecting a function",
                ServiceErrorCode.INVALID_ROUTE_CONTROLLER, i,
            )

    @staticmethod
    def check_private_flag(x: Any, i: int | None = None) -> None:
        if not isinstance(x, bool):
            raise RouteValidationError(
                f"Invalid Private Flag used in route with index {i}. "
                f"Expecting a boolean",
                ServiceErrorCode.INVALID_ROUTE_PRIVATE_FLAG, i,
            )


def validate_route(route: Any, i: int | None = None) -> None:
    """Validate one route tuple. i is only used in error messages."""
    RoutesValidator.check_route_type(route, i)
    RoutesValidator.check_method(_at(route, 0), i)
    RoutesValidator.check_uri(_at(route, 1), i)
    RoutesValidator.check_controller(_at(route, 2), i)
    private = _at(route, 3)
    if private is not None:
        RoutesValidator.check_private_flag(private, i)


def validate_routes(routes: Any) -> None:
    """Validate the full route table. First bad route wins."""
    RoutesValidator.check_collection_type(routes)
    for i, route in enumerate(routes):
        validate_route(route, i)
