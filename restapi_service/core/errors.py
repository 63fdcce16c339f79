"""Error Model — typed, coded exceptions for construction-time input failures.

Invariants:
    - Every ServiceError carries a message (str) and a code (ServiceErrorCode)
    - Codes are a closed IntEnum with stable numeric values (public contract)
    - Raised only while validating routes/options, never during request dispatch
    - Category derived from the code: 90-99 options, 100-105 routes

Design Decisions:
    - IntEnum over module constants: codes compare equal to their numbers for
      callers that stored the raw values (ADR: stable contract surface)
    - Single ServiceError base with thin subclasses: callers catch one type,
      tests can still tell options failures from route failures
    - ServiceStartupError is NOT a ServiceError: transport failures have no code
"""

from enum import Enum, IntEnum


class ServiceErrorCode(IntEnum):
    """Machine-readable validation failure codes."""
    # Options validation
    INVALID_OPTIONS_TYPE = 90
    INVALID_OPTIONS_PORT = 91
    INVALID_OPTIONS_VERBOSE = 92
    INVALID_OPTIONS_LOG_ERRORS = 93
    INVALID_OPTIONS_CORS = 94
    INVALID_OPTIONS_AUTH = 95
    INVALID_OPTIONS_PROTOCOL = 96
    INVALID_OPTIONS_CREDENTIALS = 97
    INVALID_OPTIONS_CREDENTIALS_CERTIFICATE = 98
    INVALID_OPTIONS_CREDENTIALS_KEY = 99
    # Routes validation
    INVALID_ROUTES_COLLECTION = 100
    INVALID_ROUTE_TYPE = 101
    INVALID_ROUTE_METHOD = 102
    INVALID_ROUTE_URI = 103
    INVALID_ROUTE_CONTROLLER = 104
    INVALID_ROUTE_PRIVATE_FLAG = 105


class ErrorCategory(str, Enum):
    """Which construction input failed."""
    OPTIONS = "options"
    ROUTES = "routes"


def category_for(code: ServiceErrorCode) -> ErrorCategory:
    if code >= ServiceErrorCode.INVALID_ROUTES_COLLECTION:
        return ErrorCategory.ROUTES
    return ErrorCategory.OPTIONS


class ServiceError(Exception):
    """Base exception for all validation failures."""

    def __init__(self, message: str, code: ServiceErrorCode):
        super().__init__(message)
        self.message = message
        self.code = ServiceErrorCode(code)
        self.category = category_for(self.code)

    def to_dict(self) -> dict:
        """Structured form for log records."""
        return {
            "code": self.code.name,
            "value": int(self.code),
            "message": self.message,
            "category": self.category.value,
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, {self.code.name})"


# ─── Validation Errors ──────────────────────────────────────────

class OptionsValidationError(ServiceError):
    """User options failed the configuration schema."""


class RouteValidationError(ServiceError):
    """Route collection or a single route failed the structural checks."""

    def __init__(
        self, message: str, code: ServiceErrorCode, index: int | None = None,
    ):
        super().__init__(message, code)
        self.index = index

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["route_index"] = self.index
        return data


# ─── Runtime Errors ─────────────────────────────────────────────

class ServiceStartupError(RuntimeError):
    """Transport could not start listening (bind failure, bad TLS material)."""

    def __init__(self, message: str = "Cannot initialize RESTApiService"):
        super().__init__(message)
        self.message = message


class ResponseAlreadySentError(RuntimeError):
    """A controller called its responder more than once."""
