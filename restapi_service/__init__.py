"""restapi_service — declarative REST API service over FastAPI + uvicorn.

Usage::

    from restapi_service import RESTApiService

    def get_item(respond, payload, token):
        respond(200, {"id": payload.params["id"]})

    service = await RESTApiService.create(
        [("GET", "/items/:id", get_item)], {"port": 8080},
    )
    ...
    await service.destroy()

Invariants:
    - Public names re-exported explicitly below (no star imports)
"""

from restapi_service.core.domain_types import (
    AUTH_REQUIRED,
    MISSING_TOKEN,
    HTTPMethod,
    HTTPSCredentials,
    RequestPayload,
    RouteDescriptor,
)
from restapi_service.core.errors import (
    OptionsValidationError,
    RouteValidationError,
    ServiceError,
    ServiceErrorCode,
    ServiceStartupError,
)
from restapi_service.core.options import ServiceOptions
from restapi_service.service import RESTApiService, ServiceBuilder

__version__ = "1.0.0"

__all__ = [
    "AUTH_REQUIRED",
    "MISSING_TOKEN",
    "HTTPMethod",
    "HTTPSCredentials",
    "OptionsValidationError",
    "RESTApiService",
    "RequestPayload",
    "RouteDescriptor",
    "RouteValidationError",
    "ServiceBuilder",
    "ServiceError",
    "ServiceErrorCode",
    "ServiceOptions",
    "ServiceStartupError",
]
