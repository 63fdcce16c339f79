"""RESTApiService — declarative route table in, running HTTP(S) server out.

Invariants:
    - Validation is synchronous and happens before any socket is opened:
      create()/build() raise ServiceError at call time, not at await time
    - A RESTApiService instance only exists once the transport is listening and
      the router is installed (no partially-constructed instance escapes)
    - authorizer, port, verbose and log_errors are read-only after construction
    - destroy() is forceful only: listener and live connections terminated,
      in-flight controllers are neither awaited nor cancelled

Design Decisions:
    - Two-phase construction: create() validates, then returns the startup
      coroutine; ServiceBuilder is the incremental form of the same thing
    - Defaults come from ServiceSettings (env-overridable), explicit options win
    - setup_logging only when verbose or log_errors is on: silent services
      never touch logging handlers
"""

import logging
from typing import Any, Awaitable, Iterable, Mapping

from fastapi import FastAPI

from restapi_service.api.app_factory import create_app
from restapi_service.api.request_router import initialize_request_router
from restapi_service.config import ServiceSettings, get_settings
from restapi_service.core.domain_types import Authorizer, Controller, RouteTuple
from restapi_service.core.errors import ServiceError
from restapi_service.core.options import (
    ServiceOptions,
    merge_options,
    unknown_option_keys,
)
from restapi_service.core.validate_options import validate_options
from restapi_service.core.validate_routes import validate_route, validate_routes
from restapi_service.infrastructure.observability import setup_logging
from restapi_service.infrastructure.transport import HTTPTransport

logger = logging.getLogger(__name__)


class RESTApiService:
    """A running service. Obtain one with ``await RESTApiService.create(...)``."""

    ServiceError = ServiceError

    def __init__(
        self,
        options: ServiceOptions,
        app: FastAPI,
        transport: HTTPTransport,
    ):
        self.options = options
        self.app = app
        self.port = options.port
        self.protocol = options.protocol
        self.authorizer: Authorizer = options.auth
        self.verbose = options.verbose
        self.log_errors = options.log_errors
        self._transport = transport

    # ─── Construction ───────────────────────────────────────────

    @classmethod
    def create(
        cls,
        routes: list[RouteTuple],
        options: Mapping[str, Any] | ServiceOptions | None = None,
        settings: ServiceSettings | None = None,
    ) -> Awaitable["RESTApiService"]:
        """Validate now, start later: ``service = await RESTApiService.create(...)``."""
        options = {} if options is None else options
        validate_routes(routes)
        validate_options(options)

        settings = settings or get_settings()
        effective = merge_options(options, settings.default_options())
        unknown = [] if isinstance(options, ServiceOptions) else unknown_option_keys(options)
        return cls._start(list(routes), effective, settings, unknown)

    @classmethod
    async def _start(
        cls,
        routes: list[RouteTuple],
        options: ServiceOptions,
        settings: ServiceSettings,
        unknown_options: list[str],
    ) -> "RESTApiService":
        if options.verbose or options.log_errors:
            setup_logging(settings.log_level, settings.log_format)
        if unknown_options:
            logger.warning(f"RESTApiService : Ignoring unknown options {unknown_options}")

        handle = _StartupHandle(options)
        app = create_app(options, handle)
        transport = HTTPTransport(
            app, settings.host, options.port, options.credentials,
        )
        await transport.start()

        service = cls(options, app, transport)
        handle.bind(service)
        service.log(
            f"RESTApiService : Listening at port {service.bound_port} "
            f"(protocol={options.protocol})",
            protocol=options.protocol, port=service.bound_port,
        )
        try:
            initialize_request_router(service, routes)
        except Exception:
            await transport.force_shutdown()
            raise
        service.log("RESTApiService : Ready!")
        service.log("-" * 64)
        return service

    # ─── Runtime ────────────────────────────────────────────────

    @property
    def bound_port(self) -> int:
        return self._transport.bound_port

    @property
    def url(self) -> str:
        return f"{self.protocol}://127.0.0.1:{self.bound_port}"

    def log(self, message: str, **extra: Any) -> None:
        """Verbose-only operational log line."""
        if self.verbose:
            logger.info(message, extra=extra)

    async def destroy(self) -> None:
        """Forcibly stop listening and drop every open connection."""
        await self._transport.force_shutdown()
        self.log("RESTApiService : Destroyed")

    async def __aenter__(self) -> "RESTApiService":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.destroy()


class _StartupHandle:
    """Stands in for the service while the app is built but not yet listening.

    The request-id middleware is created before the RESTApiService exists;
    it logs through this handle, which forwards to the service once bound.
    """

    def __init__(self, options: ServiceOptions):
        self.app = None
        self.authorizer = options.auth
        self.port = options.port
        self.verbose = options.verbose
        self.log_errors = options.log_errors
        self._service: RESTApiService | None = None

    def bind(self, service: RESTApiService) -> None:
        self._service = service
        self.app = service.app

    def log(self, message: str, **extra: Any) -> None:
        if self._service is not None:
            self._service.log(message, **extra)


class ServiceBuilder:
    """Incremental construction: add routes and options, then ``await build()``.

    Each route is validated as it is added, with the index it will occupy,
    so a bad route fails at the call that introduced it.
    """

    def __init__(self, settings: ServiceSettings | None = None):
        self._routes: list[RouteTuple] = []
        self._options: dict[str, Any] = {}
        self._settings = settings

    def route(
        self,
        method: str,
        uri: str,
        controller: Controller,
        private: bool = False,
    ) -> "ServiceBuilder":
        route = (method, uri, controller, private)
        validate_route(route, len(self._routes))
        self._routes.append(route)
        return self

    def routes(self, routes: Iterable[RouteTuple]) -> "ServiceBuilder":
        for route in routes:
            validate_route(route, len(self._routes))
            self._routes.append(route)
        return self

    def options(
        self, options: Mapping[str, Any] | None = None, **fields: Any,
    ) -> "ServiceBuilder":
        if options is not None:
            validate_options(options)
        merged = {**self._options, **(options or {}), **fields}
        validate_options(merged)
        self._options = merged
        return self

    def build(self) -> Awaitable[RESTApiService]:
        return RESTApiService.create(self._routes, self._options, self._settings)
