"""HTTP Transport — uvicorn listener (plain or TLS) with forced shutdown.

Invariants:
    - start() returns only once the socket is listening; if uvicorn gives up
      first (bind error, unreadable TLS material) it raises ServiceStartupError
    - force_shutdown() never drains: listeners closed, every open connection
      shut down, background work not awaited
    - TLS key/cert accepted as PEM text or as a path to a PEM file; PEM text is
      written to private temp files that live until shutdown
    - uvicorn never touches logging config (log_config=None, no access log)

Design Decisions:
    - uvicorn.Server.serve() in an asyncio task instead of uvicorn.run():
      run() owns the event loop, the service shares the caller's loop
    - lifespan="off": the wrapped app has no startup/shutdown hooks
"""

import asyncio
import logging
import os
import tempfile
from typing import Any

import uvicorn

from restapi_service.core.domain_types import HTTPSCredentials
from restapi_service.core.errors import ServiceStartupError

logger = logging.getLogger(__name__)

STARTUP_POLL_SECONDS = 0.01


def materialize_pem(value: str, suffix: str) -> tuple[str, bool]:
    """Return (path, is_temporary) for a PEM given as text or as a path."""
    if os.path.isfile(value):
        return value, False
    fd, path = tempfile.mkstemp(prefix="restapi-service-", suffix=suffix)
    with os.fdopen(fd, "w") as f:
        f.write(value)
    return path, True


class HTTPTransport:
    """Owns one uvicorn server bound to host:port."""

    def __init__(
        self,
        app: Any,
        host: str,
        port: int,
        credentials: HTTPSCredentials | None = None,
    ):
        self.app = app
        self.host = host
        self.port = port
        self.credentials = credentials
        self._server: uvicorn.Server | None = None
        self._task: asyncio.Task | None = None
        self._temp_files: list[str] = []

    @property
    def is_tls(self) -> bool:
        return self.credentials is not None

    @property
    def started(self) -> bool:
        return self._server is not None and self._server.started

    @property
    def bound_port(self) -> int:
        """Actual listening port (differs from self.port when port=0)."""
        if not self.started:
            return self.port
        for server in self._server.servers:
            for sock in server.sockets:
                return sock.getsockname()[1]
        return self.port

    def _build_config(self) -> uvicorn.Config:
        ssl: dict[str, str] = {}
        if self.credentials is not None:
            keyfile, key_tmp = materialize_pem(self.credentials.key, ".key.pem")
            certfile, cert_tmp = materialize_pem(self.credentials.cert, ".cert.pem")
            self._temp_files += [
                p for p, tmp in ((keyfile, key_tmp), (certfile, cert_tmp)) if tmp
            ]
            ssl = {"ssl_keyfile": keyfile, "ssl_certfile": certfile}
        return uvicorn.Config(
            self.app,
            host=self.host,
            port=self.port,
            log_config=None,
            access_log=False,
            lifespan="off",
            **ssl,
        )

    async def start(self) -> None:
        """Start serving in the background; wait until the socket listens."""
        try:
            self._server = uvicorn.Server(self._build_config())
        except Exception as e:
            self._cleanup()
            raise ServiceStartupError() from e

        self._task = asyncio.create_task(self._serve())
        while not self._server.started:
            if self._task.done():
                self._cleanup()
                cause = self._task.exception()
                raise ServiceStartupError() from cause
            await asyncio.sleep(STARTUP_POLL_SECONDS)

    async def _serve(self) -> None:
        try:
            await self._server.serve()
        except SystemExit as e:
            # uvicorn exits the process on bind errors; keep it inside the task
            raise OSError(f"uvicorn exited during startup (code {e.code})") from e
        if not self._server.started:
            raise OSError("uvicorn stopped before listening")

    async def force_shutdown(self) -> None:
        """Close listeners and all connections now; wait for the serve task."""
        if self._server is None or self._task is None:
            return
        self._server.force_exit = True
        self._server.should_exit = True
        try:
            await self._task
        finally:
            self._cleanup()
            self._task = None

    def _cleanup(self) -> None:
        for path in self._temp_files:
            try:
                os.unlink(path)
            except FileNotFoundError:
                pass
        self._temp_files = []
