"""Service Settings — environment-driven defaults via pydantic-settings.

Invariants:
    - Settings only supply DEFAULTS; options passed to create() always win
    - get_settings() is cached (lru_cache) — single instance per process
    - Env vars use the RESTAPI_SERVICE_ prefix (RESTAPI_SERVICE_PORT=9000)

Design Decisions:
    - pydantic-settings over raw os.environ: type coercion, .env file support
    - host lives here only: the options schema has no host field, the
      listener binds to settings.host
"""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from restapi_service.core.options import ServiceOptions


class ServiceSettings(BaseSettings):
    """Process-level defaults from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="RESTAPI_SERVICE_", env_file=".env",
        case_sensitive=False, extra="ignore",
    )

    # Transport
    host: str = "0.0.0.0"
    port: int = 8080

    # Observability
    verbose: bool = False
    log_errors: bool = False
    log_level: str = "INFO"
    log_format: str = "text"

    @field_validator("log_format", mode="before")
    @classmethod
    def normalize_log_format(cls, v: str) -> str:
        """Anything other than json falls back to the colored text format."""
        if isinstance(v, str) and v.strip().lower() == "json":
            return "json"
        return "text"

    def default_options(self) -> ServiceOptions:
        """Documented defaults, with env overrides applied."""
        return ServiceOptions(
            port=self.port, verbose=self.verbose, log_errors=self.log_errors,
        )


@lru_cache
def get_settings() -> ServiceSettings:
    return ServiceSettings()
