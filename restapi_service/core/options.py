"""Effective Options — documented defaults overlaid with caller-supplied fields.

Invariants:
    - ServiceOptions is frozen: set once at construction, read-only afterwards
    - Caller fields always win over defaults; None-valued fields never override
    - credentials is an HTTPSCredentials iff protocol is https
    - merge_options() assumes validate_options() already passed

Design Decisions:
    - Defaults passed in explicitly (not read from settings here): core stays free
      of environment IO, service.py builds the defaults from ServiceSettings
    - log_controller_errors accepted as an alias of log_errors
"""

from dataclasses import dataclass, field, fields, replace
from typing import Any, Mapping

from restapi_service.core.domain_types import (
    Authorizer,
    HTTPSCredentials,
    TransportProtocol,
)


def allow_all(token: str) -> bool:
    """Default authorizer: every token is accepted."""
    return True


@dataclass(frozen=True)
class ServiceOptions:
    """Fully resolved service configuration."""
    protocol: str = TransportProtocol.HTTP.value
    port: int = 8080
    cors: Mapping[str, Any] = field(default_factory=dict)
    verbose: bool = False
    auth: Authorizer = allow_all
    log_errors: bool = False
    credentials: HTTPSCredentials | None = None

    @property
    def is_https(self) -> bool:
        return self.protocol == TransportProtocol.HTTPS.value

    def to_mapping(self) -> dict[str, Any]:
        """Field dict, in the shape validate_options() accepts."""
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        if data["credentials"] is None:
            del data["credentials"]
        return data


OPTION_ALIASES = {"log_controller_errors": "log_errors"}
OPTION_FIELDS = frozenset(f.name for f in fields(ServiceOptions))


def normalize_option_keys(options: Mapping[str, Any]) -> dict[str, Any]:
    """Resolve aliases. Unknown keys are kept so callers can report them."""
    normalized: dict[str, Any] = {}
    for key, value in options.items():
        normalized[OPTION_ALIASES.get(key, key)] = value
    return normalized


def unknown_option_keys(options: Mapping[str, Any]) -> list[str]:
    return sorted(k for k in normalize_option_keys(options) if k not in OPTION_FIELDS)


def _to_credentials(value: Any) -> HTTPSCredentials:
    if isinstance(value, HTTPSCredentials):
        return value
    return HTTPSCredentials(key=value["key"], cert=value["cert"])


def merge_options(
    user_options: Mapping[str, Any] | ServiceOptions,
    defaults: ServiceOptions | None = None,
) -> ServiceOptions:
    """Overlay validated user options onto the defaults."""
    if isinstance(user_options, ServiceOptions):
        return _with_credentials(user_options)

    base = defaults or ServiceOptions()
    overrides = {
        key: value
        for key, value in normalize_option_keys(user_options).items()
        if key in OPTION_FIELDS and value is not None
    }
    if "cors" in overrides:
        overrides["cors"] = dict(overrides["cors"])
    if "port" in overrides:
        overrides["port"] = int(overrides["port"])

    return _with_credentials(replace(base, **overrides))


def _with_credentials(options: ServiceOptions) -> ServiceOptions:
    """HTTPSCredentials when https, None otherwise."""
    if options.is_https:
        return replace(options, credentials=_to_credentials(options.credentials))
    return replace(options, credentials=None)
