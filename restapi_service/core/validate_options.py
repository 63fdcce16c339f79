"""Option Validation — field-by-field schema checks before any server resource exists.

Invariants:
    - Only keys present on the input are checked (partial configuration is valid)
    - Checks run in a fixed order; the first failure raises and wins
    - Every failure raises OptionsValidationError with its specific code
    - No side effects beyond raising

Design Decisions:
    - One static check per field on OptionsValidator: each is testable on its own
    - bool is rejected as a port even though it subclasses int
    - Float ports must be finite and integral: NaN, inf and 8080.5 fail here
      instead of breaking the int() conversion at merge time
    - Credentials are checked by type only; empty PEM strings pass here and
      fail later, at TLS load time
"""

import math
from collections.abc import Mapping
from typing import Any

from restapi_service.core.domain_types import HTTPSCredentials, TransportProtocol
from restapi_service.core.errors import OptionsValidationError, ServiceErrorCode
from restapi_service.core.options import (
    OPTION_ALIASES,
    ServiceOptions,
    normalize_option_keys,
)

PROTOCOLS = frozenset(p.value for p in TransportProtocol)


def _is_mapping(x: Any) -> bool:
    return isinstance(x, Mapping)


class OptionsValidator:
    """Static checks, one per option field."""

    @staticmethod
    def check_options_object(x: Any) -> None:
        # options must be a mapping
        if not _is_mapping(x):
            raise OptionsValidationError(
                "Options must be an object",
                ServiceErrorCode.INVALID_OPTIONS_TYPE,
            )

    @staticmethod
    def check_protocol(x: Any) -> None:
        if not isinstance(x, str) or x not in PROTOCOLS:
            raise OptionsValidationError(
                'Options.protocol must be "http" or "https"',
                ServiceErrorCode.INVALID_OPTIONS_PROTOCOL,
            )

    @staticmethod
    def check_port(x: Any) -> None:
        if isinstance(x, bool) or not isinstance(x, (int, float)):
            raise OptionsValidationError(
                "Options.port must be a number",
                ServiceErrorCode.INVALID_OPTIONS_PORT,
            )
        if isinstance(x, float) and not (math.isfinite(x) and x.is_integer()):
            raise OptionsValidationError(
                "Options.port must be an integral number",
                ServiceErrorCode.INVALID_OPTIONS_PORT,
            )

    @staticmethod
    def check_verbose(x: Any) -> None:
        if not isinstance(x, bool):
            raise OptionsValidationError(
                "Options.verbose must be a boolean",
                ServiceErrorCode.INVALID_OPTIONS_VERBOSE,
            )

    @staticmethod
    def check_cors(x: Any) -> None:
        if not _is_mapping(x):
            raise OptionsValidationError(
                "Options.cors must be an object",
                ServiceErrorCode.INVALID_OPTIONS_CORS,
            )

    @staticmethod
    def check_auth(x: Any) -> None:
        if not callable(x):
            raise OptionsValidationError(
                "Options.auth must be a function",
                ServiceErrorCode.INVALID_OPTIONS_AUTH,
            )

    @staticmethod
    def check_log_errors(x: Any) -> None:
        if not isinstance(x, bool):
            raise OptionsValidationError(
                "Options.log_errors must be a boolean",
                ServiceErrorCode.INVALID_OPTIONS_LOG_ERRORS,
            )

    @staticmethod
    def check_credentials(x: Any) -> None:
        if isinstance(x, HTTPSCredentials):
            cert, key = x.cert, x.key
        elif _is_mapping(x):
            cert, key = x.get("cert"), x.get("key")
        else:
            raise OptionsValidationError(
                'Options.credentials must be set when protocol="https"',
                ServiceErrorCode.INVALID_OPTIONS_CREDENTIALS,
            )
        if not isinstance(cert, str):
            raise OptionsValidationError(
                "Options.credentials.cert must be a string",
                ServiceErrorCode.INVALID_OPTIONS_CREDENTIALS_CERTIFICATE,
            )
        if not isinstance(key, str):
            raise OptionsValidationError(
                "Options.credentials.key must be a string",
                ServiceErrorCode.INVALID_OPTIONS_CREDENTIALS_KEY,
            )


def validate_options(options: Any) -> None:
    """Validate user options. Raises OptionsValidationError on the first bad field."""
    if isinstance(options, ServiceOptions):
        options = options.to_mapping()
    OptionsValidator.check_options_object(options)

    o = normalize_option_keys(options)
    if "protocol" in o:
        OptionsValidator.check_protocol(o["protocol"])
    if "port" in o:
        OptionsValidator.check_port(o["port"])
    if "verbose" in o:
        OptionsValidator.check_verbose(o["verbose"])
    if "cors" in o:
        OptionsValidator.check_cors(o["cors"])
    if "auth" in o:
        OptionsValidator.check_auth(o["auth"])
    # alias and canonical key are each checked as given
    for key in ("log_errors", *OPTION_ALIASES):
        if key in options:
            OptionsValidator.check_log_errors(options[key])
    if o.get("protocol") == TransportProtocol.HTTPS.value:
        OptionsValidator.check_credentials(o.get("credentials"))
