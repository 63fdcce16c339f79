"""Root conftest — shared test configuration."""

import os

# Live-server tests bind loopback only; never pick up a developer's env overrides
os.environ.setdefault("RESTAPI_SERVICE_HOST", "127.0.0.1")
for _key in ("PORT", "VERBOSE", "LOG_ERRORS"):
    os.environ.pop(f"RESTAPI_SERVICE_{_key}", None)
