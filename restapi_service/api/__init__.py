"""API Layer — FastAPI app, route compilation, per-request interceptors.

Invariants:
    - Routes registered explicitly from the caller's table (no auto-discovery)
    - Clients only ever see status codes and the documented JSON bodies
"""
