"""Core Layer — pure validation and data model, no IO, no async, no HTTP.

Invariants:
    - No module in core/ imports from api/, infrastructure/, or service.py
    - All functions are deterministic; validators only ever raise ServiceError
"""
