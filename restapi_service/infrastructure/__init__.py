"""Infrastructure Layer — transport (uvicorn) and logging.

Invariants:
    - Infrastructure never imports from api/
    - Transport errors surface as ServiceStartupError
"""
