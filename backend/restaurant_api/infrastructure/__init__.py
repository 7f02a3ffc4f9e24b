"""Infrastructure Layer — database pool, session store, rate limiting, logging.

Invariants:
    - Infrastructure never imports from api/
    - Every resource here is owned by AppContext, never by a module global
"""
