"""API Layer — middleware chain, built-in routes and error handlers.

Invariants:
    - All endpoints and middleware rejections return structured JSON responses
"""
