"""ASGI Middleware — the ordered request pipeline applied before route dispatch.

Order (outermost first), assembled in main.create_app:
    proxy headers → CORS gate → security headers → global limiter →
    auth limiter → body size cap → session (cookie strategy only) → request log
"""
