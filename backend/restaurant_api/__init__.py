"""Restaurant API — HTTP server bootstrap for the restaurant management app.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)
"""
