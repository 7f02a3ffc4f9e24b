"""Core Layer — pure policy and lifecycle logic, no IO, no DB.

Invariants:
    - No module in core/ imports from api/, auth/, infrastructure/, or db/
"""
