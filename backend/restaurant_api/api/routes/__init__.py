"""Route Modules — one file per concern.

Invariants:
    - Each module defines its own APIRouter; the API prefix is applied at include time
    - Collaborator route groups are mounted, never implemented, here
"""
