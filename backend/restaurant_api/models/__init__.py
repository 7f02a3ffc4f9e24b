"""ORM Models owned by the bootstrap.

Invariants:
    - All models inherit from Base (db/base.py)
    - Domain tables (menus, dishes, reservations...) belong to the route collaborators
"""

from restaurant_api.models.user_session import UserSession  # noqa: F401
