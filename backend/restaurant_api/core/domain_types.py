"""Domain Types — enums and value objects shared across the bootstrap.

Invariants:
    - All valid states encoded as Enums — no raw string matching
    - AuthUser is immutable once resolved for a request
"""

from dataclasses import dataclass
from enum import Enum


# ─── Enums ───────────────────────────────────────────────────────

class Environment(str, Enum):
    """Deployment environment — toggles cookie and error-detail behaviour."""
    DEVELOPMENT = "development"
    TEST = "test"
    PRODUCTION = "production"


class AuthStrategyName(str, Enum):
    """Authentication model selected at startup. Never both at once."""
    JWT = "jwt"
    SESSION = "session"


class SameSite(str, Enum):
    """Session cookie SameSite attribute."""
    LAX = "lax"
    STRICT = "strict"
    NONE = "none"


class CorsDecision(str, Enum):
    """Outcome of evaluating a request Origin against the CORS policy."""
    NO_ORIGIN = "no_origin"
    EXACT = "exact"
    PATTERN = "pattern"
    DENIED = "denied"

    @property
    def allowed(self) -> bool:
        return self is not CorsDecision.DENIED


class ShutdownState(str, Enum):
    """Process lifecycle. RUNNING → DRAINING → CLOSED | FORCED_EXIT."""
    RUNNING = "running"
    DRAINING = "draining"
    CLOSED = "closed"
    FORCED_EXIT = "forced_exit"


# ─── Value Types ─────────────────────────────────────────────────

@dataclass(frozen=True)
class AuthUser:
    """Authenticated identity handed to downstream handlers."""
    id: str
    email: str | None = None
    role: str | None = None

    def to_dict(self) -> dict:
        return {"id": self.id, "email": self.email, "role": self.role}
