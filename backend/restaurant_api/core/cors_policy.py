"""CORS Policy — pure allow/deny decision for a request Origin.

Invariants:
    - No Origin header → allowed (non-browser clients: curl, mobile apps)
    - Exact allow-list match is checked before patterns
    - Patterns are matched with search(); configured patterns carry their own anchors
    - evaluate() logs every decision; allows() is the silent variant
"""

import logging
import re
from dataclasses import dataclass

from restaurant_api.core.domain_types import CorsDecision

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CorsPolicy:
    allowlist: frozenset[str]
    patterns: tuple[re.Pattern[str], ...] = ()

    def classify(self, origin: str | None) -> CorsDecision:
        if not origin:
            return CorsDecision.NO_ORIGIN
        if origin in self.allowlist:
            return CorsDecision.EXACT
        if any(p.search(origin) for p in self.patterns):
            return CorsDecision.PATTERN
        return CorsDecision.DENIED

    def allows(self, origin: str | None) -> bool:
        return self.classify(origin).allowed

    def evaluate(self, origin: str | None) -> CorsDecision:
        decision = self.classify(origin)
        extra = {"origin": origin or "none", "decision": decision.value}
        if decision.allowed:
            logger.info(f"CORS allowed ({decision.value}): {origin or 'none'}", extra=extra)
        else:
            logger.warning(f"CORS denied: {origin}", extra=extra)
        return decision

    def describe(self) -> dict:
        return {
            "origins": sorted(self.allowlist),
            "patterns": [p.pattern for p in self.patterns],
        }
