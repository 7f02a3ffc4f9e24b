"""UserSession ORM — server-side storage for cookie-backed sessions.

Invariants:
    - sid is the opaque identifier carried (signed) in the session cookie
    - sess holds the JSON payload (user_id, email, role once authenticated)
    - expire is absolute UTC; rows past expire are treated as absent
"""

from datetime import datetime

from sqlalchemy import String, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column

from restaurant_api.db.base import Base


class UserSession(Base):
    """One row per live browser session."""
    __tablename__ = "user_sessions"

    sid: Mapped[str] = mapped_column(String(255), primary_key=True)
    sess: Mapped[dict] = mapped_column(JSON, nullable=False)
    expire: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True,
    )

    def __repr__(self) -> str:
        return f"<UserSession sid={self.sid[:8]}... expire={self.expire}>"
