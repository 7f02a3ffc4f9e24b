"""Server-side session table for the cookie-session strategy.

Revision ID: 001_user_sessions
Revises: None
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001_user_sessions"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "user_sessions",
        sa.Column("sid", sa.String(255), primary_key=True),
        sa.Column("sess", sa.JSON, nullable=False),
        sa.Column("expire", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_user_sessions_expire", "user_sessions", ["expire"])


def downgrade() -> None:
    op.drop_index("ix_user_sessions_expire", table_name="user_sessions")
    op.drop_table("user_sessions")
