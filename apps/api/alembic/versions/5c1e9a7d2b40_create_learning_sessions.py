"""create learning_sessions

Revision ID: 5c1e9a7d2b40
Revises:
Create Date: 2026-10-18 17:50:12.418220

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "5c1e9a7d2b40"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "learning_sessions",
        sa.Column("id", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("content_type", sa.String(length=16), nullable=False),
        sa.Column("title", sa.String(length=512), nullable=False),
        sa.Column("content_hash", sa.String(length=64), nullable=False),
        sa.Column("asset_json", sa.Text(), nullable=False),
        sa.Column("meta_json", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
    )
    op.create_index("ix_learning_sessions_content_hash", "learning_sessions", ["content_hash"], unique=True)
    op.create_index("ix_learning_sessions_created_at", "learning_sessions", ["created_at"])


def downgrade() -> None:
    op.drop_index("ix_learning_sessions_created_at", table_name="learning_sessions")
    op.drop_index("ix_learning_sessions_content_hash", table_name="learning_sessions")
    op.drop_table("learning_sessions")
