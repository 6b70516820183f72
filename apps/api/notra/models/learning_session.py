from datetime import datetime, timezone

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from notra.db.base import Base


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class LearningSession(Base):
    __tablename__ = "learning_sessions"

    # "session-<hex>"
    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    # document|audio|video
    content_type: Mapped[str] = mapped_column(String(16), nullable=False)
    title: Mapped[str] = mapped_column(String(512), nullable=False)

    # sha256 of the normalized source text; the dedup key
    content_hash: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True)

    # JSON string: the full LearningAsset (camelCase keys)
    asset_json: Mapped[str] = mapped_column(Text, nullable=False)
    meta_json: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, server_default=func.now(), nullable=False, index=True
    )
