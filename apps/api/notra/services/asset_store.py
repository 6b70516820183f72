from __future__ import annotations

import hashlib
import json
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Protocol

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from notra.core.logging import get_logger
from notra.models.learning_session import LearningSession, utc_now
from notra.schemas.learning_asset import ContentType, GenerationContext, LearningAsset

logger = get_logger(__name__)


def fingerprint(normalized_text: str) -> str:
    """sha256 hex of the normalized text. Same text, same key; nothing else goes in."""
    return hashlib.sha256((normalized_text or "").encode("utf-8")).hexdigest()


def _new_session_id() -> str:
    return f"session-{uuid.uuid4().hex}"


@dataclass(frozen=True)
class StoredAsset:
    session_id: str
    fingerprint: str
    content_type: ContentType
    asset: LearningAsset
    created_at: datetime

    @property
    def title(self) -> str:
        return self.asset.title


class AssetStore(Protocol):
    def lookup(self, fingerprint: str) -> StoredAsset | None: ...

    def store(self, fingerprint: str, asset: LearningAsset, context: GenerationContext) -> StoredAsset: ...


class SessionStore(AssetStore, Protocol):
    def get_session(self, session_id: str) -> StoredAsset | None: ...

    def list_recent(self, limit: int = 10) -> list[StoredAsset]: ...

    def delete_session(self, session_id: str) -> bool: ...


# ----------------------------
# In-memory
# ----------------------------

class InMemoryAssetStore:
    """
    Process-local store. First writer for a fingerprint wins; later writes
    return the existing entry untouched.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._by_hash: dict[str, StoredAsset] = {}

    def lookup(self, fingerprint: str) -> StoredAsset | None:
        with self._lock:
            return self._by_hash.get(fingerprint)

    def store(self, fingerprint: str, asset: LearningAsset, context: GenerationContext) -> StoredAsset:
        with self._lock:
            existing = self._by_hash.get(fingerprint)
            if existing:
                return existing
            entry = StoredAsset(
                session_id=_new_session_id(),
                fingerprint=fingerprint,
                content_type=context.content_type,
                asset=asset,
                created_at=utc_now(),
            )
            self._by_hash[fingerprint] = entry
            return entry

    def get_session(self, session_id: str) -> StoredAsset | None:
        with self._lock:
            for entry in self._by_hash.values():
                if entry.session_id == session_id:
                    return entry
        return None

    def list_recent(self, limit: int = 10) -> list[StoredAsset]:
        with self._lock:
            rows = sorted(self._by_hash.values(), key=lambda e: e.created_at, reverse=True)
        return rows[: max(0, limit)]

    def delete_session(self, session_id: str) -> bool:
        with self._lock:
            for key, entry in list(self._by_hash.items()):
                if entry.session_id == session_id:
                    del self._by_hash[key]
                    return True
        return False


# ----------------------------
# SQLAlchemy
# ----------------------------

def _to_stored(row: LearningSession) -> StoredAsset:
    return StoredAsset(
        session_id=row.id,
        fingerprint=row.content_hash,
        content_type=ContentType(row.content_type),
        asset=LearningAsset.model_validate(json.loads(row.asset_json)),
        created_at=row.created_at,
    )


class SqlAlchemyAssetStore:
    """
    learning_sessions-backed store.

    Every call opens its own short session, so concurrent requests never
    share ORM state. The unique index on content_hash makes the insert the
    commit point: a reader sees no row or the full row.
    """

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def lookup(self, fingerprint: str) -> StoredAsset | None:
        db = self._session_factory()
        try:
            row = db.query(LearningSession).filter(LearningSession.content_hash == fingerprint).first()
            return _to_stored(row) if row else None
        finally:
            db.close()

    def store(self, fingerprint: str, asset: LearningAsset, context: GenerationContext) -> StoredAsset:
        db = self._session_factory()
        try:
            row = LearningSession(
                id=_new_session_id(),
                content_type=context.content_type.value,
                title=asset.title[:512],
                content_hash=fingerprint,
                asset_json=json.dumps(asset.to_json_dict(), ensure_ascii=False),
                meta_json=json.dumps(context.metadata.model_dump(exclude_none=True), ensure_ascii=False),
            )
            db.add(row)
            try:
                db.commit()
            except IntegrityError:
                # lost the race for this fingerprint; keep the winner
                db.rollback()
                winner = db.query(LearningSession).filter(LearningSession.content_hash == fingerprint).one()
                logger.info("asset_store_race_lost", fingerprint=fingerprint, session_id=winner.id)
                return _to_stored(winner)
            db.refresh(row)
            return _to_stored(row)
        finally:
            db.close()

    def get_session(self, session_id: str) -> StoredAsset | None:
        db = self._session_factory()
        try:
            row = db.query(LearningSession).filter(LearningSession.id == session_id).first()
            return _to_stored(row) if row else None
        finally:
            db.close()

    def list_recent(self, limit: int = 10) -> list[StoredAsset]:
        db = self._session_factory()
        try:
            rows = (
                db.query(LearningSession)
                .order_by(LearningSession.created_at.desc())
                .limit(max(0, limit))
                .all()
            )
            return [_to_stored(r) for r in rows]
        finally:
            db.close()

    def delete_session(self, session_id: str) -> bool:
        db = self._session_factory()
        try:
            deleted = db.query(LearningSession).filter(LearningSession.id == session_id).delete()
            db.commit()
            return bool(deleted)
        finally:
            db.close()
