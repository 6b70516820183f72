from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from notra.services.asset_store import SessionStore, StoredAsset
from notra.services.learning_assets import LearningAssetPipeline, get_pipeline

router = APIRouter(prefix="/sessions", tags=["sessions"])


def get_store(pipeline: LearningAssetPipeline = Depends(get_pipeline)) -> SessionStore:
    return pipeline.store


def _summary(s: StoredAsset) -> dict:
    return {
        "id": s.session_id,
        "type": s.content_type.value,
        "title": s.title,
        "content_hash": s.fingerprint,
        "created_at": s.created_at.isoformat() if s.created_at else None,
    }


@router.get("/recent")
def list_recent_sessions(
    limit: int = Query(default=10, ge=1, le=100),
    store: SessionStore = Depends(get_store),
):
    rows = store.list_recent(limit)
    return {"ok": True, "limit": limit, "sessions": [_summary(s) for s in rows]}


@router.get("/{session_id}")
def get_session(session_id: str, store: SessionStore = Depends(get_store)):
    s = store.get_session(session_id)
    if not s:
        raise HTTPException(status_code=404, detail="Session not found")

    return {
        "ok": True,
        "session": {
            **_summary(s),
            **s.asset.to_json_dict(),
        },
    }


@router.delete("/{session_id}")
def delete_session(session_id: str, store: SessionStore = Depends(get_store)):
    if not store.delete_session(session_id):
        raise HTTPException(status_code=404, detail="Session not found")
    return {"ok": True, "deleted": session_id}
