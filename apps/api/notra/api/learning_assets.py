from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from notra.core.logging import get_logger
from notra.schemas.learning_asset import ContentType, ContentTypeField, ContextMetadata, GenerationContext
from notra.services.errors import EmptyInputError, GenerationFailure, TransportFailure
from notra.services.learning_assets import LearningAssetPipeline, get_pipeline

logger = get_logger(__name__)

router = APIRouter(prefix="/learning-assets", tags=["learning_assets"])


class GenerateLearningAssetRequest(BaseModel):
    text: str
    content_type: ContentTypeField = ContentType.document
    metadata: ContextMetadata = Field(default_factory=ContextMetadata)


class GenerateLearningAssetResponse(BaseModel):
    ok: bool
    session_id: str
    fingerprint: str
    cached: bool
    strategy: str | None = None
    title: str
    asset: dict[str, Any]


@router.post("", response_model=GenerateLearningAssetResponse)
def create_learning_asset(
    req: GenerateLearningAssetRequest,
    pipeline: LearningAssetPipeline = Depends(get_pipeline),
) -> GenerateLearningAssetResponse:
    if not (req.text or "").strip():
        raise HTTPException(status_code=400, detail="text is required")

    context = GenerationContext(content_type=req.content_type, metadata=req.metadata)

    try:
        result = pipeline.generate(req.text, context)
    except EmptyInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except GenerationFailure as e:
        logger.warning("learning_asset_request_failed", stage=e.stage, attempts=e.attempts)
        raise HTTPException(
            status_code=422,
            detail="The input could not be understood well enough to build study materials. "
            "Try a cleaner or longer source.",
        )
    except TransportFailure as e:
        logger.warning("learning_asset_request_unavailable", provider=e.provider, error=str(e))
        raise HTTPException(
            status_code=503,
            detail="The generation service is temporarily unavailable. Please try again shortly.",
        )

    return GenerateLearningAssetResponse(
        ok=True,
        session_id=result.session_id,
        fingerprint=result.fingerprint,
        cached=result.cached,
        strategy=result.strategy.value if result.strategy else None,
        title=result.asset.title,
        asset=result.asset.to_json_dict(),
    )
