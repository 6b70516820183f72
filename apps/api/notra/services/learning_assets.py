from __future__ import annotations

import time
from dataclasses import dataclass

from notra.core.config import GenerationConfig, Settings, settings
from notra.core.logging import get_logger
from notra.schemas.learning_asset import GenerationContext, LearningAsset
from notra.services.asset_store import AssetStore, SqlAlchemyAssetStore, fingerprint
from notra.services.errors import EmptyInputError, SummarizationDegraded
from notra.services.generation_engine import AttemptRecord, GenerationEngine
from notra.services.length_strategy import (
    PreparedText,
    Strategy,
    prepare_working_text,
    select_strategy,
    summarization_note,
)
from notra.services.llm.client import CompletionClient, build_completion_client
from notra.services.llm.prompts import build_prompt
from notra.services.result_mapper import map_result
from notra.services.summarizer import TwoStageSummarizer
from notra.services.text_normalizer import normalize

logger = get_logger(__name__)


@dataclass(frozen=True)
class GenerationResult:
    asset: LearningAsset
    fingerprint: str
    session_id: str
    cached: bool
    # None when served from the store
    strategy: Strategy | None = None
    attempts: tuple[AttemptRecord, ...] = ()


class LearningAssetPipeline:
    """
    normalize -> dedup lookup -> strategy -> [summarize] -> prompt
    -> engine -> map -> store.

    One request runs strictly in sequence; the store lookup and the model
    calls are the only blocking points.
    """

    def __init__(self, client: CompletionClient, store: AssetStore, config: GenerationConfig) -> None:
        self.client = client
        self.store = store
        self.config = config
        self.engine = GenerationEngine(client, config)
        self.summarizer = TwoStageSummarizer(client, config)

    def _prepare(self, text: str, strategy: Strategy, context: GenerationContext) -> PreparedText:
        if strategy != Strategy.TWO_STAGE_SUMMARIZE:
            return prepare_working_text(text, strategy, self.config)

        try:
            summary = self.summarizer.summarize(text, context)
        except SummarizationDegraded as e:
            logger.warning("two_stage_summary_degraded", error=str(e), fallback=Strategy.TRUNCATE.value)
            return prepare_working_text(text, Strategy.TRUNCATE, self.config)

        return PreparedText(
            text=summary,
            strategy=Strategy.TWO_STAGE_SUMMARIZE,
            note=summarization_note(len(text)),
            original_chars=len(text),
        )

    def generate(self, text: str, context: GenerationContext | None = None) -> GenerationResult:
        context = context or GenerationContext()
        started = time.monotonic()

        normalized = normalize(text)
        if not normalized:
            raise EmptyInputError("Input text is empty after normalization")

        key = fingerprint(normalized)
        log = logger.bind(fingerprint=key[:16], content_type=context.content_type.value)

        hit = self.store.lookup(key)
        if hit:
            log.info("learning_asset_cache_hit", session_id=hit.session_id)
            return GenerationResult(asset=hit.asset, fingerprint=key, session_id=hit.session_id, cached=True)

        strategy = select_strategy(normalized, self.config)
        prepared = self._prepare(normalized, strategy, context)
        log.info(
            "learning_asset_strategy",
            selected=strategy.value,
            applied=prepared.strategy.value,
            chars=len(normalized),
            working_chars=len(prepared.text),
        )

        prompt = build_prompt(prepared.text, context, prepared.note)
        result = self.engine.run(prompt)
        asset = map_result(result.payload, context)

        stored = self.store.store(key, asset, context)
        log.info(
            "learning_asset_generated",
            session_id=stored.session_id,
            notes=len(asset.notes),
            quizzes=len(asset.quizzes),
            flashcards=len(asset.flashcards),
            attempts=len(result.attempts),
            duration_seconds=round(time.monotonic() - started, 3),
        )

        return GenerationResult(
            # a concurrent writer may have won; return what is stored
            asset=stored.asset,
            fingerprint=key,
            session_id=stored.session_id,
            cached=False,
            strategy=prepared.strategy,
            attempts=tuple(result.attempts),
        )


_default_pipeline: LearningAssetPipeline | None = None


def build_pipeline(s: Settings = settings) -> LearningAssetPipeline:
    from notra.db.session import SessionLocal

    return LearningAssetPipeline(
        client=build_completion_client(s),
        store=SqlAlchemyAssetStore(SessionLocal),
        config=GenerationConfig.from_settings(s),
    )


def get_pipeline() -> LearningAssetPipeline:
    global _default_pipeline
    if _default_pipeline is None:
        _default_pipeline = build_pipeline()
    return _default_pipeline


def generate(text: str, context: GenerationContext | None = None) -> LearningAsset:
    """Public entry point: the asset for `text`, generated or cached."""
    return get_pipeline().generate(text, context).asset
