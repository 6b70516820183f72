from __future__ import annotations

from notra.core.config import GenerationConfig
from notra.core.logging import get_logger
from notra.schemas.learning_asset import GenerationContext
from notra.services.errors import SummarizationDegraded, TransportFailure
from notra.services.length_strategy import truncate_text
from notra.services.llm.client import CompletionClient
from notra.services.llm.prompts import build_summary_prompt
from notra.services.text_normalizer import normalize

logger = get_logger(__name__)


class TwoStageSummarizer:
    """
    First stage for very long input: one cheap, low-temperature call that
    condenses the text before the main generation call sees it.
    """

    def __init__(self, client: CompletionClient, config: GenerationConfig) -> None:
        self.client = client
        self.config = config

    def summarize(self, text: str, context: GenerationContext) -> str:
        """
        Returns the normalized summary, capped at max_context_chars.

        Raises SummarizationDegraded when the call fails or comes back empty;
        the pipeline falls back to truncation on that.
        """
        prompt = build_summary_prompt(text, context, self.config.summary_target_chars)
        try:
            raw = self.client.complete(
                prompt,
                temperature=self.config.summary_temperature,
                json_mode=False,
                max_tokens=self.config.summary_max_tokens,
            )
        except TransportFailure as e:
            raise SummarizationDegraded(f"summary call failed: {e}") from e

        summary = normalize(raw)
        if not summary:
            raise SummarizationDegraded("summary call returned empty text")

        if len(summary) > self.config.max_context_chars:
            summary = truncate_text(summary, self.config.max_context_chars)

        logger.info(
            "two_stage_summary_done",
            input_chars=len(text),
            summary_chars=len(summary),
        )
        return summary
