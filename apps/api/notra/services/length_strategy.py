from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from notra.core.config import GenerationConfig

TRUNCATION_MARKER = "[... content truncated ...]"


class Strategy(str, Enum):
    PASS_THROUGH = "pass_through"
    EXPAND_THIN = "expand_thin"
    TRUNCATE = "truncate"
    TWO_STAGE_SUMMARIZE = "two_stage_summarize"


@dataclass(frozen=True)
class PreparedText:
    text: str
    strategy: Strategy
    note: str = ""
    original_chars: int = 0


def select_strategy(text: str, config: GenerationConfig) -> Strategy:
    """
    Pick how the text is fitted into the context budget.

      n <  thin_threshold                          -> EXPAND_THIN
      thin_threshold <= n <= max_context_chars     -> PASS_THROUGH
      max_context_chars < n <= very_long_threshold -> TRUNCATE
      n >  very_long_threshold                     -> TWO_STAGE_SUMMARIZE
    """
    n = len(text or "")
    if n < config.thin_threshold:
        return Strategy.EXPAND_THIN
    if n <= config.max_context_chars:
        return Strategy.PASS_THROUGH
    if n <= config.very_long_threshold:
        return Strategy.TRUNCATE
    return Strategy.TWO_STAGE_SUMMARIZE


# ----------------------------
# Strategy notes (injected into the prompt)
# ----------------------------

def thin_content_note() -> str:
    return (
        "Note: Content is relatively short. Expand it into full-depth learning materials rather than "
        "summarizing it further: explain every concept thoroughly, add worked examples, applications and "
        "common mistakes, and create complete notes, quizzes and flashcards even though the source is brief."
    )


def truncation_note(max_chars: int, original_chars: int) -> str:
    return (
        f"Note: Content has been truncated for processing. Only the first {max_chars:,} of "
        f"{original_chars:,} characters were analyzed (the cut is marked {TRUNCATION_MARKER}). "
        "Generate comprehensive materials from this portion and do not invent content for the missing part."
    )


def summarization_note(original_chars: int) -> str:
    return (
        f"Note: The original content was very long ({original_chars:,} characters) and has been condensed "
        "into the comprehensive summary below before analysis. Generate materials that cover every topic "
        "in the summary."
    )


def truncate_text(text: str, max_chars: int) -> str:
    """Cut on a word boundary and append the truncation marker."""
    if len(text) <= max_chars:
        return text
    cut = text[:max_chars]
    if " " in cut:
        cut = cut.rsplit(" ", 1)[0]
    return f"{cut.rstrip()}\n\n{TRUNCATION_MARKER}"


def prepare_working_text(text: str, strategy: Strategy, config: GenerationConfig) -> PreparedText:
    """
    Apply the cheap strategies. TWO_STAGE_SUMMARIZE needs a model call and is
    handled by the summarizer; here it is treated as TRUNCATE so callers always
    get something usable.
    """
    n = len(text)
    if strategy == Strategy.EXPAND_THIN:
        return PreparedText(text=text, strategy=strategy, note=thin_content_note(), original_chars=n)
    if strategy == Strategy.PASS_THROUGH:
        return PreparedText(text=text, strategy=strategy, original_chars=n)

    return PreparedText(
        text=truncate_text(text, config.max_context_chars),
        strategy=Strategy.TRUNCATE,
        note=truncation_note(config.max_context_chars, n),
        original_chars=n,
    )
