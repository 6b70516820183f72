from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from json_repair import repair_json
from pydantic import ValidationError

from notra.core.config import GenerationConfig
from notra.core.logging import get_logger
from notra.schemas.learning_asset import LearningAssetPayload
from notra.services.errors import (
    GenerationFailure,
    ParseFailure,
    RepairFailure,
    StageFailure,
    ValidationFailure,
)
from notra.services.llm.client import CompletionClient
from notra.services.llm.prompts import Prompt, with_strict_instruction

logger = get_logger(__name__)

_FENCE_RE = re.compile(r"^```(?:json|JSON)?\s*|\s*```$")
_DECODER = json.JSONDecoder()


class EngineState(str, Enum):
    REQUESTING = "requesting"
    REPAIRING = "repairing"
    PARSING = "parsing"
    VALIDATING = "validating"
    RETRYING = "retrying"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class AttemptRecord:
    attempt: int
    outcome: str  # "ok" | "repair" | "parse" | "validate"
    error: str | None = None
    raw_chars: int = 0


@dataclass
class EngineResult:
    payload: LearningAssetPayload
    attempts: list[AttemptRecord] = field(default_factory=list)


# ----------------------------
# Funnel stages
# ----------------------------

def _first_object(value: Any) -> dict[str, Any] | None:
    if isinstance(value, dict):
        return value
    if isinstance(value, list):
        return next((v for v in value if isinstance(v, dict)), None)
    return None


def repair_completion(raw: str) -> str:
    """
    Best-effort syntax repair of model output.

    Strips code fences, then takes the first complete JSON object and ignores
    whatever chatter follows it. Only when no complete object decodes does
    json_repair get to fix trailing commas, bad quoting and unbalanced
    brackets. Returns JSON text.
    """
    text = (raw or "").strip()
    if not text:
        raise RepairFailure("empty completion")

    text = _FENCE_RE.sub("", text).strip()

    start = text.find("{")
    if start < 0:
        raise RepairFailure(f"no JSON object in completion. First 200 chars: {text[:200]!r}")

    # Fast path: a complete object, trailing chatter ignored
    try:
        value, end = _DECODER.raw_decode(text, start)
        if isinstance(value, dict):
            return text[start:end]
    except json.JSONDecodeError:
        pass

    end = text.rfind("}")
    candidate = text[start : end + 1] if end > start else text[start:]

    try:
        repaired = repair_json(candidate)
    except Exception as e:
        raise RepairFailure(f"json repair crashed: {e}") from e

    try:
        value = _first_object(json.loads(repaired)) if isinstance(repaired, str) and repaired.strip() else None
    except json.JSONDecodeError:
        value = None
    if not value:
        raise RepairFailure(f"completion could not be repaired. First 200 chars: {candidate[:200]!r}")
    return json.dumps(value, ensure_ascii=False)


def parse_repaired(text: str) -> dict[str, Any]:
    try:
        value = json.loads(text)
    except json.JSONDecodeError as e:
        raise ParseFailure(f"repaired text is still not JSON: {e}") from e
    if not isinstance(value, dict):
        raise ParseFailure(f"expected a JSON object, got {type(value).__name__}")
    return value


def validate_payload(value: dict[str, Any]) -> LearningAssetPayload:
    try:
        return LearningAssetPayload.model_validate(value)
    except ValidationError as e:
        problems = [
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
            for err in e.errors()[:5]
        ]
        more = f" (+{e.error_count() - 5} more)" if e.error_count() > 5 else ""
        raise ValidationFailure("; ".join(problems) + more) from e


# ----------------------------
# Engine
# ----------------------------

class GenerationEngine:
    """
    Request -> repair -> parse -> validate, with exactly one retry.

    The first failure at any funnel stage re-sends the same prompt under a
    stricter system instruction; a second failure ends in GenerationFailure.
    TransportFailure from the client is never retried here.
    """

    MAX_ATTEMPTS = 2

    def __init__(self, client: CompletionClient, config: GenerationConfig) -> None:
        self.client = client
        self.config = config

    def run(self, prompt: Prompt) -> EngineResult:
        state = EngineState.REQUESTING
        attempt = 1
        current = prompt

        raw = ""
        repaired = ""
        parsed: dict[str, Any] = {}
        payload: LearningAssetPayload | None = None
        last_failure: StageFailure | None = None
        history: list[AttemptRecord] = []

        while state not in (EngineState.DONE, EngineState.FAILED):
            if state == EngineState.RETRYING:
                attempt += 1
                current = with_strict_instruction(prompt)
                logger.info("generation_retrying", attempt=attempt, previous_stage=last_failure.stage)
                state = EngineState.REQUESTING
                continue

            if state == EngineState.REQUESTING:
                logger.info(
                    "generation_requesting",
                    attempt=attempt,
                    model=self.config.model,
                    prompt_chars=len(current.user),
                )
                raw = self.client.complete(
                    current,
                    temperature=self.config.temperature,
                    json_mode=True,
                    max_tokens=self.config.max_output_tokens,
                )
                state = EngineState.REPAIRING
                continue

            try:
                if state == EngineState.REPAIRING:
                    repaired = repair_completion(raw)
                    state = EngineState.PARSING
                elif state == EngineState.PARSING:
                    parsed = parse_repaired(repaired)
                    state = EngineState.VALIDATING
                elif state == EngineState.VALIDATING:
                    payload = validate_payload(parsed)
                    history.append(AttemptRecord(attempt=attempt, outcome="ok", raw_chars=len(raw)))
                    state = EngineState.DONE
            except StageFailure as e:
                last_failure = e
                history.append(AttemptRecord(attempt=attempt, outcome=e.stage, error=e.message, raw_chars=len(raw)))
                logger.warning(
                    "generation_attempt_failed",
                    attempt=attempt,
                    stage=e.stage,
                    error=e.message[:500],
                    raw_chars=len(raw),
                )
                state = EngineState.RETRYING if attempt < self.MAX_ATTEMPTS else EngineState.FAILED

        if state == EngineState.FAILED or payload is None:
            stage = last_failure.stage if last_failure else "unknown"
            message = last_failure.message if last_failure else "no payload produced"
            logger.error("generation_failed", attempts=attempt, stage=stage)
            raise GenerationFailure(stage, message, attempts=attempt)

        logger.info("generation_done", attempts=attempt)
        return EngineResult(payload=payload, attempts=history)
