"""
Learning asset shapes.

Two families live here:

- ``*Payload`` models validate the JSON the language model returns. Optional
  fields stay ``None`` when the model leaves them out.
- Domain models (``LearningAsset``, ``NoteSection``, ...) are what the rest of
  the app sees. They are frozen, every optional list is always present
  (possibly empty), and they serialize with the same camelCase keys the model
  uses so a stored asset round-trips through ``asset_json``.
"""
from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


Difficulty = Literal["easy", "medium", "hard"]


class ContentType(str, Enum):
    document = "document"
    audio = "audio"
    video = "video"


def _legacy_content_type(v: Any) -> Any:
    # upload routes used to tag documents as "file"
    if isinstance(v, str) and v.strip().lower() == "file":
        return ContentType.document
    return v


ContentTypeField = Annotated[ContentType, BeforeValidator(_legacy_content_type)]


# ----------------------------
# Generation context
# ----------------------------

class ContextMetadata(BaseModel):
    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True, alias_generator=to_camel)

    file_name: str | None = None
    mime_type: str | None = None
    file_size: int | None = None
    page_count: int | None = None
    duration: float | None = None  # seconds
    format: str | None = None
    video_url: str | None = None
    video_id: str | None = None
    platform: str | None = None
    title: str | None = None


class GenerationContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    content_type: ContentTypeField = ContentType.document
    metadata: ContextMetadata = Field(default_factory=ContextMetadata)


# ----------------------------
# Model output (validation)
# ----------------------------

class _Payload(BaseModel):
    model_config = ConfigDict(
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
        coerce_numbers_to_str=True,
    )


class TableRowPayload(_Payload):
    label: str
    value: str


class SummaryRowPayload(_Payload):
    concept: str
    formula: str = ""
    notes: str = ""


class NoteSectionPayload(_Payload):
    id: str
    heading: str
    content: str
    bullets: list[str] | None = None
    example: str | None = None
    table_summary: list[TableRowPayload] | None = None
    concept_explanation: str | None = None
    formula_derivation: str | None = None
    applications: list[str] | None = None
    common_mistakes: list[str] | None = None
    summary_table: list[SummaryRowPayload] | None = None


class QuizOptionPayload(_Payload):
    label: str
    text: str


class QuizItemPayload(_Payload):
    id: str
    question: str
    options: list[QuizOptionPayload] = Field(min_length=2, max_length=6)
    correct_index: int = Field(ge=0)
    explanation: str
    difficulty: Difficulty | None = None

    @field_validator("difficulty", mode="before")
    @classmethod
    def _lower_difficulty(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower() or None
        return v

    @model_validator(mode="after")
    def _correct_index_in_range(self) -> "QuizItemPayload":
        if self.correct_index >= len(self.options):
            raise ValueError(
                f"correctIndex {self.correct_index} out of range for {len(self.options)} options"
            )
        return self


class FlashcardPayload(_Payload):
    id: str
    front: str
    back: str
    tag: str | None = None


class LearningAssetPayload(_Payload):
    title: str
    notes: list[NoteSectionPayload] = Field(min_length=1)
    quizzes: list[QuizItemPayload] = Field(min_length=1)
    flashcards: list[FlashcardPayload] = Field(min_length=1)
    summary_for_chat: str = Field(min_length=10)


# ----------------------------
# Domain
# ----------------------------

class _Domain(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)


class TableRow(_Domain):
    label: str
    value: str


class SummaryRow(_Domain):
    concept: str
    formula: str = ""
    notes: str = ""


class NoteSection(_Domain):
    id: str
    heading: str
    content: str
    bullets: tuple[str, ...] = ()
    example: str | None = None
    table_summary: tuple[TableRow, ...] = ()
    concept_explanation: str | None = None
    formula_derivation: str | None = None
    applications: tuple[str, ...] = ()
    common_mistakes: tuple[str, ...] = ()
    summary_table: tuple[SummaryRow, ...] = ()


class QuizOption(_Domain):
    label: str
    text: str


class QuizItem(_Domain):
    id: str
    question: str
    options: tuple[QuizOption, ...]
    correct_index: int
    explanation: str
    difficulty: Difficulty | None = None


class Flashcard(_Domain):
    id: str
    front: str
    back: str
    tag: str | None = None


class LearningAsset(_Domain):
    title: str
    notes: tuple[NoteSection, ...]
    quizzes: tuple[QuizItem, ...]
    flashcards: tuple[Flashcard, ...]
    summary_for_chat: str

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
