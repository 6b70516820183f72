from __future__ import annotations

from notra.schemas.learning_asset import (
    Flashcard,
    FlashcardPayload,
    GenerationContext,
    LearningAsset,
    LearningAssetPayload,
    NoteSection,
    NoteSectionPayload,
    QuizItem,
    QuizItemPayload,
    QuizOption,
    SummaryRow,
    TableRow,
)

_UNTITLED = {
    "document": "Untitled document",
    "audio": "Untitled audio",
    "video": "Untitled video",
}


def _map_note(n: NoteSectionPayload) -> NoteSection:
    return NoteSection(
        id=n.id,
        heading=n.heading,
        content=n.content,
        bullets=tuple(n.bullets or ()),
        example=n.example,
        table_summary=tuple(TableRow(label=r.label, value=r.value) for r in (n.table_summary or ())),
        concept_explanation=n.concept_explanation,
        formula_derivation=n.formula_derivation,
        applications=tuple(n.applications or ()),
        common_mistakes=tuple(n.common_mistakes or ()),
        summary_table=tuple(
            SummaryRow(concept=r.concept, formula=r.formula, notes=r.notes) for r in (n.summary_table or ())
        ),
    )


def _map_quiz(q: QuizItemPayload) -> QuizItem:
    return QuizItem(
        id=q.id,
        question=q.question,
        options=tuple(QuizOption(label=o.label, text=o.text) for o in q.options),
        correct_index=q.correct_index,
        explanation=q.explanation,
        difficulty=q.difficulty,
    )


def _map_flashcard(c: FlashcardPayload) -> Flashcard:
    return Flashcard(id=c.id, front=c.front, back=c.back, tag=c.tag)


def map_result(payload: LearningAssetPayload, context: GenerationContext) -> LearningAsset:
    """
    Validated model output -> domain asset.

    Required fields are copied as-is; absent optional lists become empty
    tuples so consumers never branch on presence.
    """
    title = (payload.title or "").strip() or _UNTITLED[context.content_type.value]
    return LearningAsset(
        title=title,
        notes=tuple(_map_note(n) for n in payload.notes),
        quizzes=tuple(_map_quiz(q) for q in payload.quizzes),
        flashcards=tuple(_map_flashcard(c) for c in payload.flashcards),
        summary_for_chat=payload.summary_for_chat,
    )
