from __future__ import annotations

from dataclasses import dataclass, replace

from notra.schemas.learning_asset import ContentType, GenerationContext


@dataclass(frozen=True)
class Prompt:
    system: str
    user: str


LEARNING_ASSET_SYSTEM = (
    "You are a helpful educational assistant that generates structured learning materials in JSON format. "
    "Always return valid JSON."
)

LEARNING_ASSET_STRICT_SYSTEM = (
    "You are a helpful educational assistant that generates structured learning materials in JSON format. "
    "Your previous answer could not be used. Return ONLY complete, syntactically valid JSON: no markdown "
    "fences, no commentary, no trailing commas. Before responding, verify that every required field is "
    "present: title, notes (at least one, each with id, heading, content), quizzes (at least one, each with "
    "id, question, 2-6 options with label and text, an integer correctIndex pointing at an existing option, "
    "explanation), flashcards (at least one, each with id, front, back) and summaryForChat (at least one "
    "full sentence)."
)

# Counts are fixed so the prompt structure is the same on every call.
MIN_NOTES, MAX_NOTES = 6, 10
MIN_QUIZZES, MAX_QUIZZES = 6, 10
MIN_FLASHCARDS, MAX_FLASHCARDS = 12, 15

LEARNING_ASSET_SCHEMA_EXAMPLE = r"""{
  "title": "A concise, descriptive title for this content",
  "notes": [
    {
      "id": "note-1",
      "heading": "Main Section Title",
      "content": "Detailed explanation paragraph. Use **bold** for emphasis. Include formulas like $formula$ or $$block formula$$.",
      "bullets": ["Key point 1", "Key point 2", "Key point 3"],
      "example": "Example: step-by-step example with explanation",
      "tableSummary": [
        {"label": "Concept 1", "value": "Definition 1"},
        {"label": "Concept 2", "value": "Definition 2"}
      ],
      "conceptExplanation": "Enhanced explanation of the core concept",
      "formulaDerivation": "Step-by-step formula derivation in LaTeX: $E = mc^2$",
      "applications": ["Application 1", "Application 2"],
      "commonMistakes": ["Common mistake 1", "Common mistake 2"],
      "summaryTable": [
        {"concept": "Concept A", "formula": "$f(x) = x^2$", "notes": "Notes about concept A"}
      ]
    }
  ],
  "quizzes": [
    {
      "id": "quiz-1",
      "question": "Clear, concise question text",
      "options": [
        {"label": "A", "text": "Option A text"},
        {"label": "B", "text": "Option B text"},
        {"label": "C", "text": "Option C text"},
        {"label": "D", "text": "Option D text"}
      ],
      "correctIndex": 0,
      "explanation": "Why this answer is correct and why the others are wrong",
      "difficulty": "medium"
    }
  ],
  "flashcards": [
    {
      "id": "card-1",
      "front": "Concise question or term",
      "back": "Clear, academic definition or explanation",
      "tag": "Category or topic"
    }
  ],
  "summaryForChat": "2-3 sentence summary of key concepts for AI chat context"
}"""

STRUCTURE_REQUIREMENTS = f"""REQUIREMENTS:

1. NOTES ({MIN_NOTES}-{MAX_NOTES} sections):
   - Each note has a clear, descriptive heading (## for main sections, ### for subsections in Markdown)
   - Rich content: full paragraphs that explain concepts, at least 3-5 sentences per section
   - Formulas in LaTeX: $inline$ or $$block$$
   - Worked examples with step-by-step solutions where applicable
   - Markdown tables or tableSummary/summaryTable when comparing concepts
   - Applications and common mistakes where relevant

2. QUIZZES ({MIN_QUIZZES}-{MAX_QUIZZES} questions):
   - Multiple choice with 4 options labelled A, B, C, D
   - correctIndex is 0-based and MUST point to the correct option
   - Questions test understanding and application, not memorization
   - Explanation covers why the answer is right and why the others are wrong
   - Mix of easy, medium and hard difficulty

3. FLASHCARDS ({MIN_FLASHCARDS}-{MAX_FLASHCARDS} cards):
   - Front: concise question or term
   - Back: academic definition or explanation (2-3 sentences)
   - Tag: category or topic

4. SUMMARY_FOR_CHAT:
   - 2-3 sentences summarizing the key concepts, informative enough for chat context

FORMATTING:
- Use **bold** for key terms and ## / ### headings inside content
- Use $...$ for inline math and $$...$$ for block math
- Be faithful to the source; do not invent facts"""


_TYPE_INSTRUCTIONS = {
    ContentType.document: (
        "Focus on extracting key concepts, definitions, and structured information from the document. "
        "Provide comprehensive analysis and detailed explanations."
    ),
    ContentType.audio: (
        "Focus on capturing the main points, explanations, and key takeaways from the lecture. "
        "Organize content logically and provide detailed notes. Ignore filler words and repetitions "
        "typical of speech."
    ),
    ContentType.video: (
        "Focus on summarizing key moments, concepts discussed, and important information presented in "
        "the video. Create comprehensive study materials."
    ),
}


def describe_content(context: GenerationContext) -> str:
    meta = context.metadata
    if context.content_type == ContentType.audio:
        if meta.duration:
            minutes = max(1, round(meta.duration / 60))
            return f"audio lecture/recording (approximately {minutes} minutes)"
        return "audio lecture/recording"
    if context.content_type == ContentType.video:
        if meta.video_url:
            return f"video content from {meta.platform or 'video platform'}: {meta.video_url}"
        if meta.platform:
            return f"video content from {meta.platform}"
        return "video content"
    if meta.file_name:
        return f"document file: {meta.file_name}"
    return "document"


def build_prompt(text: str, context: GenerationContext, strategy_note: str = "") -> Prompt:
    """
    Single instruction block for the learning asset call.

    Only the framing, the working text and the strategy note vary between
    calls; requirements and the schema example are constants.
    """
    parts = [
        "You are an expert AI learning assistant. Transform the following "
        f"{describe_content(context)} into comprehensive, well-structured, academically rigorous study materials.",
        _TYPE_INSTRUCTIONS[context.content_type],
    ]
    if context.metadata.title:
        parts.append(f"Title hint: {context.metadata.title}")

    content_block = f"Content to analyze:\n{text}"
    if strategy_note:
        content_block = f"{content_block}\n\n{strategy_note}"
    parts.append(content_block)

    parts.append(STRUCTURE_REQUIREMENTS)
    parts.append(
        "Return a JSON object with EXACTLY this structure (optional note fields may be omitted "
        "when they do not apply):\n" + LEARNING_ASSET_SCHEMA_EXAMPLE
    )

    return Prompt(system=LEARNING_ASSET_SYSTEM, user="\n\n".join(parts))


def with_strict_instruction(prompt: Prompt) -> Prompt:
    return replace(prompt, system=LEARNING_ASSET_STRICT_SYSTEM)


# ----------------------------
# Two-stage summarization
# ----------------------------

SUMMARY_SYSTEM = (
    "You are an expert academic summarizer. You compress long study material into a dense, faithful "
    "summary that another assistant will turn into notes, quizzes and flashcards."
)

SUMMARY_USER_TEMPLATE = """Summarize the following {description} into a comprehensive intermediate summary of about {target_chars} characters.

Hard rules:
- Preserve EVERY major topic, in the original order
- Keep all definitions, formulas (in LaTeX, $...$), key numbers and worked examples
- Prefer dense paragraphs grouped by topic; no introduction or closing remarks
- Plain text only, no JSON

Content:
{text}"""


def build_summary_prompt(text: str, context: GenerationContext, target_chars: int) -> Prompt:
    return Prompt(
        system=SUMMARY_SYSTEM,
        user=SUMMARY_USER_TEMPLATE.format(
            description=describe_content(context),
            target_chars=f"{target_chars:,}",
            text=text,
        ),
    )
