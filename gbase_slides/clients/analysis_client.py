"""
Gemini analysis client.

Turns raw text into a PresentationAnalysis (detected language, global style,
ordered slide descriptors) and extracts style suggestions from a reference
template image. Responses are requested as JSON against an explicit schema.
"""

import json
import uuid
from typing import Callable, List, Optional

from google import genai
from google.genai import types
from pydantic import ValidationError

from config.settings import get_settings
from gbase_slides.clients.base import AnalysisService
from gbase_slides.clients.gemini_client import create_client
from gbase_slides.core.errors import UnknownError
from gbase_slides.models.batch import ImageData
from gbase_slides.models.slides import (
    AnalysisOptions,
    PresentationAnalysis,
    StyleSuggestion,
    TextRichness,
)
from gbase_slides.utils.logger import setup_logger

logger = setup_logger(__name__)

AUTO_STYLE = "AUTO_STYLE_DETECT"

DEFAULT_SYSTEM_PROMPT = """Visual Narrative Designer

Turn the input document into an image-based slide deck.

1. Detect the main language of the input and set detected_language.
   Every output field (visual_prompt, text_content, explanation) MUST be written
   in that language.
2. Define one global visual style for the whole deck in global_style_definition.
3. Plan the slides. For each slide write a detailed visual_prompt, the slide
   text_content and a short explanation of the design choice.

Return strict JSON only.
"""

RICHNESS_INSTRUCTIONS = {
    TextRichness.CONCISE: "Text density: concise. Imagery dominates; main title under 8 words; no paragraphs.",
    TextRichness.RICH: "Text density: rich. Balance image and text; 3-5 bullet points or short paragraphs per slide.",
    TextRichness.AUTO: "Text density: auto. Combine several small infographic elements; detailed explanatory text is allowed.",
}

AUTO_SLIDE_COUNT_INSTRUCTION = (
    "Slide count: decide from the amount and complexity of content. "
    "Base count = 4 + number of core ideas, between 5 and 15 slides."
)

_TEXT_CONTENT_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "main_title": types.Schema(type=types.Type.STRING),
        "sub_title": types.Schema(type=types.Type.STRING),
        "body_points": types.Schema(type=types.Type.ARRAY, items=types.Schema(type=types.Type.STRING)),
    },
)

ANALYSIS_RESPONSE_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "detected_language": types.Schema(type=types.Type.STRING, description="Language of the source text"),
        "document_type": types.Schema(type=types.Type.STRING),
        "global_style_definition": types.Schema(type=types.Type.STRING, description="Global visual style"),
        "visual_coherence": types.Schema(type=types.Type.STRING, description="Coherence and slide count rationale"),
        "slides": types.Schema(
            type=types.Type.ARRAY,
            items=types.Schema(
                type=types.Type.OBJECT,
                properties={
                    "id": types.Schema(type=types.Type.INTEGER),
                    "title": types.Schema(type=types.Type.STRING),
                    "visual_prompt": types.Schema(type=types.Type.STRING),
                    "text_content": _TEXT_CONTENT_SCHEMA,
                    "metaphor": types.Schema(type=types.Type.STRING),
                    "mood": types.Schema(type=types.Type.STRING),
                    "explanation": types.Schema(type=types.Type.STRING),
                    "density_mode": types.Schema(type=types.Type.STRING),
                },
                required=["id", "title", "visual_prompt", "text_content", "metaphor", "mood", "explanation"],
            ),
        ),
    },
    required=["detected_language", "document_type", "global_style_definition", "visual_coherence", "slides"],
)

STYLE_SUGGESTION_PROMPT = (
    "Analyze the visual style of this reference slide image. "
    "Return JSON {\"suggestions\": [{\"id\", \"label\", \"description\"}]} with 3 different "
    "prompt strategies that would reproduce its style."
)


def build_style_instruction(reference_style: Optional[str], visual_style: Optional[str]) -> str:
    if reference_style and visual_style and visual_style != AUTO_STYLE:
        return (
            "Visual style (combined): use the reference template as the base and blend in the "
            f"user preference.\n[Reference template]: {reference_style}\n[User preference]: {visual_style}"
        )
    if reference_style:
        return f"Visual style (template reference): follow this style strictly.\n{reference_style}"
    if visual_style == AUTO_STYLE or not visual_style:
        return (
            "Visual style (auto): plan a new visual identity from the text's tone. "
            "The background MUST be pure white (#FFFFFF) or ultra light beige (#F8F9FA)."
        )
    return f"Visual style (custom):\n{visual_style}"


def build_system_instruction(options: AnalysisOptions) -> str:
    """Combine the base prompt with style, slide count and richness instructions."""
    if options.slide_count == "auto":
        slide_count_instruction = AUTO_SLIDE_COUNT_INSTRUCTION
    else:
        slide_count_instruction = f"Slide count: plan exactly {options.slide_count} slides."

    return "\n---\n".join([
        options.system_prompt or DEFAULT_SYSTEM_PROMPT,
        build_style_instruction(options.reference_style, options.visual_style),
        slide_count_instruction,
        RICHNESS_INSTRUCTIONS.get(options.richness, RICHNESS_INSTRUCTIONS[TextRichness.AUTO]),
    ])


class GeminiAnalysisService(AnalysisService):
    """AnalysisService backed by Gemini text and vision models."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        vision_model: Optional[str] = None,
        client_factory: Callable[[Optional[str]], genai.Client] = create_client
    ):
        settings = get_settings()
        self.api_key = api_key
        self.model = model or settings.ANALYSIS_MODEL
        self.vision_model = vision_model or settings.VISION_MODEL
        self._client_factory = client_factory

    async def analyze(self, text: str, options: AnalysisOptions) -> PresentationAnalysis:
        client = self._client_factory(self.api_key)
        response = await client.aio.models.generate_content(
            model=self.model,
            contents=text,
            config=types.GenerateContentConfig(
                system_instruction=build_system_instruction(options),
                response_mime_type="application/json",
                response_schema=ANALYSIS_RESPONSE_SCHEMA
            )
        )

        if not response.text:
            raise UnknownError("No response from analysis model")
        try:
            analysis = PresentationAnalysis.model_validate_json(response.text)
        except ValidationError as e:
            raise UnknownError(f"Analysis response did not match schema: {e}") from e

        logger.info(
            f"Analysis complete: {len(analysis.slides)} slides, language={analysis.detected_language}"
        )
        return analysis

    async def analyze_reference_style(self, image: ImageData) -> List[StyleSuggestion]:
        client = self._client_factory(self.api_key)
        response = await client.aio.models.generate_content(
            model=self.vision_model,
            contents=[
                types.Part.from_bytes(data=image.data, mime_type=image.mime_type),
                types.Part.from_text(text=STYLE_SUGGESTION_PROMPT),
            ],
            config=types.GenerateContentConfig(response_mime_type="application/json")
        )
        return parse_style_suggestions(response.text or "{}")


def parse_style_suggestions(raw: str) -> List[StyleSuggestion]:
    """Parse the vision model's JSON, tolerating missing ids and labels."""
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as e:
        raise UnknownError(f"Style analysis returned invalid JSON: {e}") from e

    items = payload.get("suggestions", []) if isinstance(payload, dict) else []
    suggestions = []
    for index, item in enumerate(items):
        if not isinstance(item, dict) or not item.get("description"):
            continue
        suggestions.append(StyleSuggestion(
            id=str(item.get("id") or f"style_{uuid.uuid4().hex[:6]}"),
            label=item.get("label") or f"Style {index + 1}",
            description=item["description"]
        ))
    return suggestions
