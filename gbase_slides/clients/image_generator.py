"""
Gemini slide image generator.

Builds the image prompt from the slide's scene description and the batch's
global style, attaches the reference image (if any) as inline bytes and
returns the first image part of the response.
"""

from typing import Callable, List, Optional

from google import genai
from google.genai import types

from config.settings import get_settings
from gbase_slides.clients.base import ImageGenerator
from gbase_slides.clients.gemini_client import create_client
from gbase_slides.core.errors import UnknownError
from gbase_slides.models.batch import ImageData
from gbase_slides.utils.logger import setup_logger

logger = setup_logger(__name__)

DEFAULT_STYLE = "Professional, Clean, Modern"


def build_image_prompt(
    prompt: str,
    style: Optional[str],
    language_hint: Optional[str] = None,
    has_reference: bool = False,
    aspect_ratio: str = "16:9"
) -> str:
    """Assemble the full text prompt for one slide image."""
    sections = [
        "[Task]",
        f"Generate a high-quality, high-resolution presentation slide ({aspect_ratio}).",
        "",
        "[Style Context]",
        style or DEFAULT_STYLE,
        "",
        "[Scene Description]",
        prompt,
        "",
        "[Quality & Technical Requirements]",
        "- Resolution: high resolution, extremely detailed.",
        "- Composition: balanced for a presentation slide, leave space for overlays.",
        f"- Format: {aspect_ratio} aspect ratio.",
    ]
    if language_hint:
        sections.append(f"- Language: text shown in the image MUST be in {language_hint}.")

    text = "\n".join(sections)
    if has_reference:
        text = (
            "[Image-to-Image Directive]\n"
            "Use the provided image as a strict style reference (color, layout, mood).\n"
            "Generate a NEW image based on this reference with the following content:\n\n"
            + text
        )
    return text


class GeminiImageGenerator(ImageGenerator):
    """
    ImageGenerator backed by the Gemini image model.

    Usage:
        generator = GeminiImageGenerator(api_key=key)
        image = await generator.generate(prompt, style, reference=template)
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        aspect_ratio: Optional[str] = None,
        image_size: Optional[str] = None,
        client_factory: Callable[[Optional[str]], genai.Client] = create_client
    ):
        settings = get_settings()
        self.api_key = api_key
        self.model = model or settings.IMAGE_MODEL
        self.aspect_ratio = aspect_ratio or settings.IMAGE_ASPECT_RATIO
        self.image_size = image_size or settings.IMAGE_SIZE
        self._client_factory = client_factory

    def _build_contents(
        self,
        prompt: str,
        style: str,
        reference: Optional[ImageData],
        language_hint: Optional[str]
    ) -> List[types.Part]:
        parts: List[types.Part] = []
        if reference is not None:
            parts.append(types.Part.from_bytes(data=reference.data, mime_type=reference.mime_type))
        parts.append(types.Part.from_text(text=build_image_prompt(
            prompt,
            style,
            language_hint=language_hint,
            has_reference=reference is not None,
            aspect_ratio=self.aspect_ratio
        )))
        return parts

    async def generate(
        self,
        prompt: str,
        style: str,
        reference: Optional[ImageData] = None,
        language_hint: Optional[str] = None
    ) -> ImageData:
        # Fresh client for every attempt
        client = self._client_factory(self.api_key)

        response = await client.aio.models.generate_content(
            model=self.model,
            contents=self._build_contents(prompt, style, reference, language_hint),
            config=types.GenerateContentConfig(
                response_modalities=["IMAGE", "TEXT"],
                image_config=types.ImageConfig(
                    aspect_ratio=self.aspect_ratio,
                    image_size=self.image_size
                )
            )
        )
        return extract_image(response)


def extract_image(response: types.GenerateContentResponse) -> ImageData:
    """
    Return the first inline image of a response.

    Raises:
        UnknownError: If the model answered with text only or nothing at all
    """
    text_parts = []
    for candidate in response.candidates or []:
        content = candidate.content
        for part in (content.parts if content and content.parts else []):
            if part.inline_data is not None and part.inline_data.data:
                return ImageData(
                    data=part.inline_data.data,
                    mime_type=part.inline_data.mime_type or "image/png"
                )
            if part.text:
                text_parts.append(part.text)

    if text_parts:
        logger.warning(f"Model returned text instead of image: {' '.join(text_parts)[:200]}")
        raise UnknownError("Model returned text description instead of visual image.")
    raise UnknownError("No image data found in response")
