"""
Abstract interfaces for the external collaborators.

The orchestrator only depends on these; the Gemini implementations live in
``image_generator.py`` and ``analysis_client.py``.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from gbase_slides.models.batch import ImageData
from gbase_slides.models.slides import AnalysisOptions, PresentationAnalysis, StyleSuggestion


class ImageGenerator(ABC):
    """Renders one slide image per call."""

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        style: str,
        reference: Optional[ImageData] = None,
        language_hint: Optional[str] = None
    ) -> ImageData:
        """
        Generate a slide image.

        Raises:
            Exception: Any failure; the RetryPolicy classifies it
        """


class AnalysisService(ABC):
    """Plans slides from raw text."""

    @abstractmethod
    async def analyze(self, text: str, options: AnalysisOptions) -> PresentationAnalysis:
        """Return the detected language, global style and ordered slides."""

    @abstractmethod
    async def analyze_reference_style(self, image: ImageData) -> List[StyleSuggestion]:
        """Extract style prompt strategies from a template image."""
