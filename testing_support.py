"""
Shared fakes for the GBase Slides test suite.

ManualClock advances virtual time instead of sleeping, so a 65 second
cooldown runs instantly while every timestamp stays exact.
"""

import asyncio
from typing import Dict, List, Optional

from gbase_slides.clients.base import AnalysisService, ImageGenerator
from gbase_slides.core.cooldown_gate import Clock
from gbase_slides.models.batch import BatchContext, ImageData, SlideJob
from gbase_slides.models.slides import (
    AnalysisOptions,
    PresentationAnalysis,
    SlideDescriptor,
    StyleSuggestion,
)


class ManualClock(Clock):
    """Virtual clock: ``sleep`` moves time forward and yields to the loop."""

    def __init__(self, start: float = 0.0):
        self.current = start
        self.sleeps: List[float] = []

    def now(self) -> float:
        return self.current

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.current += seconds
        await asyncio.sleep(0)


class FakeApiError(Exception):
    """Mimics google-genai APIError: numeric ``code``, RPC ``status`` and ``message``."""

    def __init__(self, code: int, status: str = "", message: str = ""):
        super().__init__(f"{code} {status}. {message}")
        self.code = code
        self.status = status
        self.message = message


def overloaded() -> FakeApiError:
    return FakeApiError(503, "UNAVAILABLE", "The model is overloaded. Please try again later.")


def quota_exceeded() -> FakeApiError:
    return FakeApiError(429, "RESOURCE_EXHAUSTED", "Quota exceeded for metric: generate_requests, limit: 0")


def invalid_argument() -> FakeApiError:
    return FakeApiError(400, "INVALID_ARGUMENT", "Unsupported aspect ratio")


class FakeImageGenerator(ImageGenerator):
    """
    Records every call and replays scripted failures.

    ``script`` maps a prompt to the outcomes of its successive attempts: an
    exception is raised, ``None`` succeeds. Attempts beyond the script succeed.
    """

    def __init__(
        self,
        clock: Optional[ManualClock] = None,
        script: Optional[Dict[str, List[Optional[Exception]]]] = None,
        duration: float = 0.0
    ):
        self.clock = clock or ManualClock()
        self.script = {prompt: list(outcomes) for prompt, outcomes in (script or {}).items()}
        self.duration = duration
        self.calls: List[dict] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def generate(
        self,
        prompt: str,
        style: str,
        reference: Optional[ImageData] = None,
        language_hint: Optional[str] = None
    ) -> ImageData:
        self.calls.append({
            "prompt": prompt,
            "style": style,
            "reference": reference,
            "language_hint": language_hint,
            "started_at": self.clock.now(),
        })
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.duration:
                await self.clock.sleep(self.duration)
            outcomes = self.script.get(prompt)
            outcome = outcomes.pop(0) if outcomes else None
            if outcome is not None:
                raise outcome
            return ImageData(data=f"image:{prompt}".encode("utf-8"))
        finally:
            self.in_flight -= 1

    def prompts(self) -> List[str]:
        return [call["prompt"] for call in self.calls]


class FakeAnalysisService(AnalysisService):
    """Returns a fixed analysis, or raises the scripted errors first."""

    def __init__(
        self,
        analysis: Optional[PresentationAnalysis] = None,
        errors: Optional[List[Exception]] = None,
        suggestions: Optional[List[StyleSuggestion]] = None
    ):
        self.analysis = analysis or make_analysis(3)
        self.errors = list(errors or [])
        self.suggestions = suggestions or []
        self.calls = 0

    async def analyze(self, text: str, options: AnalysisOptions) -> PresentationAnalysis:
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.analysis

    async def analyze_reference_style(self, image: ImageData) -> List[StyleSuggestion]:
        if self.errors:
            raise self.errors.pop(0)
        return self.suggestions


def make_analysis(slide_count: int, language: str = "English") -> PresentationAnalysis:
    return PresentationAnalysis(
        detected_language=language,
        document_type="report",
        global_style_definition="Flat vector, white background, teal accents",
        visual_coherence="One idea per slide",
        slides=[
            SlideDescriptor(
                id=i + 1,
                title=f"Page {i + 1}",
                visual_prompt=f"scene {i + 1}"
            )
            for i in range(slide_count)
        ]
    )


def make_batch(
    job_count: int,
    interval: float = 65.0,
    user_template: Optional[ImageData] = None
) -> BatchContext:
    return BatchContext(
        jobs=[SlideJob(id=str(i + 1), prompt=f"scene {i + 1}") for i in range(job_count)],
        global_style="Flat vector, white background",
        language_hint="English",
        user_template=user_template,
        min_interval_seconds=interval
    )
