"""
Session model for one websocket connection.

Holds the per-connection settings (API key, custom system prompt), the
uploaded reference template and the current batch. Replaces ambient UI state:
only the websocket handler mutates it.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from gbase_slides.models.batch import BatchContext, BatchSummary, ImageData
from gbase_slides.models.slides import PresentationAnalysis, StyleSuggestion


class AppState(str, Enum):
    IDLE = "idle"
    ANALYZING_STYLE = "analyzing_style"
    ANALYZING_TEXT = "analyzing_text"
    GENERATING_IMAGES = "generating_images"
    COMPLETE = "complete"
    ERROR = "error"


class PresentationSession(BaseModel):
    """State of one connected client."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: str
    state: AppState = AppState.IDLE

    # Per-connection settings
    api_key: Optional[str] = Field(None, description="Overrides GEMINI_API_KEY for this session")
    system_prompt: Optional[str] = None

    reference_template: Optional[ImageData] = None
    style_suggestions: List[StyleSuggestion] = Field(default_factory=list)

    analysis: Optional[PresentationAnalysis] = None
    batch: Optional[BatchContext] = None
    last_summary: Optional[BatchSummary] = None
    error_message: Optional[str] = None

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def set_state(self, state: AppState, error_message: Optional[str] = None) -> None:
        self.state = state
        self.error_message = error_message
        self.updated_at = datetime.now(timezone.utc)

    @property
    def is_busy(self) -> bool:
        return self.state in (AppState.ANALYZING_STYLE, AppState.ANALYZING_TEXT, AppState.GENERATING_IMAGES)

    def reset(self) -> None:
        """Discard the batch, analysis and reference template."""
        self.analysis = None
        self.batch = None
        self.last_summary = None
        self.reference_template = None
        self.style_suggestions = []
        self.set_state(AppState.IDLE)
