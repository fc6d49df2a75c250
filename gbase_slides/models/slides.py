"""
Slide planning models.

Output of the analysis step: the detected language, the global visual style
and the ordered slide descriptors that become generation jobs.
"""

from enum import Enum
from typing import List, Literal, Optional, Union
from pydantic import BaseModel, Field


class TextRichness(str, Enum):
    """How much text the analysis model should put on each slide."""
    CONCISE = "concise"
    RICH = "rich"
    AUTO = "auto"


SlideCountOption = Union[Literal["auto"], Literal[2, 5, 8, 10, 12, 15]]


class SlideTextContent(BaseModel):
    """Text shown on the slide."""
    main_title: str = ""
    sub_title: str = ""
    body_points: List[str] = Field(default_factory=list)


class SlideDescriptor(BaseModel):
    """One planned slide as returned by the analysis model."""
    id: int = Field(..., description="Slide position assigned by the analysis model")
    title: str = Field(..., description="Functional title (e.g. 'Page 1 - Introduction')")
    visual_prompt: str = Field(..., description="Image generation prompt in the detected language")
    text_content: SlideTextContent = Field(default_factory=SlideTextContent)
    metaphor: str = ""
    mood: str = ""
    explanation: str = Field("", description="Why the slide is designed this way")
    density_mode: Optional[str] = None


class PresentationAnalysis(BaseModel):
    """Complete analysis result, consumed once per batch."""
    detected_language: str = Field(..., description="Language of the source text, e.g. 'English'")
    document_type: str = ""
    global_style_definition: str = Field(..., description="Style applied to every slide image")
    visual_coherence: str = ""
    slides: List[SlideDescriptor] = Field(default_factory=list)


class StyleSuggestion(BaseModel):
    """A prompt strategy extracted from a reference template image."""
    id: str
    label: str = Field(..., description="Short name, e.g. 'Minimalist'")
    description: str = Field(..., description="Style prompt derived from the image")


class AnalysisOptions(BaseModel):
    """User choices that shape the analysis request."""
    richness: TextRichness = TextRichness.AUTO
    slide_count: SlideCountOption = "auto"
    system_prompt: Optional[str] = None
    reference_style: Optional[str] = None
    visual_style: Optional[str] = None
