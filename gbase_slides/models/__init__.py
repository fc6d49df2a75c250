"""
Models Package for GBase Slides

Contains all Pydantic models for slides, batches, sessions and websocket messages.
"""

from .slides import (
    TextRichness,
    SlideTextContent,
    SlideDescriptor,
    PresentationAnalysis,
    StyleSuggestion,
    AnalysisOptions
)

from .batch import (
    JobStatus,
    ReferenceSource,
    ImageData,
    SlideJob,
    BatchContext,
    QueueStatus,
    JobOutcome,
    BatchSummary
)

from .session import AppState, PresentationSession

__all__ = [
    # Slides
    'TextRichness',
    'SlideTextContent',
    'SlideDescriptor',
    'PresentationAnalysis',
    'StyleSuggestion',
    'AnalysisOptions',

    # Batch
    'JobStatus',
    'ReferenceSource',
    'ImageData',
    'SlideJob',
    'BatchContext',
    'QueueStatus',
    'JobOutcome',
    'BatchSummary',

    # Session
    'AppState',
    'PresentationSession',
]
