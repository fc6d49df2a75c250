"""
Core Module for GBase Slides

Contains the building blocks of the generation pipeline: cooldown gate,
reference resolution and progress reporting. The orchestrator lives in
``gbase_slides.core.orchestrator``.
"""

from .errors import (
    ErrorKind,
    GenerationError,
    TransientServiceError,
    QuotaExhaustedError,
    InvalidRequestError,
    UnknownError,
    BatchCancelledError,
    AnalysisFailedError
)
from .cooldown_gate import CancellationToken, Clock, CooldownGate
from .progress_reporter import ProgressReporter, estimate_eta
from .reference_resolver import ReferenceResolver

__all__ = [
    # Errors
    'ErrorKind',
    'GenerationError',
    'TransientServiceError',
    'QuotaExhaustedError',
    'InvalidRequestError',
    'UnknownError',
    'BatchCancelledError',
    'AnalysisFailedError',

    # Pipeline
    'CancellationToken',
    'Clock',
    'CooldownGate',
    'ProgressReporter',
    'estimate_eta',
    'ReferenceResolver',
]
