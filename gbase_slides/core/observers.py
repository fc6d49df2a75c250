"""
Observer callback types used by the orchestrator.

Callbacks may be plain functions or coroutine functions; ``emit`` awaits the
result when needed so hosts can push updates straight onto a websocket.
"""

import inspect
from typing import Any, Awaitable, Callable, Optional, Union

from gbase_slides.models.batch import BatchSummary, QueueStatus, SlideJob

ProgressCallback = Callable[[Optional[QueueStatus]], Union[None, Awaitable[None]]]
JobUpdateCallback = Callable[[SlideJob], Union[None, Awaitable[None]]]
BatchCompleteCallback = Callable[[BatchSummary], Union[None, Awaitable[None]]]
TickCallback = Callable[[int], Union[None, Awaitable[None]]]


async def emit(callback: Optional[Callable[..., Any]], *args: Any) -> None:
    """Invoke an optional observer, awaiting it if it returns an awaitable."""
    if callback is None:
        return
    result = callback(*args)
    if inspect.isawaitable(result):
        await result
