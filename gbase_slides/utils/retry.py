"""
Retry utility with error classification and exponential backoff.

Only overload conditions are worth waiting for. Quota and invalid-argument
failures are raised immediately since retrying them burns quota and time;
unclassified failures get a single second chance.
"""

import asyncio
import json
import random
from typing import Awaitable, Callable, Optional, TypeVar, Union

from gbase_slides.core.errors import (
    ERROR_TYPES,
    BatchCancelledError,
    ErrorKind,
    GenerationError,
)
from gbase_slides.utils.logger import setup_logger

logger = setup_logger(__name__)

T = TypeVar('T')

QUOTA_MARKERS = ("limit: 0", "quota exceeded", "resource_exhausted", "rate limit", "rate-limit")
INVALID_MARKERS = ("invalid_argument", "aspect ratio")
OVERLOAD_MARKERS = ("overloaded", "unavailable")


def extract_status(error: BaseException) -> Optional[Union[int, str]]:
    """
    Pull an HTTP status or RPC status name off an exception.

    Understands google-genai APIError (``code``/``status``), httpx errors
    (``response.status_code``) and plain ``status``/``status_code`` attributes.
    """
    if isinstance(error, GenerationError):
        return error.status

    for attr in ("code", "status_code", "status"):
        value = getattr(error, attr, None)
        if isinstance(value, (int, str)) and not isinstance(value, bool) and value != "":
            return value

    response = getattr(error, "response", None)
    status_code = getattr(response, "status_code", None)
    if isinstance(status_code, int):
        return status_code
    return None


def extract_message(error: BaseException) -> str:
    message = getattr(error, "message", None)
    if isinstance(message, str) and message:
        return message
    text = str(error)
    if text:
        return text
    try:
        return json.dumps(getattr(error, "details", None) or repr(error))
    except (TypeError, ValueError):
        return repr(error)


def classify_error(error: BaseException) -> ErrorKind:
    """
    Map a raw failure to an ErrorKind.

    Order matters: quota signals win over invalid-argument signals, which win
    over overload signals.
    """
    if isinstance(error, GenerationError):
        return error.kind

    status = extract_status(error)
    status_text = str(status).upper() if status is not None else ""
    message = extract_message(error).lower()

    if status == 429 or status_text == "RESOURCE_EXHAUSTED" or any(m in message for m in QUOTA_MARKERS):
        return ErrorKind.QUOTA_EXHAUSTED

    if status == 400 or status_text == "INVALID_ARGUMENT" or any(m in message for m in INVALID_MARKERS):
        return ErrorKind.INVALID_REQUEST

    if status == 503 or status_text == "UNAVAILABLE" or any(m in message for m in OVERLOAD_MARKERS):
        return ErrorKind.TRANSIENT

    return ErrorKind.UNKNOWN


def to_generation_error(error: BaseException, kind: ErrorKind, attempts: int) -> GenerationError:
    """Wrap a raw failure in the typed error for its kind."""
    if isinstance(error, GenerationError):
        error.attempts = attempts
        return error
    return ERROR_TYPES[kind](extract_message(error), status=extract_status(error), attempts=attempts)


class RetryPolicy:
    """
    Bounded retry loop driven by error classification.

    Transient failures are retried up to ``max_retries`` times; the delay
    starts at ``initial_delay`` and doubles after each retry, plus a jitter
    drawn from ``[0, min(max_jitter, initial_delay))`` so consecutive delays
    stay strictly increasing. Unknown failures are retried ``unknown_retries``
    times on the same schedule. With a cancel token, backoff waits are slept
    in ``tick_seconds`` steps and end early once the token is cancelled.

    Usage:
        policy = RetryPolicy(max_retries=2, initial_delay=2.0)
        image = await policy.execute(lambda: generator.generate(prompt, style))
    """

    def __init__(
        self,
        max_retries: int = 2,
        initial_delay: float = 1.5,
        max_jitter: float = 0.5,
        unknown_retries: int = 1,
        operation_name: str = "Gemini call",
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
        rng: Optional[random.Random] = None,
        tick_seconds: float = 1.0
    ):
        if tick_seconds <= 0:
            raise ValueError("tick_seconds must be > 0")
        if max_retries < 0 or unknown_retries < 0:
            raise ValueError("Retry counts must be >= 0")
        if initial_delay < 0 or max_jitter < 0:
            raise ValueError("Delays must be >= 0")
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self.max_jitter = max_jitter
        self.unknown_retries = unknown_retries
        self.operation_name = operation_name
        self._sleep = sleep or asyncio.sleep
        self.tick_seconds = tick_seconds
        self._rng = rng or random.Random()

    async def _backoff(self, seconds: float, cancel_token=None) -> None:
        """Sleep ``seconds``; with a token, in ticks so a reset cuts the wait short."""
        if cancel_token is None:
            await self._sleep(seconds)
            return

        remaining = seconds
        while remaining > 1e-9:
            cancel_token.raise_if_cancelled()
            step = min(self.tick_seconds, remaining)
            await self._sleep(step)
            remaining -= step
        cancel_token.raise_if_cancelled()

    def _jitter(self) -> float:
        bound = min(self.max_jitter, self.initial_delay)
        if bound <= 0:
            return 0.0
        # uniform() may return the upper bound; keep it strictly below
        return min(self._rng.uniform(0, bound), bound * 0.999)

    async def execute(
        self,
        call: Callable[[], Awaitable[T]],
        cancel_token=None,
        on_attempt: Optional[Callable[[int], None]] = None
    ) -> T:
        """
        Run ``call`` until it succeeds or the policy gives up.

        Args:
            call: Zero-argument coroutine function performing one attempt
            cancel_token: Optional CancellationToken checked before each attempt
            on_attempt: Called with the 1-based attempt number before each attempt

        Returns:
            Result from the successful attempt

        Raises:
            GenerationError: Typed error for the final failure
            BatchCancelledError: If the token was cancelled between attempts or
                during a backoff wait
        """
        attempt = 0
        transient_retries = 0
        unknown_retries = 0
        delay = self.initial_delay

        while True:
            if cancel_token is not None and cancel_token.cancelled:
                raise BatchCancelledError(f"{self.operation_name} cancelled before attempt {attempt + 1}")

            attempt += 1
            if on_attempt is not None:
                on_attempt(attempt)

            try:
                result = await call()
            except Exception as e:
                kind = classify_error(e)

                if kind == ErrorKind.TRANSIENT and transient_retries < self.max_retries:
                    transient_retries += 1
                elif kind == ErrorKind.UNKNOWN and unknown_retries < self.unknown_retries:
                    unknown_retries += 1
                else:
                    if kind == ErrorKind.QUOTA_EXHAUSTED:
                        logger.warning(f"{self.operation_name} hit quota limit, not retrying: {extract_message(e)}")
                    elif kind == ErrorKind.INVALID_REQUEST:
                        logger.error(f"{self.operation_name} rejected as invalid request: {extract_message(e)}")
                    else:
                        logger.error(
                            f"{self.operation_name} failed after {attempt} attempt(s) "
                            f"({kind.value}): {extract_message(e)}"
                        )
                    raise to_generation_error(e, kind, attempt) from e

                wait = delay + self._jitter()
                delay *= 2
                logger.warning(
                    f"{self.operation_name} failed ({kind.value}, status={extract_status(e)}) "
                    f"on attempt {attempt}. Retrying in {wait:.2f}s..."
                )
                await self._backoff(wait, cancel_token)
                continue

            if attempt > 1:
                logger.info(f"{self.operation_name} succeeded after {attempt - 1} retries")
            return result
