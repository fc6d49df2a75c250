"""
Gemini client factory.

A new ``genai.Client`` is built for every request, retries included, so no
connection or session state is reused between quota-limited calls.
"""

from typing import Optional

from google import genai
from google.genai import types

from config.settings import get_settings
from gbase_slides.core.errors import InvalidRequestError
from gbase_slides.utils.logger import setup_logger

logger = setup_logger(__name__)


def mask_key(api_key: str) -> str:
    """Show only the last four characters of a key."""
    return f"...{api_key[-4:]}" if len(api_key) > 4 else "..."


def resolve_api_key(api_key: Optional[str] = None) -> str:
    """
    Pick the per-connection key, falling back to GEMINI_API_KEY.

    Raises:
        InvalidRequestError: If neither is configured
    """
    key = api_key or get_settings().GEMINI_API_KEY
    if not key:
        raise InvalidRequestError("API Key is missing. Please configure it in settings.")
    return key


def create_client(api_key: Optional[str] = None, timeout_seconds: Optional[int] = None) -> genai.Client:
    """Build a fresh Gemini client."""
    key = resolve_api_key(api_key)
    timeout = timeout_seconds or get_settings().GEMINI_TIMEOUT_SECONDS
    logger.debug(f"Creating Gemini client with API key {mask_key(key)}")
    return genai.Client(
        api_key=key,
        http_options=types.HttpOptions(timeout=timeout * 1000)  # milliseconds
    )
