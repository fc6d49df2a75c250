"""
Centralized Logfire configuration for GBase Slides.
"""
import os

import logfire

_configured = False


def configure_logfire(force: bool = False) -> bool:
    """
    Configure Logfire once per process.

    Args:
        force: Force reconfiguration even if already configured

    Returns:
        bool: True if successfully configured
    """
    global _configured

    if _configured and not force:
        return True

    token = os.getenv("LOGFIRE_TOKEN")
    if not token:
        # Silently disable if no token
        return False

    try:
        logfire.configure(
            token=token,
            service_name="gbase-slides",
            service_version=os.getenv("APP_VERSION", "dev"),
            console=False
        )
    except Exception as e:
        print(f"ERROR: Logfire configuration failed: {e}")
        _configured = False
        return False

    _configured = True
    logfire.info("Logfire configured successfully")
    return True


def is_configured() -> bool:
    """Check if Logfire is configured."""
    return _configured


def instrument_app(app) -> bool:
    """Instrument the FastAPI app if Logfire is configured."""
    if not configure_logfire():
        return False

    try:
        logfire.instrument_fastapi(app)
    except Exception as e:
        logfire.error(f"Failed to instrument FastAPI: {e}")
        return False
    return True
