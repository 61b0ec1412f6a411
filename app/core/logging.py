import logging
import sys

from app.core.config import get_settings


def configure_logging() -> None:
    """
    Configure logging for the whole app.
    Call this once in FastAPI startup.
    """
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
