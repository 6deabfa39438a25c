import logging

from db_assistant.core.config import settings


def setup_logging():
    """Configure root logging once for the whole application."""
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    # The request logging middleware already writes one line per request
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
