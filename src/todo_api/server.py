"""
Entry point that serves the API with uvicorn.

Usage:
    todo-api
    python -m todo_api.server
"""
from __future__ import annotations

import logging

from .logging_utils import configure_logging
from .main import create_app
from .settings import get_settings

logger = logging.getLogger(__name__)


def main() -> None:
    """Run the HTTP server on the configured host and port."""
    import uvicorn

    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info(
        "Starting on %s:%s (PERSISTENCE_BACKEND=%s)",
        settings.host,
        settings.port,
        settings.persistence_backend,
    )
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
