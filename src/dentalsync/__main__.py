"""Run the API with uvicorn: ``python -m dentalsync``."""

import logging
import sys

import uvicorn

from .core.config import get_settings
from .core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def main() -> None:
    try:
        settings = get_settings()
    except ConfigurationError as ce:
        logging.basicConfig(level=logging.INFO)
        logger.error(f"Configuration validation failed: {ce.message} {ce.details}")
        sys.exit(1)

    uvicorn.run(
        "dentalsync.app:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.logging.level.lower(),
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()
