import logging
import os
import sys

import uvicorn

# Configure logging to stdout until the app's own logging takes over
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler(sys.stdout)]
)
logger = logging.getLogger(__name__)

# Add the src directory to Python path
current_dir = os.path.dirname(os.path.abspath(__file__))
src_path = os.path.join(current_dir, 'src')
sys.path.insert(0, src_path)


def main() -> None:
    from dentalsync.core.config import get_settings
    from dentalsync.core.exceptions import ConfigurationError

    try:
        settings = get_settings()
    except ConfigurationError as ce:
        logger.error(f"Configuration validation failed: {ce.message} {ce.details}")
        logger.error("Check MONGO_URI and RECONCILE_* variables")
        sys.exit(1)

    port = int(os.environ.get("PORT", settings.port))
    host = os.environ.get("HOST", settings.host)
    logger.info(f"Starting {settings.app_name} v{settings.app_version} on {host}:{port} ({settings.app_env})")
    logger.info(f"  MONGO_URI: {'set' if os.environ.get('MONGO_URI') else 'not set (using default)'}")
    logger.info(f"  MONGO_DB_NAME: {settings.database.db_name}")

    uvicorn.run(
        "dentalsync.app:app",
        host=host,
        port=port,
        workers=1,
        log_level=settings.logging.level.lower(),
        access_log=True,
        timeout_keep_alive=75,
        timeout_graceful_shutdown=30,
    )


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        logger.info("Shutting down due to keyboard interrupt")
        sys.exit(0)
