import logging

import uvicorn

from golden_palace.core.config import get_settings, setup_logging


logger = logging.getLogger(__name__)


def run_server() -> None:
    """Run the reservation API with uvicorn."""
    setup_logging()
    settings = get_settings()

    logger.info("Server starting at %s:%s", settings.HOST, settings.PORT)
    uvicorn.run(
        "golden_palace.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
        reload=not settings.is_production,
    )


if __name__ == "__main__":
    run_server()
