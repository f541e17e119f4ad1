#!/usr/bin/env python3
"""FastAPI server runner."""

import uvicorn
import structlog

from parimutuel_core.logging.setup import setup_logging_from_config
from parimutuel_core.api.app import app, config

logger = structlog.get_logger()


def main():
    """Run the FastAPI server."""
    setup_logging_from_config(config.logging)

    logger.info("Starting FastAPI server", host=config.api.host, port=config.api.port)

    try:
        uvicorn.run(
            app,
            host=config.api.host,
            port=config.api.port,
            log_config=None  # Use our structlog setup
        )
    except Exception as e:
        logger.error("Failed to start server", error=str(e))
        raise


if __name__ == "__main__":
    main()
