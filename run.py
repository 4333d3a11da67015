#!/usr/bin/env python3
"""
Escrow Lending System Entry Point

Starts the FastAPI server with the escrow lending system.
"""

import sys

from escrow_lending.api import run_server
from escrow_lending.api.dependencies import get_lending_system
from escrow_lending.config import get_config
from escrow_lending.logging_config import setup_logging


if __name__ == "__main__":
    config = get_config()
    logger = setup_logging(config.log_level, config.log_format)
    logger.info(f"Starting Escrow Lending API on {config.api_host}:{config.api_port}")

    try:
        get_lending_system()
        run_server(
            host=config.api_host,
            port=config.api_port,
            log_level=config.log_level.lower()
        )
    except KeyboardInterrupt:
        logger.info("Shutting down Escrow Lending API")
    except Exception as e:
        logger.error(f"Error starting server: {e}")
        sys.exit(1)
