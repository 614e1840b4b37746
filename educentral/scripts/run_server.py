#!/usr/bin/env python3
"""
Server runner script.

Starts the FastAPI application under uvicorn. ``HOST``, ``PORT`` and
``RELOAD`` environment variables override the defaults.
"""

import os
import sys

import uvicorn

from educentral.common.logger import app_logger

logger = app_logger.getChild("scripts.run_server")


def main():
    """Run the API server."""
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", 8000))
    reload_enabled = os.getenv("RELOAD", "false").lower() == "true"

    logger.info(f"Starting server on {host}:{port} (reload: {reload_enabled})")

    try:
        uvicorn.run(
            "educentral.main:app",
            host=host,
            port=port,
            reload=reload_enabled,
            log_level="info"
        )
    except Exception as e:
        logger.error(f"Error starting server: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
