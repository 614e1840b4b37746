"""
Main application entry point for the EduCentral assessment service.

Usage:
    - Direct: python -m educentral.main
    - ASGI server: uvicorn educentral.main:app
"""

import os

from educentral.app import create_app
from educentral.common.logger import app_logger

logger = app_logger.getChild("main")

app = create_app()

# Entry point for running the application directly
if __name__ == "__main__":
    import uvicorn

    host = os.environ.get("HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", 8000))
    reload_enabled = os.environ.get("RELOAD", "false").lower() == "true"

    logger.info(f"Starting server on {host}:{port} (reload: {reload_enabled})")

    uvicorn.run(
        "educentral.main:app",
        host=host,
        port=port,
        reload=reload_enabled,
        log_level="info"
    )
