from __future__ import annotations

from loguru import logger

from hlsrelay.config import RELAY_HOST, RELAY_PORT, RELAY_RELOAD


def run_server(app_obj):
    """Run the Uvicorn server on RELAY_HOST:RELAY_PORT.

    With RELAY_RELOAD set, uvicorn imports the app by path so it can reload it.
    """
    import uvicorn

    if RELAY_RELOAD:
        logger.info("Uvicorn reload enabled (development mode).")
        uvicorn.run(
            "hlsrelay.main:app",
            host=RELAY_HOST,
            port=RELAY_PORT,
            reload=True,
        )
    else:
        logger.info("Uvicorn reload disabled (production mode).")
        uvicorn.run(
            app_obj,
            host=RELAY_HOST,
            port=RELAY_PORT,
            reload=False,
        )


def main() -> None:
    """Console-script entry point."""
    from hlsrelay.main import app

    logger.info(f"Starting hls-relay on {RELAY_HOST}:{RELAY_PORT}")
    run_server(app)
