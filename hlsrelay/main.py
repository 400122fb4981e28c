from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger

from hlsrelay._version import __version__
from hlsrelay.api.proxy import router as proxy_router
from hlsrelay.config import (
    RELAY_MAX_REDIRECTS,
    RELAY_PUBLIC_HOST,
    RELAY_UPSTREAM_CONNECT_TIMEOUT,
    RELAY_UPSTREAM_STATUS_PASSTHROUGH,
    RELAY_UPSTREAM_TIMEOUT,
    RELAY_USE_TLS,
    UPSTREAM_PROXY_URL,
)
from hlsrelay.utils.logger import mask_url


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"hls-relay {__version__} starting.")
    logger.info(
        f"Upstream: max_redirects={RELAY_MAX_REDIRECTS}, timeout={RELAY_UPSTREAM_TIMEOUT}s "
        f"(connect {RELAY_UPSTREAM_CONNECT_TIMEOUT}s), proxy={mask_url(UPSTREAM_PROXY_URL) or 'off'}"
    )
    logger.info(
        f"Relay references: host={RELAY_PUBLIC_HOST or '<request host>'}, "
        f"tls={'auto' if RELAY_USE_TLS is None else RELAY_USE_TLS}, "
        f"status_passthrough={RELAY_UPSTREAM_STATUS_PASSTHROUGH}"
    )
    yield
    logger.info("hls-relay shutting down.")


app = FastAPI(title="hls-relay", version=__version__, lifespan=lifespan)
app.include_router(proxy_router)  # /api/proxy


# Healthcheck endpoint for CI/CD and monitoring
@app.get("/health")
async def healthcheck():
    return {"status": "ok"}


if __name__ == "__main__":
    from hlsrelay.cli import run_server

    logger.info("Starting hls-relay FastAPI server...")
    run_server(app)
