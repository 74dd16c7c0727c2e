"""
Shared aiohttp ClientSession, initialized once during FastAPI lifespan.

Reusing a single session avoids per-request TCP handshake overhead on every
remote classification and metadata fetch.

Usage:
    async with http_client.request_session() as sess:
        async with sess.post(url, json=body) as response:
            ...

The context manager yields the shared session when available, otherwise
creates and closes a temporary one (covers tests and library use without
the HTTP app).
"""

import logging
from contextlib import asynccontextmanager

import aiohttp

from realitycheck.config import settings

logger = logging.getLogger(__name__)

session: aiohttp.ClientSession | None = None


def _timeout() -> aiohttp.ClientTimeout:
    return aiohttp.ClientTimeout(total=settings.remote_timeout_sec)


async def initialize() -> None:
    global session
    session = aiohttp.ClientSession(timeout=_timeout())
    logger.info("[STARTUP] Shared HTTP session initialized")


async def close() -> None:
    global session
    if session and not session.closed:
        await session.close()
        session = None
        logger.info("[SHUTDOWN] Shared HTTP session closed")


@asynccontextmanager
async def request_session():
    """
    Yield the shared session if available, otherwise a temporary one.

    Never closes the shared session; http_client.close() handles that.
    """
    if session and not session.closed:
        yield session
    else:
        tmp = aiohttp.ClientSession(timeout=_timeout())
        try:
            yield tmp
        finally:
            await tmp.close()
