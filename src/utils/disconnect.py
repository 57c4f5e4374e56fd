"""Abandon work when the HTTP client goes away."""
import asyncio
from typing import Awaitable, TypeVar

from fastapi import Request

from src.core.exceptions import ClientDisconnectedError
from src.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


async def _wait_for_disconnect(request: Request, poll_seconds: float) -> None:
    while not await request.is_disconnected():
        await asyncio.sleep(poll_seconds)


async def run_until_disconnected(request: Request, work: Awaitable[T], poll_seconds: float = 0.5) -> T:
    """Await ``work``, cancelling it if the client disconnects first.

    Raises ClientDisconnectedError in that case; exceptions from ``work``
    propagate unchanged.
    """
    task = asyncio.ensure_future(work)
    watcher = asyncio.ensure_future(_wait_for_disconnect(request, poll_seconds))
    try:
        await asyncio.wait({task, watcher}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        if not task.done():
            task.cancel()
        watcher.cancel()

    if task.cancelled() or not task.done():
        logger.info("client_disconnected_request_cancelled", path=request.url.path)
        raise ClientDisconnectedError()
    return task.result()
