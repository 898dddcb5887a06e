"""
Pushes live query snapshots to WebSocket clients.
"""
import asyncio
import logging
from typing import Optional

from fastapi import WebSocket, status
from fastapi.encoders import jsonable_encoder

from minglr.api.deps import session_from_token
from minglr.core.errors import MinglrError
from minglr.core.session import SessionContext
from minglr.core.store import DocumentStore, SnapshotFeed

logger = logging.getLogger(__name__)


async def accept_with_token(websocket: WebSocket, token: str, store: DocumentStore) -> Optional[SessionContext]:
    """
    Authenticate a WebSocket from its ``token`` query parameter.

    Returns:
        Optional[SessionContext]: The session, or None after closing the socket with a policy violation.
    """
    try:
        session = await session_from_token(token, store)
    except MinglrError as e:
        logger.info("Rejected WebSocket connection: %s", e.detail)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return None
    await websocket.accept()
    return session


async def stream_feed(websocket: WebSocket, feed: SnapshotFeed) -> None:
    """
    Send every snapshot as JSON until the client disconnects.

    If the feed fails, the socket is closed with an internal error.
    """
    async def pump() -> None:
        async for snapshot in feed:
            await websocket.send_json(jsonable_encoder(snapshot))

    async def drain() -> None:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                return

    sender = asyncio.create_task(pump())
    receiver = asyncio.create_task(drain())
    try:
        done, _ = await asyncio.wait({sender, receiver}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in (sender, receiver):
            task.cancel()
        await asyncio.gather(sender, receiver, return_exceptions=True)

    if sender in done and sender.exception() is not None:
        logger.error("Live feed failed: %r", sender.exception())
        if receiver not in done:
            await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
