"""WebSocket transport for the chat relay.

Host apps call these to register the static assets and the /ws endpoint.
Frames are JSON text: ``{"event": "<name>", "data": <payload>}``.
"""

import asyncio
import json
import logging
import os
from typing import Any
from uuid import uuid4

from starlette.websockets import WebSocket, WebSocketDisconnect

from .broadcast_router import BroadcastRouter
from .chat_models import EVENT_CHAT, EVENT_ERROR, EVENT_SET_NAME
from .session_registry import SessionEntry, SessionRegistry

logger = logging.getLogger(__name__)

WS_PATH = "/ws"


def get_static_path() -> str:
    """Return absolute path to the packaged browser client."""
    return os.path.join(os.path.dirname(os.path.abspath(__file__)), 'static')


async def _pump_outbox(ws: WebSocket, entry: SessionEntry, registry: SessionRegistry) -> None:
    """Write queued outbound events to the socket in order.

    A failed send unregisters the session so later broadcasts skip it.
    """
    while True:
        event = await entry.outbox.get()
        try:
            await ws.send_json(event)
        except Exception as e:
            logger.debug(f"[WS] Send to {entry.connection_id} failed: {e}")
            registry.on_disconnect(entry.connection_id)
            return


async def _handle_client_event(
    router: BroadcastRouter,
    entry: SessionEntry,
    msg: Any,
) -> None:
    """Dispatch a client WebSocket event to the appropriate handler."""
    if not isinstance(msg, dict):
        logger.warning(f"[WS] Ignoring non-object frame from {entry.connection_id}")
        return

    event = msg.get("event", "")
    data = msg.get("data")

    if event == EVENT_CHAT:
        router.submit(entry.connection_id, data)

    elif event == EVENT_SET_NAME:
        router.set_name(entry.connection_id, data)

    else:
        logger.warning(f"[WS] Unknown event: {event}")


def build_ws_router(router: BroadcastRouter):
    """Build a FastAPI APIRouter with the chat WebSocket endpoint."""
    from fastapi import APIRouter

    api_router = APIRouter()

    @api_router.websocket(WS_PATH)
    async def websocket_chat(ws: WebSocket):
        connection_id = uuid4().hex
        registry = router.registry
        # Events queued before accept() are flushed by the writer afterwards
        entry = registry.on_connect(connection_id)
        writer = None

        try:
            await ws.accept()
            writer = asyncio.create_task(_pump_outbox(ws, entry, registry))
            while True:
                raw = await ws.receive_text()
                try:
                    msg = json.loads(raw)
                except json.JSONDecodeError:
                    entry.deliver({"event": EVENT_ERROR, "data": {"message": "Invalid JSON"}})
                    continue

                try:
                    await _handle_client_event(router, entry, msg)
                except Exception as e:
                    logger.error(f"[WS] Error handling event from {connection_id}: {type(e).__name__}: {e}")

        except WebSocketDisconnect:
            pass
        except Exception as e:
            logger.error(f"[WS] Error in connection {connection_id}: {type(e).__name__}: {e}")
        finally:
            registry.on_disconnect(connection_id)
            if writer is not None:
                writer.cancel()

    return api_router
