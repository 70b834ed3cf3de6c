"""WebSocket channel pushing connection-state snapshots to dashboard clients.

Every message is a JSON object ``{"type": ..., "data": ...}``. A client that
connects after a transition immediately receives the latest snapshot.
"""

from __future__ import annotations

import asyncio
from typing import Any

import structlog
from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from tickerboard.models import ConnectionState

log = structlog.get_logger(__name__)

router = APIRouter()

CONNECTION_STATE = "connection_state"


class DashboardHub:
    """Tracks open dashboard sockets and fans out JSON messages."""

    def __init__(self) -> None:
        self.clients: set[WebSocket] = set()
        self.last_state: ConnectionState | None = None

    async def register(self, ws: WebSocket) -> None:
        await ws.accept()
        self.clients.add(ws)
        log.info("dashboard_client_joined", clients=len(self.clients))
        if self.last_state is not None:
            await ws.send_json(_message(CONNECTION_STATE, self.last_state.to_dict()))

    def unregister(self, ws: WebSocket) -> None:
        self.clients.discard(ws)
        log.info("dashboard_client_left", clients=len(self.clients))

    async def publish(self, kind: str, data: Any) -> int:
        """Send one message to every client. Returns how many received it.

        Clients whose send fails are dropped.
        """
        if not self.clients:
            return 0
        message = _message(kind, data)
        targets = list(self.clients)
        results = await asyncio.gather(
            *(ws.send_json(message) for ws in targets),
            return_exceptions=True,
        )
        failed = [ws for ws, result in zip(targets, results) if isinstance(result, Exception)]
        for ws in failed:
            self.clients.discard(ws)
        if failed:
            log.warning("dashboard_clients_dropped", dropped=len(failed), clients=len(self.clients))
        return len(targets) - len(failed)

    async def on_connection_state_changed(self, state: ConnectionState) -> None:
        """ConnectivityMonitor listener."""
        self.last_state = state
        await self.publish(CONNECTION_STATE, state.to_dict())


def _message(kind: str, data: Any) -> dict[str, Any]:
    return {"type": kind, "data": data}


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    hub: DashboardHub = websocket.app.state.hub
    await hub.register(websocket)
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            # Clients may send "ping" as a keepalive; anything else, binary included, is ignored
            if message.get("text") == "ping":
                await websocket.send_json(_message("pong", None))
    except WebSocketDisconnect:
        pass
    finally:
        hub.unregister(websocket)
