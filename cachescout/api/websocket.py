"""
WebSocket API - Live agent events per run.
"""

import asyncio
import json
import logging
from datetime import datetime
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from ..core.events import AgentEvent


logger = logging.getLogger("cachescout.api.websocket")

router = APIRouter()


class ConnectionManager:
    """Manages WebSocket connections per run."""

    def __init__(self):
        self.active_connections: dict[str, list[WebSocket]] = {}

    async def connect(self, websocket: WebSocket, run_id: str) -> None:
        """Accept a client watching run_id."""
        await websocket.accept()
        self.active_connections.setdefault(run_id, []).append(websocket)

    def disconnect(self, websocket: WebSocket, run_id: str) -> None:
        """Forget a client; the run entry goes when its last client leaves."""
        connections = self.active_connections.get(run_id, [])
        if websocket in connections:
            connections.remove(websocket)
        if not connections:
            self.active_connections.pop(run_id, None)

    async def broadcast(self, run_id: str, message: dict[str, Any]) -> None:
        """Send a message to every connection watching a run."""
        message_json = json.dumps(message, default=str)
        for connection in list(self.active_connections.get(run_id, [])):
            try:
                await connection.send_text(message_json)
            except (WebSocketDisconnect, RuntimeError) as e:
                logger.debug("Dropping WebSocket for run %s: %s", run_id, e)
                self.disconnect(connection, run_id)

    async def forward(self, event: AgentEvent) -> None:
        """EventBus subscriber: relay an agent event to the run's sockets."""
        await self.broadcast(event.run_id, event.to_message())


manager = ConnectionManager()


@router.websocket("/{run_id}")
async def websocket_endpoint(websocket: WebSocket, run_id: str):
    """
    Live event stream for one run.

    On connect the recent event history of the run is replayed, then every
    new event is pushed as it is emitted. Clients may send {"type": "ping"}.

    Args:
        websocket: Client connection
        run_id: Run to subscribe to
    """
    registry = websocket.app.state.runs
    handle = registry.get(run_id)
    if handle is None:
        await websocket.close(code=4404)
        return

    await manager.connect(websocket, run_id)
    # History is captured in the same step as subscribing so no event is sent twice
    history = handle.events.recent()
    unsubscribe = handle.events.subscribe(manager.forward)

    try:
        await websocket.send_json({
            "event": "connected",
            "run_id": run_id,
            "timestamp": datetime.now().isoformat(),
        })
        for event in history:
            await websocket.send_text(json.dumps(event.to_message(), default=str))

        while True:
            try:
                data = await asyncio.wait_for(websocket.receive_text(), timeout=30.0)
                message = json.loads(data)
                if message.get("type") == "ping":
                    await websocket.send_json({"type": "pong"})
            except asyncio.TimeoutError:
                await websocket.send_json({"type": "ping"})
            except json.JSONDecodeError:
                await websocket.send_json({"type": "error", "detail": "invalid JSON"})

    except WebSocketDisconnect:
        pass
    finally:
        unsubscribe()
        manager.disconnect(websocket, run_id)
