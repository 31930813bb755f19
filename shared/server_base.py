"""
Base WebSocket server for lobby sessions.
Provides connection bookkeeping and fan-out shared by session managers.
"""

import json
import logging
import uuid
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Dict

from fastapi import FastAPI, WebSocket, WebSocketDisconnect

logger = logging.getLogger(__name__)


class ConnectionHub:
    """
    Broadcast gateway: live connections keyed by an opaque connection id.

    A failed send to one socket is logged and skipped so the rest of the
    fan-out still goes through.
    """

    def __init__(self):
        self.connections: Dict[str, WebSocket] = {}

    def register(self, ws) -> str:
        conn_id = uuid.uuid4().hex
        self.connections[conn_id] = ws
        return conn_id

    def unregister(self, conn_id: str):
        self.connections.pop(conn_id, None)

    def __contains__(self, conn_id: str) -> bool:
        return conn_id in self.connections

    def __len__(self) -> int:
        return len(self.connections)

    async def send(self, conn_id: str, msg: dict):
        """Send a message to a single connection."""
        ws = self.connections.get(conn_id)
        if ws is None:
            return
        try:
            await ws.send_json(msg)
        except Exception as e:
            logger.warning("Send to %s failed: %s", conn_id, e)

    async def broadcast(self, msg: dict):
        """Broadcast a message to all connected clients."""
        for conn_id in list(self.connections):
            await self.send(conn_id, msg)


class BaseSessionManager(ABC):
    """
    Abstract base class for session managers.
    Subclasses implement the message handling and lifecycle hooks.
    """

    def __init__(self, hub: ConnectionHub = None):
        self.hub = hub or ConnectionHub()

    async def connect(self, ws) -> str:
        """Accept and register a WebSocket connection."""
        await ws.accept()
        conn_id = self.hub.register(ws)
        logger.debug("Connection %s opened", conn_id)
        await self.on_connect(conn_id)
        return conn_id

    async def disconnect(self, conn_id: str):
        """Remove a WebSocket connection."""
        self.hub.unregister(conn_id)
        logger.debug("Connection %s closed", conn_id)
        await self.on_disconnect(conn_id)

    async def broadcast(self, msg: dict):
        await self.hub.broadcast(msg)

    async def send(self, conn_id: str, msg: dict):
        await self.hub.send(conn_id, msg)

    @abstractmethod
    async def on_connect(self, conn_id: str):
        """Called after a connection is registered."""
        pass

    @abstractmethod
    async def on_disconnect(self, conn_id: str):
        """Called after a connection is unregistered."""
        pass

    @abstractmethod
    async def handle_message(self, conn_id: str, data):
        """Handle an incoming WebSocket message. Must be implemented by subclasses."""
        pass

    async def shutdown(self):
        """Release timers and other loop resources."""
        pass

    def status(self) -> dict:
        return {"status": "ok", "connections": len(self.hub)}


def create_session_app(manager: BaseSessionManager, title: str = "Session Server") -> FastAPI:
    """
    Create a FastAPI app for a session manager.

    Args:
        manager: The session manager instance
        title: App title

    Returns:
        Configured FastAPI app
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await manager.shutdown()

    app = FastAPI(title=title, lifespan=lifespan)

    @app.get("/")
    async def root():
        return manager.status()

    @app.websocket("/ws")
    async def websocket_endpoint(ws: WebSocket):
        conn_id = await manager.connect(ws)
        try:
            while True:
                message = await ws.receive()
                if message["type"] == "websocket.disconnect":
                    break
                raw = message.get("text")
                if raw is None:
                    logger.debug("Dropping binary frame from %s", conn_id)
                    continue
                try:
                    data = json.loads(raw)
                except (ValueError, RecursionError):
                    logger.debug("Dropping non-JSON frame from %s", conn_id)
                    continue
                await manager.handle_message(conn_id, data)
        except WebSocketDisconnect:
            pass
        finally:
            await manager.disconnect(conn_id)

    return app


def run_server(app: FastAPI, host: str = "0.0.0.0", port: int = 8000):
    """Run the FastAPI server."""
    import uvicorn
    uvicorn.run(app, host=host, port=port)
