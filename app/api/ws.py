"""Socket route for the live attendance session."""
from typing import Optional

from fastapi import APIRouter, WebSocket

from app.config import settings

router = APIRouter()


async def attendance_socket(websocket: WebSocket, token: Optional[str] = None):
    """Authenticate with ``?token=<jwt>``, then exchange ``{event, data}`` JSON messages."""
    await websocket.app.state.coordinator.serve(websocket, token)


router.add_api_websocket_route(settings.ws_path, attendance_socket)
