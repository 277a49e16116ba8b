from fastapi import APIRouter, Query, WebSocket

from market_chat.realtime.gateway import ChatGateway

router = APIRouter(tags=["realtime"])


@router.websocket("/ws")
async def chat_socket(websocket: WebSocket, token: str | None = Query(default=None)):
    """Realtime chat channel; the token may also come as a Bearer header."""
    gateway: ChatGateway = websocket.app.state.gateway
    await gateway.serve(websocket, token)
