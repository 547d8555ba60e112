# backend/zlecenia/routes/v1/chat.py
"""
Chat WebSocket - API v1

    WS /ws?token=<access token>

The access token may also come as ``Authorization: Bearer``. A handshake
without a valid token is closed with 1008 before it is accepted.
"""

import logging

from fastapi import APIRouter, WebSocket, status

from ...api.dependencies.auth import authenticate_websocket
from ...services.messaging.chat_session import ChatSession

logger = logging.getLogger(__name__)

router = APIRouter(tags=["chat-v1"])


@router.websocket("/ws")
async def chat_websocket(websocket: WebSocket) -> None:
    user_id = authenticate_websocket(websocket)
    if user_id is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    await ChatSession(websocket, user_id).run()
