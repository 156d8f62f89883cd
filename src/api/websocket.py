"""Streaming chat WebSocket endpoint

Protocol:
    Client -> Server:
        {"action": "start"}                                  - Get the greeting
        {"action": "message", "content": "...", "thinking": false} - Ask a question
        {"action": "reset"}                                  - Reset the conversation

    Server -> Client:
        {"type": "welcome", "session_id": "..."}
        {"type": "greeting", "message": "..."}
        {"type": "chunk", "content": "..."}   - Partial reply text
        {"type": "done", "message": "..."}    - Full reply text
        {"type": "reset_complete"}
        {"type": "error", "message": "..."}
"""

import json

from fastapi import WebSocket, WebSocketDisconnect
from loguru import logger

from src.agents.assistant_agent import ERROR_REPLY
from src.api.chat_handler import ChatHandler


async def _send_error(websocket: WebSocket, message: str):
    await websocket.send_json({"type": "error", "message": message})


async def websocket_chat_endpoint(websocket: WebSocket, session_id: str):
    chat_handler: ChatHandler = websocket.app.state.chat_handler

    await websocket.accept()
    logger.info(f"WebSocket connected: session_id={session_id}")
    await websocket.send_json({"type": "welcome", "session_id": session_id})

    try:
        while True:
            data = await websocket.receive_text()

            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                await _send_error(websocket, "Invalid JSON format")
                continue

            action = message.get("action") if isinstance(message, dict) else None

            if action == "start":
                result = await chat_handler.handle_start_conversation(session_id)
                await websocket.send_json({"type": "greeting", "message": result["greeting"]})

            elif action == "message":
                content = str(message.get("content", "")).strip()
                if not content:
                    await _send_error(websocket, "Message content cannot be empty")
                    continue

                parts = []
                async for chunk in chat_handler.stream_user_message(
                    session_id, content, thinking_mode=bool(message.get("thinking", False))
                ):
                    if chunk == ERROR_REPLY:
                        await _send_error(websocket, ERROR_REPLY)
                        break
                    parts.append(chunk)
                    await websocket.send_json({"type": "chunk", "content": chunk})
                else:
                    await websocket.send_json({"type": "done", "message": "".join(parts)})

            elif action == "reset":
                result = await chat_handler.reset_conversation(session_id)
                if result["success"]:
                    await websocket.send_json({"type": "reset_complete"})
                else:
                    await _send_error(websocket, result["error"])

            elif not action:
                await _send_error(websocket, "Missing 'action' field")

            else:
                await _send_error(websocket, f"Unknown action: {action}")

    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected: session_id={session_id}")
