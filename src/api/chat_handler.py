"""Chat Handler - runs assistant turns off the event loop and shapes responses"""

import asyncio
from typing import Any, AsyncIterator, Dict

from loguru import logger
from starlette.concurrency import iterate_in_threadpool

from src.agents.assistant_agent import ERROR_REPLY
from src.api.session_manager import SessionManager


class ChatHandler:
    """
    Handles chat operations for assistant sessions

    Provider calls are blocking, so they run in the thread pool.
    """

    def __init__(self, session_manager: SessionManager):
        self.session_manager = session_manager
        logger.info("ChatHandler initialized")

    async def handle_start_conversation(self, session_id: str) -> Dict[str, Any]:
        assistant = self.session_manager.get_or_create(session_id)
        return {
            "success": True,
            "session_id": session_id,
            "greeting": assistant.greeting,
        }

    async def handle_user_message(
        self,
        session_id: str,
        message: str,
        thinking_mode: bool = False,
    ) -> Dict[str, Any]:
        """
        Process a user message and return the full reply

        Returns:
            Dict with "success" and "reply" or "error"
        """
        if not message or not message.strip():
            return {"success": False, "error": "Message cannot be empty"}

        assistant = self.session_manager.get_or_create(session_id)
        assistant.set_thinking_mode(thinking_mode)

        reply = await asyncio.to_thread(assistant.reply, message.strip())
        if reply == ERROR_REPLY:
            return {"success": False, "error": ERROR_REPLY}

        logger.info(f"Answered message for session {session_id} ({len(reply)} chars)")
        return {"success": True, "reply": reply}

    async def stream_user_message(
        self,
        session_id: str,
        message: str,
        thinking_mode: bool = False,
    ) -> AsyncIterator[str]:
        """Yield reply chunks as they arrive from the provider"""
        assistant = self.session_manager.get_or_create(session_id)
        assistant.set_thinking_mode(thinking_mode)

        async for chunk in iterate_in_threadpool(assistant.stream_reply(message.strip())):
            yield chunk

    async def reset_conversation(self, session_id: str) -> Dict[str, Any]:
        assistant = self.session_manager.get_session(session_id)
        if not assistant:
            return {"success": False, "error": "No active session found"}

        assistant.reset_conversation()
        logger.info(f"Reset conversation for session {session_id}")
        return {"success": True, "message": "Conversation reset successfully"}
