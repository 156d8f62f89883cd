"""Session Manager - maps chat session ids to DonationAssistant instances"""

import time
from threading import Lock
from typing import Callable, Dict, Optional

from loguru import logger

from src.agents.assistant_agent import DonationAssistant
from src.agents.llm_router import LLMRouter
from src.config import Settings


class SessionManager:
    """
    Owns assistant chat sessions

    One instance is created per application and handed to the chat
    handler; sessions expire after a period of inactivity.
    """

    def __init__(
        self,
        settings: Settings,
        router: Optional[LLMRouter] = None,
        context_provider: Optional[Callable[[], str]] = None,
    ):
        self.settings = settings
        self.router = router or LLMRouter(settings)
        self.context_provider = context_provider
        self.sessions: Dict[str, DonationAssistant] = {}
        self.session_metadata: Dict[str, dict] = {}  # session_id -> {created_at, last_active}
        self._lock = Lock()

        logger.info("SessionManager initialized")

    def create_session(self, session_id: str) -> DonationAssistant:
        """
        Create a session, or return the existing one for this id

        Args:
            session_id: Client-chosen session identifier

        Returns:
            The session's DonationAssistant
        """
        with self._lock:
            if session_id in self.sessions:
                self.session_metadata[session_id]["last_active"] = time.time()
                return self.sessions[session_id]

            assistant = DonationAssistant(
                router=self.router,
                max_messages=self.settings.chat_history_limit,
                max_tokens=self.settings.chat_max_tokens,
                context_provider=self.context_provider,
            )
            self.sessions[session_id] = assistant
            self.session_metadata[session_id] = {
                "session_id": session_id,
                "created_at": time.time(),
                "last_active": time.time(),
            }

        logger.info(f"Created new chat session {session_id}")
        return assistant

    def get_session(self, session_id: str) -> Optional[DonationAssistant]:
        assistant = self.sessions.get(session_id)
        if assistant:
            self.session_metadata[session_id]["last_active"] = time.time()
        return assistant

    def get_or_create(self, session_id: str) -> DonationAssistant:
        assistant = self.get_session(session_id)
        if assistant:
            return assistant
        # Idle sessions expire before a new client-chosen id is admitted
        self.cleanup_inactive_sessions(self.settings.chat_session_timeout)
        return self.create_session(session_id)

    def delete_session(self, session_id: str) -> bool:
        with self._lock:
            if session_id not in self.sessions:
                logger.warning(f"Session not found for deletion: {session_id}")
                return False
            del self.sessions[session_id]
            self.session_metadata.pop(session_id, None)
        logger.info(f"Deleted session: {session_id}")
        return True

    def get_session_info(self, session_id: str) -> Optional[dict]:
        return self.session_metadata.get(session_id)

    def cleanup_inactive_sessions(self, timeout_seconds: int = 3600) -> int:
        """
        Clean up sessions that have been inactive for too long

        Returns:
            Number of sessions cleaned up
        """
        current_time = time.time()
        expired = [
            sid for sid, meta in list(self.session_metadata.items())
            if current_time - meta["last_active"] > timeout_seconds
        ]
        for session_id in expired:
            self.delete_session(session_id)

        if expired:
            logger.info(f"Cleaned up {len(expired)} inactive sessions")
        return len(expired)

    def get_active_sessions_count(self) -> int:
        return len(self.sessions)
