"""Donation Assistant - conversational helper for donors, families and patients."""

from typing import Callable, Iterator, Optional

from loguru import logger

from src.agents.llm_router import AssistantRole, LLMRouter
from src.agents.prompt_generator import GREETING, ConversationHistory, build_system_prompt


ERROR_REPLY = "Sorry, I encountered an error. Please try again."


class DonationAssistant:
    """Single chat session over the LLM router."""

    def __init__(
        self,
        router: LLMRouter,
        max_messages: int = 20,
        max_tokens: int = 1024,
        temperature: float = 0.7,
        context_provider: Optional[Callable[[], str]] = None,
    ):
        self.router = router
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.context_provider = context_provider
        self.thinking_mode = False
        self.conversation_history = ConversationHistory(max_messages=max_messages)
        self.conversation_history.add_assistant_message(GREETING)

    @property
    def greeting(self) -> str:
        return GREETING

    @property
    def role(self) -> AssistantRole:
        return AssistantRole.THINKING if self.thinking_mode else AssistantRole.ASSISTANT

    def set_thinking_mode(self, enabled: bool):
        self.thinking_mode = enabled
        logger.info(f"Assistant thinking mode {'on' if enabled else 'off'}")

    def _system_prompt(self) -> str:
        context = None
        if self.context_provider is not None:
            try:
                context = self.context_provider()
            except Exception as e:
                logger.warning(f"Context provider failed, answering without platform context: {e}")
        return build_system_prompt(context)

    def reply(self, message: str) -> str:
        """Full (non-streamed) reply. Provider failures yield the apology text."""
        self.conversation_history.add_user_message(message)
        try:
            text = self.router.chat(
                role=self.role,
                system=self._system_prompt(),
                messages=self.conversation_history.to_api_format(),
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            ).strip()
        except Exception as e:
            logger.error(f"Assistant reply failed: {e}")
            self.conversation_history.pop_last()
            return ERROR_REPLY

        self.conversation_history.add_assistant_message(text)
        return text

    def stream_reply(self, message: str) -> Iterator[str]:
        """
        Streamed reply as text chunks

        On failure the apology text is yielded as the final chunk and
        neither the question nor the partial answer is kept in history.
        """
        self.conversation_history.add_user_message(message)
        parts: list[str] = []
        try:
            for chunk in self.router.stream_chat(
                role=self.role,
                system=self._system_prompt(),
                messages=self.conversation_history.to_api_format(),
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            ):
                parts.append(chunk)
                yield chunk
        except Exception as e:
            logger.error(f"Assistant stream failed after {len(parts)} chunks: {e}")
            self.conversation_history.pop_last()
            yield ERROR_REPLY
            return

        self.conversation_history.add_assistant_message("".join(parts))

    def reset_conversation(self):
        self.conversation_history.clear()
        self.conversation_history.add_assistant_message(GREETING)
