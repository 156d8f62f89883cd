"""Prompt and conversation-history utilities for the donation assistant"""

from typing import Optional


ASSISTANT_SYSTEM_PROMPT = """You are a helpful assistant for an organ donation pledge platform in India.
Answer questions about organ and tissue donation: who can pledge, which organs can be donated,
how blood group compatibility works, how the transplant waitlist is prioritised, and what
families should know. Keep answers short, factual and compassionate.
You are not a doctor: for medical decisions, direct people to a registered transplant
hospital or the national organ transplant organisation (NOTTO)."""

GREETING = "Hello! How can I help you with questions about organ donation in India?"


class Message:
    """Single message in conversation history"""

    def __init__(self, role: str, content: str):
        self.role = role  # "user" or "assistant"
        self.content = content

    def to_dict(self) -> dict:
        """Convert to dictionary format for API"""
        return {"role": self.role, "content": self.content}


class ConversationHistory:
    """Manages conversation history with sliding window"""

    def __init__(self, max_messages: int = 20):
        """
        Args:
            max_messages: Maximum number of messages to retain (10 rounds = 20 messages)
        """
        self.messages: list[Message] = []
        self.max_messages = max_messages

    def add_message(self, role: str, content: str):
        """Add a message to history"""
        self.messages.append(Message(role, content))

        # Keep only the most recent messages
        if len(self.messages) > self.max_messages:
            self.messages = self.messages[-self.max_messages:]

    def add_user_message(self, content: str):
        self.add_message("user", content)

    def add_assistant_message(self, content: str):
        self.add_message("assistant", content)

    def to_api_format(self) -> list[dict]:
        """
        Convert to API format (list of message dicts)

        Providers expect the first turn to come from the user, so a leading
        assistant message (e.g. after the window slid) is dropped.
        """
        messages = [msg.to_dict() for msg in self.messages]
        while messages and messages[0]["role"] != "user":
            messages.pop(0)
        return messages

    def pop_last(self) -> Optional[Message]:
        """Remove and return the newest message, if any"""
        return self.messages.pop() if self.messages else None

    def clear(self):
        self.messages = []

    def __len__(self) -> int:
        return len(self.messages)


def build_system_prompt(extra_context: Optional[str] = None) -> str:
    """Assistant system prompt, optionally extended with live platform context"""
    if not extra_context:
        return ASSISTANT_SYSTEM_PROMPT
    return f"{ASSISTANT_SYSTEM_PROMPT}\n\nCurrent platform information:\n{extra_context}"
