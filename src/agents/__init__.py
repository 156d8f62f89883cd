"""Assistant modules"""

from src.agents.assistant_agent import DonationAssistant, ERROR_REPLY
from src.agents.llm_router import LLMRouter, AssistantRole, Provider
from src.agents.prompt_generator import ConversationHistory, Message, GREETING

__all__ = [
    "DonationAssistant",
    "ERROR_REPLY",
    "LLMRouter",
    "AssistantRole",
    "Provider",
    "ConversationHistory",
    "Message",
    "GREETING",
]
