"""AI Agents package."""

from finance_chat.agents.assistant import (
    CATEGORIES,
    AssistantAgent,
    AssistantError,
    ChatMessage,
    build_system_prompt,
    describe_wallets,
    recent_history,
)

__all__ = [
    "CATEGORIES",
    "AssistantAgent",
    "AssistantError",
    "ChatMessage",
    "build_system_prompt",
    "describe_wallets",
    "recent_history",
]
