"""
Chat Assistant Agent

DESIGN DECISION: The assistant talks to the user in plain language and
expresses ledger changes ONLY through inline markers:

    [TRANSACTION: amount=..., category=..., type=..., description=..., wallet=...]
    [TRANSFER: amount=..., from=..., to=..., description=...]

CRITICAL BOUNDARIES:
- CAN: Propose transactions and transfers through markers
- CANNOT: Touch balances. Every marker goes through the reconciler,
  which may still reject it
- CANNOT: See more than the recent conversation and the wallet summary

The LLM is a TRANSLATOR, not a BOOKKEEPER.
"""

from typing import Any, Callable, Literal, Optional, Sequence

import google.generativeai as genai
from pydantic import BaseModel, Field

from finance_chat.config import GeminiSettings, get_settings
from finance_chat.models.ledger import Wallet


CATEGORIES = (
    "groceries",
    "transport",
    "bills",
    "shopping",
    "dining",
    "health",
    "entertainment",
    "income",
    "other",
)


SYSTEM_PROMPT = """You are a friendly finance assistant. Be BRIEF and casual.

LOGGING TRANSACTIONS:
When the user mentions spending or earning money, you MUST include a transaction marker.
Format: [TRANSACTION: amount=NUMBER, category=CATEGORY, type=expense|income, description=TEXT, wallet=WALLET_NAME]

RULES:
1. Detect the wallet from context or keywords (cash, card, bank, savings). Default: "default".
2. Categories: {categories}.
3. For transfers: [TRANSFER: amount=NUMBER, from=WALLET_A, to=WALLET_B, description=TEXT]
4. Never log against a wallet marked LOCKED.

EXAMPLES:
User: "Lunch 500"
Assistant: "Logged! [TRANSACTION: amount=500, category=dining, type=expense, description=Lunch, wallet=default]"

User: "Salary 50k"
Assistant: "Nice! [TRANSACTION: amount=50000, category=income, type=income, description=Salary, wallet=default]"

User: "Paid 2000 electric bill from card"
Assistant: "Done. [TRANSACTION: amount=2000, category=bills, type=expense, description=electric bill, wallet=card]"

User: "Transfer 5k from Bank to Savings"
Assistant: "Transferred! [TRANSFER: amount=5000, from=Bank, to=Savings, description=Transfer]"

IMPORTANT:
- Markers are hidden from the user, so keep your text response complete but brief.
"""


class AssistantError(Exception):
    """The LLM call failed or returned nothing usable."""
    pass


class ChatMessage(BaseModel):
    """One turn of the conversation."""

    role: Literal["user", "assistant"]
    content: str = Field(default="", description="Message text as shown in chat")


def describe_wallets(wallets: Sequence[Wallet]) -> str:
    """Wallet context block for the system prompt."""
    lines = []
    for wallet in wallets:
        line = f"- {wallet.name}: {wallet.currency} {wallet.balance} ({wallet.type.value})"
        if wallet.is_default:
            line += " (DEFAULT)"
        if wallet.is_locked:
            line += " (LOCKED)"
        lines.append(line)
    return "\n".join(lines)


def build_system_prompt(wallets: Sequence[Wallet]) -> str:
    prompt = SYSTEM_PROMPT.format(categories=", ".join(CATEGORIES))
    if wallets:
        prompt += f"\nWALLETS:\n{describe_wallets(wallets)}\n"
    return prompt


def recent_history(
    history: Sequence[ChatMessage],
    limit: int,
) -> list[ChatMessage]:
    """Last `limit` messages, minus the ones with blank content."""
    return [m for m in history[-limit:] if m.content and m.content.strip()]


class AssistantAgent:
    """
    Gemini-backed chat assistant.

    The model is built per reply, because the system prompt carries the
    user's current wallets.
    """

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        model_factory: Optional[Callable[[str], Any]] = None,
    ):
        """
        Args:
            settings: Gemini settings; read from the environment if omitted
            model_factory: Builds a model object exposing
                `generate_content_async(contents)` from a system prompt.
                Defaults to `genai.GenerativeModel`.
        """
        self._settings = settings or get_settings().gemini
        if model_factory is None:
            genai.configure(api_key=self._settings.api_key)
            model_factory = self._create_model
        self._model_factory = model_factory

    def _create_model(self, system_prompt: str):
        return genai.GenerativeModel(
            model_name=self._settings.model_name,
            system_instruction=system_prompt,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
            },
        )

    async def reply(
        self,
        history: Sequence[ChatMessage],
        wallets: Sequence[Wallet],
    ) -> str:
        """
        Generate the assistant's next message, markers included.

        Raises:
            AssistantError: if there is nothing to answer or the call fails
        """
        messages = recent_history(history, self._settings.history_limit)
        if not messages:
            raise AssistantError("No non-empty messages to reply to")

        contents = [
            {
                "role": "model" if m.role == "assistant" else "user",
                "parts": [m.content],
            }
            for m in messages
        ]

        model = self._model_factory(build_system_prompt(wallets))
        try:
            response = await model.generate_content_async(contents)
            text = response.text
        except Exception as e:
            raise AssistantError(f"Gemini request failed: {e}") from e

        if not text or not text.strip():
            raise AssistantError("Gemini returned an empty reply")
        return text
