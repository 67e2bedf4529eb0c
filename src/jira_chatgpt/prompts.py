"""System/user prompt construction for the supported text actions."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Action(str, Enum):
    EXPLAIN = "explain"
    SUMMARIZE = "summarize"
    TRANSLATE = "translate"
    CUSTOM = "custom"

    @classmethod
    def parse(cls, value: str) -> "Action | None":
        """Exact, case-sensitive lookup; ``None`` for anything unrecognized."""
        try:
            return cls(value)
        except ValueError:
            return None


DEFAULT_LANGUAGE = "English"
DEFAULT_CUSTOM_PROMPT = "Please analyze"

EXPLAIN_SYSTEM_PROMPT = (
    "You are a technical expert. Explain the given text clearly and accurately, "
    "and include examples where they help understanding."
)
SUMMARIZE_SYSTEM_PROMPT = (
    "You are a summarizer. Keep summaries concise and focused on the key points."
)
TRANSLATE_SYSTEM_PROMPT = (
    "You are a professional translator. Translate the given text while preserving its original meaning."
)
GENERIC_SYSTEM_PROMPT = "You are a helpful assistant that provides clear and concise responses."


@dataclass(frozen=True)
class PromptPair:
    system: str
    user: str

    def to_messages(self) -> list[dict[str, str]]:
        return [
            {"role": "system", "content": self.system},
            {"role": "user", "content": self.user},
        ]


def build_prompt(
    text: str,
    action: str,
    *,
    language: str | None = None,
    custom_prompt: str | None = None,
) -> PromptPair:
    """
    Map an action tag and the user's text to a provider-ready prompt pair.

    Unrecognized actions are not an error: they get the generic persona and
    the raw text as the user message. Empty ``language``/``custom_prompt``
    values count as absent.
    """
    parsed = Action.parse(action)
    if parsed is Action.EXPLAIN:
        return PromptPair(EXPLAIN_SYSTEM_PROMPT, f"Please explain the following text: {text}")
    if parsed is Action.SUMMARIZE:
        return PromptPair(SUMMARIZE_SYSTEM_PROMPT, f"Please summarize the following text: {text}")
    if parsed is Action.TRANSLATE:
        target = language or DEFAULT_LANGUAGE
        return PromptPair(TRANSLATE_SYSTEM_PROMPT, f"Translate the following text to {target}: {text}")
    if parsed is Action.CUSTOM:
        instruction = custom_prompt or DEFAULT_CUSTOM_PROMPT
        return PromptPair(GENERIC_SYSTEM_PROMPT, f"{instruction}: {text}")
    return PromptPair(GENERIC_SYSTEM_PROMPT, text)
