from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class CompletionRequest:
    text: str | None
    action: str | None
    language: str | None = None
    custom_prompt: str | None = None


@dataclass(frozen=True)
class CompletionResult:
    response: str
    token_usage: int
    success: bool = True


@dataclass(frozen=True)
class ProviderCompletion:
    text: str
    total_tokens: int
    model: str | None = None
