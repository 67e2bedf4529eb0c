from __future__ import annotations

from typing import Protocol

import structlog

from .config import GatewayConfig
from .contracts import CompletionRequest, CompletionResult, ProviderCompletion
from .errors import InvalidRequestError, ProcessingFailure
from .metrics import provider_request_latency_seconds, provider_requests_total, provider_tokens_total
from .openai_session import OpenAIChatSession
from .prompts import Action, build_prompt

log = structlog.get_logger()


class ChatSession(Protocol):
    async def generate_chat(
        self, *, model: str, messages: list[dict[str, str]], max_tokens: int | None = None
    ) -> ProviderCompletion: ...

    async def close(self) -> None: ...


def validate_request(request: CompletionRequest) -> tuple[str, str]:
    if not request.text or not request.action:
        raise InvalidRequestError()
    return request.text, request.action


class CompletionGateway:
    name = "OpenAI"

    def __init__(self, cfg: GatewayConfig, *, session: ChatSession | None = None):
        self.cfg = cfg
        self.session: ChatSession = session or OpenAIChatSession(
            api_key=cfg.openai_api_key,
            base_url=cfg.openai_base_url,
            timeout_seconds=cfg.upstream_timeout_seconds,
        )

    async def handle(self, request: CompletionRequest) -> CompletionResult:
        text, action = validate_request(request)
        prompt = build_prompt(
            text,
            action,
            language=request.language,
            custom_prompt=request.custom_prompt,
        )
        # Bounded label set: free-form actions collapse into "other".
        parsed = Action.parse(action)
        action_label = parsed.value if parsed is not None else "other"

        try:
            with provider_request_latency_seconds.labels(provider=self.name).time():
                completion = await self.session.generate_chat(
                    model=self.cfg.model,
                    messages=prompt.to_messages(),
                    max_tokens=self.cfg.max_tokens,
                )
        except Exception as e:
            provider_requests_total.labels(provider=self.name, action=action_label, status="error").inc()
            log.exception("completion_failed", provider=self.name, action=action_label, model=self.cfg.model)
            raise ProcessingFailure(str(e) or e.__class__.__name__) from e

        provider_requests_total.labels(provider=self.name, action=action_label, status="success").inc()
        provider_tokens_total.labels(provider=self.name).inc(max(0, completion.total_tokens))
        log.info(
            "completion_ok",
            provider=self.name,
            action=action_label,
            model=completion.model or self.cfg.model,
            token_usage=completion.total_tokens,
        )
        return CompletionResult(response=completion.text, token_usage=completion.total_tokens)

    async def close(self) -> None:
        await self.session.close()
