from __future__ import annotations

from typing import Any

import httpx
import structlog

from .config import OPENAI_API_BASE
from .contracts import ProviderCompletion
from .errors import AuthenticationError, RateLimitError, UpstreamProtocolError

log = structlog.get_logger()


def _upstream_error_message(resp: httpx.Response) -> str | None:
    try:
        data = resp.json()
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    error = data.get("error")
    if isinstance(error, dict) and isinstance(error.get("message"), str):
        return error["message"]
    if isinstance(error, str):
        return error
    return None


def _describe(exc: Exception) -> str:
    return str(exc) or exc.__class__.__name__


class OpenAIChatSession:
    """
    Thin wrapper around the OpenAI-compatible ``/chat/completions`` endpoint.

    Each call issues exactly one HTTP request. Upstream failures are mapped to
    the ``ProviderFailure`` hierarchy; nothing is retried here.
    """

    def __init__(
        self,
        api_key: str | None,
        *,
        client: httpx.AsyncClient | None = None,
        base_url: str = OPENAI_API_BASE,
        timeout_seconds: float = 60,
    ):
        self.api_key = api_key
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)
        self._base_url = base_url.rstrip("/")

    async def close(self) -> None:
        await self._client.aclose()

    async def generate_chat(
        self,
        *,
        model: str,
        messages: list[dict[str, str]],
        max_tokens: int | None = None,
        **kwargs: Any,
    ) -> ProviderCompletion:
        if kwargs:
            log.debug("openai_generate_chat_ignored_kwargs", keys=list(kwargs.keys()))

        if not self.api_key:
            raise AuthenticationError("Missing OPENAI_API_KEY for completion provider call.")

        url = f"{self._base_url}/chat/completions"
        headers = {"Authorization": f"Bearer {self.api_key}"}
        payload: dict[str, Any] = {"model": model, "messages": messages}
        if max_tokens is not None:
            payload["max_tokens"] = max_tokens

        try:
            resp = await self._client.post(url, headers=headers, json=payload)
        except httpx.TimeoutException as e:
            raise UpstreamProtocolError(f"Upstream request timed out: {_describe(e)}") from e
        except httpx.HTTPError as e:
            raise UpstreamProtocolError(f"Upstream request failed: {_describe(e)}") from e

        if resp.status_code >= 400:
            detail = _upstream_error_message(resp)
            log.warning("openai_upstream_error", status_code=resp.status_code, detail=detail)
            if resp.status_code in (401, 403):
                raise AuthenticationError(detail or "Upstream rejected credentials (check OPENAI_API_KEY).")
            if resp.status_code == 429:
                raise RateLimitError(detail or "Rate limited")
            raise UpstreamProtocolError(detail or f"Upstream error {resp.status_code}.")

        try:
            data = resp.json()
        except ValueError as e:
            raise UpstreamProtocolError("Upstream response is not valid JSON.") from e
        if not isinstance(data, dict):
            raise UpstreamProtocolError("Unexpected upstream response shape.")

        choices = data.get("choices")
        if not isinstance(choices, list) or not choices:
            raise UpstreamProtocolError("Missing choices in upstream response.")

        message = choices[0].get("message") if isinstance(choices[0], dict) else None
        if not isinstance(message, dict):
            raise UpstreamProtocolError("Missing message in upstream response.")

        text = message.get("content")
        if not isinstance(text, str):
            raise UpstreamProtocolError("Missing content in upstream response.")

        usage = data.get("usage")
        total_tokens = usage.get("total_tokens") if isinstance(usage, dict) else None
        if not isinstance(total_tokens, int):
            raise UpstreamProtocolError("Missing usage.total_tokens in upstream response.")

        log.debug("openai_generate_ok", model=model, prompt_chars=sum(len(m.get("content", "")) for m in messages))
        return ProviderCompletion(text=text, total_tokens=total_tokens, model=data.get("model"))
