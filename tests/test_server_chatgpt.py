import httpx
import pytest

from jira_chatgpt.config import GatewayConfig
from jira_chatgpt.contracts import ProviderCompletion
from jira_chatgpt.errors import AuthenticationError
from jira_chatgpt.gateway import CompletionGateway
from jira_chatgpt.openai_session import OpenAIChatSession
from jira_chatgpt.prompts import EXPLAIN_SYSTEM_PROMPT
from jira_chatgpt.server import create_app


class FakeSession:
    def __init__(self, result=None, error=None):
        self.calls = []
        self._result = result or ProviderCompletion(text="generated", total_tokens=99)
        self._error = error

    async def generate_chat(self, **kwargs):
        self.calls.append(kwargs)
        if self._error is not None:
            raise self._error
        return self._result

    async def close(self):
        return None


def _app(session, **cfg_overrides):
    cfg = GatewayConfig(openai_api_key="sk-test-000000000000", enable_metrics=False, **cfg_overrides)
    return create_app(cfg=cfg, gateway=CompletionGateway(cfg, session=session))


async def _post(app, **kwargs):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        return await client.post("/api/chatgpt", **kwargs)


@pytest.mark.asyncio
async def test_chatgpt_success_returns_response_and_token_usage():
    session = FakeSession()
    resp = await _post(_app(session), json={"text": "closures", "action": "explain"})
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "response": "generated", "tokenUsage": 99}
    assert session.calls[0]["messages"] == [
        {"role": "system", "content": EXPLAIN_SYSTEM_PROMPT},
        {"role": "user", "content": "Please explain the following text: closures"},
    ]


@pytest.mark.asyncio
async def test_chatgpt_empty_body_object_is_400():
    session = FakeSession()
    resp = await _post(_app(session), json={})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Missing required parameters"}
    assert session.calls == []


@pytest.mark.asyncio
async def test_chatgpt_missing_body_is_400():
    resp = await _post(_app(FakeSession()))
    assert resp.status_code == 400
    assert resp.json() == {"error": "Missing required parameters"}


@pytest.mark.asyncio
async def test_chatgpt_missing_action_is_400():
    resp = await _post(_app(FakeSession()), json={"text": "hi"})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Missing required parameters"}


@pytest.mark.asyncio
async def test_chatgpt_translate_without_language_targets_english():
    session = FakeSession()
    resp = await _post(_app(session), json={"text": "hi", "action": "translate"})
    assert resp.status_code == 200
    assert session.calls[0]["messages"][1]["content"] == "Translate the following text to English: hi"


@pytest.mark.asyncio
async def test_chatgpt_custom_without_prompt_uses_please_analyze():
    session = FakeSession()
    resp = await _post(_app(session), json={"text": "hi", "action": "custom"})
    assert resp.status_code == 200
    assert session.calls[0]["messages"][1]["content"] == "Please analyze: hi"


@pytest.mark.asyncio
async def test_chatgpt_custom_prompt_is_read_from_camel_case_field():
    session = FakeSession()
    resp = await _post(
        _app(session),
        json={"text": "hi", "action": "custom", "customPrompt": "Rewrite politely"},
    )
    assert resp.status_code == 200
    assert session.calls[0]["messages"][1]["content"] == "Rewrite politely: hi"


@pytest.mark.asyncio
async def test_chatgpt_unknown_action_is_accepted():
    session = FakeSession()
    resp = await _post(_app(session), json={"text": "raw", "action": "foo"})
    assert resp.status_code == 200
    assert session.calls[0]["messages"][1]["content"] == "raw"


@pytest.mark.asyncio
async def test_chatgpt_provider_failure_maps_to_500_with_message():
    session = FakeSession(error=AuthenticationError("Incorrect API key provided"))
    resp = await _post(_app(session), json={"text": "hi", "action": "summarize"})
    assert resp.status_code == 500
    assert resp.json() == {"error": "Failed to process request", "message": "Incorrect API key provided"}


@pytest.mark.asyncio
async def test_chatgpt_unexpected_provider_exception_does_not_leak_traceback():
    session = FakeSession(error=RuntimeError("boom"))
    resp = await _post(_app(session), json={"text": "hi", "action": "explain"})
    assert resp.status_code == 500
    body = resp.json()
    assert body == {"error": "Failed to process request", "message": "boom"}
    assert "Traceback" not in resp.text


@pytest.mark.asyncio
async def test_chatgpt_wrong_field_type_is_400_invalid_body():
    resp = await _post(_app(FakeSession()), json={"text": 123, "action": "explain"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid request body"
    assert "text" in resp.json()["message"]


@pytest.mark.asyncio
async def test_chatgpt_malformed_json_is_400_invalid_body():
    resp = await _post(
        _app(FakeSession()),
        content=b'{"text": "hi", ',
        headers={"Content-Type": "application/json"},
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid request body"


@pytest.mark.asyncio
async def test_health_is_ok_without_provider_configuration():
    cfg = GatewayConfig(openai_api_key=None, enable_metrics=False)
    app = create_app(cfg=cfg)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_health_is_ok_when_provider_is_failing():
    app = _app(FakeSession(error=RuntimeError("down")))
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_chatgpt_network_error_text_reaches_500_message():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("[Errno 111] Connection refused", request=request)

    cfg = GatewayConfig(openai_api_key="sk-test-000000000000", enable_metrics=False)
    session = OpenAIChatSession(
        api_key=cfg.openai_api_key,
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )
    app = create_app(cfg=cfg, gateway=CompletionGateway(cfg, session=session))
    try:
        resp = await _post(app, json={"text": "hi", "action": "explain"})
    finally:
        await session.close()
    assert resp.status_code == 500
    body = resp.json()
    assert body["error"] == "Failed to process request"
    assert "Connection refused" in body["message"]


@pytest.mark.asyncio
async def test_chatgpt_json_sent_as_text_plain_is_treated_as_empty_body():
    session = FakeSession()
    resp = await _post(
        _app(session),
        content=b'{"text": "hi", "action": "explain"}',
        headers={"Content-Type": "text/plain"},
    )
    assert resp.status_code == 400
    assert resp.json() == {"error": "Missing required parameters"}
    assert session.calls == []


@pytest.mark.asyncio
async def test_chatgpt_accepts_json_content_type_with_charset():
    session = FakeSession()
    resp = await _post(
        _app(session),
        content=b'{"text": "hi", "action": "custom"}',
        headers={"Content-Type": "application/json; charset=utf-8"},
    )
    assert resp.status_code == 200
    assert session.calls[0]["messages"][1]["content"] == "Please analyze: hi"


@pytest.mark.asyncio
async def test_chatgpt_json_array_body_is_400_invalid_body():
    resp = await _post(_app(FakeSession()), json=["hi", "explain"])
    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid request body"
