import json

from fastapi.testclient import TestClient

from claude_relay.deps import get_registry
from claude_relay.routes import create_app
from claude_relay.services.chat_service import SUPPORTED_MODELS
from claude_relay.session import AuthenticationRequired, ProcessFailure, SessionRegistry

from conftest import FakeBridge


def _chat(client: TestClient, content: str = "hi", **extra):
    headers = extra.pop("headers", None)
    payload = {"model": "claude-3-5-sonnet-20241022", "messages": [{"role": "user", "content": content}]}
    payload.update(extra)
    return client.post("/v1/chat/completions", json=payload, headers=headers)


def test_health(client: TestClient):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "service": "clay", "version": "0.1.0"}


def test_models(client: TestClient):
    resp = client.get("/v1/models")
    assert resp.status_code == 200
    body = resp.json()
    assert body["object"] == "list"
    assert [m["id"] for m in body["data"]] == list(SUPPORTED_MODELS)
    assert all(m["owned_by"] == "anthropic" for m in body["data"])


def test_chat_completion_plain_text(client: TestClient, fake_bridge: FakeBridge):
    fake_bridge.replies = ["Hello! How can I help?"]

    resp = _chat(client)

    assert resp.status_code == 200
    body = resp.json()
    assert body["object"] == "chat.completion"
    assert body["id"].startswith("chatcmpl-")
    assert body["model"] == "claude-3-5-sonnet-20241022"
    choice = body["choices"][0]
    assert choice["index"] == 0
    assert choice["finish_reason"] == "stop"
    assert choice["message"]["role"] == "assistant"
    assert choice["message"]["content"] == "Hello! How can I help?"
    assert choice["message"]["tool_calls"] is None
    usage = body["usage"]
    assert usage["prompt_tokens"] >= 1
    assert usage["total_tokens"] == usage["prompt_tokens"] + usage["completion_tokens"]
    assert fake_bridge.prompts == ["User: hi\n\n"]


def test_chat_completion_with_tool_calls(client: TestClient, fake_bridge: FakeBridge):
    fake_bridge.replies = [
        '{"tool_calls":[{"function":{"name":"get_weather","arguments":{"city":"Paris"}}}]}'
    ]
    tools = [
        {
            "type": "function",
            "function": {
                "name": "get_weather",
                "description": "Weather lookup",
                "parameters": {"type": "object", "properties": {"city": {"type": "string"}}},
            },
        }
    ]

    resp = _chat(client, "weather in Paris?", tools=tools, tool_choice="auto")

    assert resp.status_code == 200
    message = resp.json()["choices"][0]["message"]
    assert message["content"] is None
    call = message["tool_calls"][0]
    assert call["id"].startswith("call_")
    assert call["type"] == "function"
    assert call["function"]["name"] == "get_weather"
    assert json.loads(call["function"]["arguments"]) == {"city": "Paris"}
    assert fake_bridge.prompts[0].startswith("You have access to the following tools:")


def test_history_accumulates_per_session(client: TestClient, fake_bridge: FakeBridge, registry: SessionRegistry):
    _chat(client, "first")
    _chat(client, "second")
    _chat(client, "elsewhere", headers={"X-Session-Id": "other"})

    assert fake_bridge.prompts[1].startswith("Previous conversation:\nUser: User: first")
    assert fake_bridge.prompts[2] == "User: elsewhere\n\n"
    assert sorted(registry.keys()) == ["default", "other"]
    assert len(registry.get("default").log) == 2


def test_unknown_fields_are_ignored(client: TestClient):
    resp = _chat(client, stream=True, temperature=0.2, max_tokens=10, user="abc", n=1)
    assert resp.status_code == 200
    assert resp.json()["object"] == "chat.completion"


def test_invalid_body_is_rejected(client: TestClient):
    resp = client.post("/v1/chat/completions", json={"messages": []})
    assert resp.status_code == 422


def test_process_failure_maps_to_bare_500(client: TestClient, fake_bridge: FakeBridge, registry: SessionRegistry):
    fake_bridge.error = ProcessFailure("Claude command failed: boom")

    resp = _chat(client)

    assert resp.status_code == 500
    assert "boom" not in resp.text
    # The failed exchange was not recorded.
    assert len(registry.get("default").log) == 0


def test_authentication_required_maps_to_500(client: TestClient, fake_bridge: FakeBridge):
    fake_bridge.error = AuthenticationRequired()

    resp = _chat(client)

    assert resp.status_code == 500
    assert "Authentication" not in resp.text


def test_registry_dependency_can_be_overridden(environment, tmp_path):
    bridge = FakeBridge(replies=["from override"])
    override = SessionRegistry(environment, bridge_factory=lambda env: bridge, scratch_root=tmp_path)
    app = create_app(environment)
    app.dependency_overrides[get_registry] = lambda: override

    with TestClient(app) as client:
        resp = _chat(client)

    assert resp.status_code == 200
    assert resp.json()["choices"][0]["message"]["content"] == "from override"
    # No header: the default key.
    assert override.keys() == ["default"]
    override.close_all()
