"""Tests for the control event API -- POST /api/events."""

from __future__ import annotations

import json

import pytest
from aiohttp.test_utils import TestClient, TestServer

from commgr.runtime.server.app import create_app
from commgr.runtime.state.last_channel import LAST_REQ_CHANNEL

AI = "everlife-ai-svc"


@pytest.fixture()
async def client(router, settings):
    app = create_app(router, settings=settings)
    async with TestClient(TestServer(app)) as c:
        yield c


async def _post(client: TestClient, payload: dict) -> tuple[int, dict]:
    resp = await client.post("/api/events", json=payload)
    return resp.status, await resp.json()


class TestRegisterEvent:
    async def test_register(self, client, router) -> None:
        status, body = await _post(client, {
            "type": "register-msg-handler",
            "mskey": "weather-svc",
            "mstype": "weather-msg",
            "mshelp": [{"cmd": "/weather", "txt": "Current weather"}],
        })
        assert status == 200
        assert body["status"] == "ok"
        assert body["handler"]["key"] == "weather-svc"
        assert len(router.registry) == 1

    async def test_register_with_long_field_names(self, client, router) -> None:
        status, _ = await _post(client, {
            "type": "register-msg-handler",
            "key": "todo-svc",
            "messageType": "todo-msg",
            "helpEntries": [{"command": "/todo", "description": "Todo list"}],
        })
        assert status == 200
        assert [h.cmd for h in router.registry.help_index] == ["/todo"]

    async def test_register_missing_type(self, client) -> None:
        status, body = await _post(client, {
            "type": "register-msg-handler",
            "mskey": "weather-svc",
            "mshelp": [{"cmd": "/weather", "txt": "Current weather"}],
        })
        assert status == 400
        assert body["error"] == "ValidationError"
        assert body["fields"] == ["mstype"]

    async def test_register_bad_help(self, client, router) -> None:
        status, body = await _post(client, {
            "type": "register-msg-handler",
            "mskey": "weather-svc",
            "mstype": "weather-msg",
            "mshelp": [{"cmd": "weather", "txt": "no slash"}],
        })
        assert status == 400
        assert body["fields"] == ["mshelp"]
        assert router.registry.help_index == ()


class TestMessageEvents:
    async def test_message_routes_to_handler(self, client, router, network) -> None:
        network.respond("weather-svc", lambda p: True)
        router.register_handler("weather-svc", "weather-msg", [{"cmd": "/weather", "txt": "w"}])

        status, body = await _post(client, {
            "type": "message", "chan": "telegram", "ctx": 5, "msg": "rain?",
        })

        assert status == 200
        assert body == {
            "status": "ok", "outcome": "handler", "handled": True, "handler": "weather-svc",
        }

    async def test_message_with_long_field_names(self, client, network) -> None:
        status, body = await _post(client, {
            "type": "message", "channel": "web", "context": "s1", "body": "hmm",
        })
        assert status == 200
        assert body["outcome"] == "not-understood"
        assert network.sent_to("web")[0]["msg"] == "I'm sorry - I did not understand: hmm"

    async def test_message_missing_channel(self, client) -> None:
        status, body = await _post(client, {"type": "message", "ctx": 5, "msg": "hi"})
        assert status == 400
        assert body["message"] == "Request missing channel!"

    async def test_message_persists_last_channel(self, client, router, settings) -> None:
        status, _ = await _post(client, {"type": "message", "chan": "telegram", "ctx": 5})
        await router.drain()
        assert status == 200
        stored = json.loads(settings.kv_path.read_text())
        assert json.loads(stored[LAST_REQ_CHANNEL]) == {"chan": "telegram", "ctx": 5}

    async def test_not_owner_message(self, client, network) -> None:
        network.respond(AI, lambda p: "kb answer")
        status, body = await _post(client, {
            "type": "not-owner-message", "chan": "telegram", "ctx": 9, "msg": "who?",
        })
        assert status == 200
        assert body["outcome"] == "ai"
        assert network.sent_to(AI) == [{"type": "get-kb-response", "msg": "who?"}]

    async def test_probe_error_is_bad_gateway(self, client, network) -> None:
        network.fail(AI)
        status, body = await _post(client, {
            "type": "message", "chan": "telegram", "ctx": 5, "msg": "hi",
        })
        assert status == 502
        assert body["error"] == "ProbeError"

    async def test_router_keeps_serving_after_failure(self, client, network) -> None:
        network.fail("telegram")
        status, body = await _post(client, {
            "type": "message", "chan": "telegram", "ctx": 5, "msg": "hi",
        })
        assert status == 502
        assert body["error"] == "DeliveryError"

        status, _ = await _post(client, {"type": "message", "chan": "web", "ctx": 1, "msg": "hi"})
        assert status == 200


class TestReplyEvents:
    async def test_reply(self, client, network) -> None:
        status, body = await _post(client, {
            "type": "reply", "chan": "telegram", "ctx": 5, "msg": "done", "addl": {"a": 1},
        })
        assert status == 200
        assert body["sent"] is True
        assert network.sent_to("telegram") == [
            {"type": "reply", "ctx": 5, "msg": "done", "addl": {"a": 1}},
        ]

    async def test_empty_reply_is_noop(self, client, network) -> None:
        status, body = await _post(client, {"type": "reply", "chan": "telegram", "ctx": 5})
        assert status == 200
        assert body["sent"] is False
        assert network.sent_to("telegram") == []

    async def test_reply_on_last_channel_without_record(self, client) -> None:
        status, body = await _post(client, {"type": "reply-on-last-channel", "msg": "hi"})
        assert status == 400
        assert body["error"] == "NoLastChannelError"
        assert body["message"] == "No last channel found to reply on!"

    async def test_reply_on_last_channel(self, client, network) -> None:
        await _post(client, {"type": "message", "chan": "telegram", "ctx": 5})
        status, body = await _post(client, {"type": "reply-on-last-channel", "msg": "ping"})
        assert status == 200
        assert body["chan"] == "telegram"
        assert network.sent_to("telegram")[-1]["msg"] == "ping"


class TestMisc:
    async def test_unknown_type(self, client) -> None:
        status, body = await _post(client, {"type": "add-channel", "pkg": "x"})
        assert status == 400
        assert "Unknown event type" in body["message"]

    async def test_invalid_json(self, client) -> None:
        resp = await client.post("/api/events", data="not json")
        assert resp.status == 400

    async def test_handlers_listing(self, client, router) -> None:
        router.register_handler("a", "t", [{"cmd": "/a", "txt": "alpha"}])
        resp = await client.get("/api/handlers")
        assert resp.status == 200
        data = await resp.json()
        assert data["handlers"][0]["key"] == "a"
        assert data["help"] == [{"cmd": "/a", "txt": "alpha"}]
        assert data["current"] is None

    async def test_health(self, client) -> None:
        resp = await client.get("/health")
        assert resp.status == 200
        assert (await resp.json())["status"] == "ok"

    async def test_startup_restores_last_channel(self, router, settings) -> None:
        settings.kv_path.write_text(json.dumps({
            LAST_REQ_CHANNEL: json.dumps({"chan": "x", "ctx": "y"}),
        }))
        app = create_app(router, settings=settings)
        async with TestClient(TestServer(app)):
            assert router.last_request is not None
            assert router.last_request.chan == "x"
