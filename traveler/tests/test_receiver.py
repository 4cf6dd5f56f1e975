"""
Tests for the passive receiver
"""

import json

import pytest
from fastapi.testclient import TestClient

from traveler.common.config import ReceiverConfig
from traveler.common.errors import UpstreamError
from traveler.ingress.receiver import build_relay_text, infer_source, create_receiver_app
from traveler.ingress.verifier import sign_body

SECRET = "shared"


class FakeGateway:
    def __init__(self, fail=False):
        self.calls = []
        self.fail = fail

    async def invoke(self, tool, action=None, args=None, session_key=None):
        self.calls.append({"tool": tool, "action": action, "args": args, "session_key": session_key})
        if self.fail:
            raise UpstreamError("openclaw_invoke_failed status=502 body=bad gateway")
        return {"ok": True}

    async def close(self):
        pass


def make_app(gateway=None, **overrides):
    return TestClient(create_receiver_app(ReceiverConfig(**overrides), gateway_client=gateway))


class TestInferSource:
    def test_explicit_header_wins(self):
        assert infer_source({"x-traveler-source": " slack ", "x-github-event": "push"}) == "slack"

    def test_github(self):
        assert infer_source({"x-github-event": "push"}) == "github"

    def test_custom(self):
        assert infer_source({}) == "custom"


class TestReceiver:
    def test_healthz(self):
        response = make_app().get("/healthz")

        assert response.status_code == 200
        assert response.json() == {"ok": True, "service": "traveler-receiver"}

    def test_source_not_allowed(self):
        gateway = FakeGateway()
        client = make_app(gateway, allow_sources=frozenset({"slack"}))

        response = client.post("/webhook", content=b'{"action":"opened"}', headers={"x-github-event": "issues"})

        assert response.status_code == 200
        assert response.json() == {"ok": True, "ignored": True, "reason": "source_not_allowed:github"}
        assert gateway.calls == []

    def test_bad_signature(self):
        gateway = FakeGateway()
        client = make_app(gateway, shared_secret=SECRET)

        response = client.post("/webhook", content=b"{}", headers={"x-signature-256": "sha256=deadbeef"})

        assert response.status_code == 401
        assert response.json() == {"ok": False, "error": "signature_verification_failed"}
        assert gateway.calls == []

    def test_missing_signature(self):
        response = make_app(FakeGateway(), shared_secret=SECRET).post("/webhook", content=b"{}")

        assert response.status_code == 401
        assert response.json()["error"] == "signature_verification_failed"

    def test_signed_event_is_forwarded(self):
        gateway = FakeGateway()
        client = make_app(gateway, shared_secret=SECRET, session_key="main")
        body = b'{"action":"opened","number":7}'

        response = client.post("/webhook", content=body, headers={
            "x-github-event": "pull_request",
            "x-github-delivery": "abc-123",
            "x-signature-256": sign_body(SECRET, body),
        })

        assert response.status_code == 200
        assert response.json() == {"ok": True, "forwarded": True}
        call = gateway.calls[0]
        assert call["tool"] == "cron"
        assert call["action"] == "wake"
        assert call["session_key"] == "main"
        assert call["args"]["mode"] == "now"

        text = call["args"]["text"]
        lines = text.split("\n")
        assert lines[0] == "[Traveler] Passive event received (github)"
        assert lines[2] == "Context (structured):"
        envelope = json.loads(lines[3])
        assert envelope["source"] == "github"
        assert envelope["headers"] == {"x-github-event": "pull_request", "x-github-delivery": "abc-123"}
        assert envelope["body"] == {"action": "opened", "number": 7}
        assert envelope["receivedAt"].endswith("Z")
        assert lines[-2:] == [
            "- Decide whether to record this as a Rote note.",
            "- If you write to Rote, include the source + why it matters.",
        ]

    def test_non_json_body_forwarded_as_text(self):
        gateway = FakeGateway()

        make_app(gateway).post("/webhook", content=b"plain text", headers={"x-traveler-source": "cron"})

        envelope = json.loads(gateway.calls[0]["args"]["text"].split("\n")[3])
        assert envelope["body"] == "plain text"
        assert envelope["headers"] == {"x-github-event": None, "x-github-delivery": None}

    def test_empty_session_key_omitted(self):
        gateway = FakeGateway()

        make_app(gateway).post("/webhook", content=b"{}")

        assert gateway.calls[0]["session_key"] is None

    def test_relay_failure(self):
        response = make_app(FakeGateway(fail=True)).post("/webhook", content=b"{}")

        assert response.status_code == 502
        assert response.json() == {"ok": False, "error": "relay_failed"}

    def test_no_gateway_configured(self):
        response = make_app().post("/webhook", content=b"{}")

        assert response.status_code == 200
        assert response.json() == {"ok": True, "forwarded": False}

    def test_custom_path_and_routing_errors(self):
        client = make_app(FakeGateway(), path="/hooks/in")

        assert client.post("/hooks/in", content=b"{}").status_code == 200
        missing = client.post("/webhook", content=b"{}")
        assert missing.status_code == 404
        assert missing.json() == {"ok": False, "error": "not_found"}
        wrong = client.get("/hooks/in")
        assert wrong.status_code == 405
        assert wrong.json() == {"ok": False, "error": "method_not_allowed"}

    def test_trailing_slash_is_not_found(self):
        gateway = FakeGateway()
        client = make_app(gateway)

        response = client.post("/webhook/", content=b"{}", follow_redirects=False)

        assert response.status_code == 404
        assert response.json() == {"ok": False, "error": "not_found"}
        assert gateway.calls == []

    @pytest.mark.parametrize("method,path", [
        ("GET", "/anything"),
        ("PUT", "/webhook"),
        ("DELETE", "/healthz"),
        ("PATCH", "/nested/path/"),
    ])
    def test_method_checked_before_path(self, method, path):
        response = make_app(FakeGateway()).request(method, path)

        assert response.status_code == 405
        assert response.json() == {"ok": False, "error": "method_not_allowed"}

    def test_post_to_healthz_is_not_found(self):
        response = make_app(FakeGateway()).post("/healthz", content=b"{}")

        assert response.status_code == 404


class TestRelayText:
    def test_fixed_layout(self):
        text = build_relay_text("custom", {"source": "custom"})

        assert text.split("\n") == [
            "[Traveler] Passive event received (custom)",
            "",
            "Context (structured):",
            '{"source":"custom"}',
            "",
            "Instruction:",
            "- Decide whether to record this as a Rote note.",
            "- If you write to Rote, include the source + why it matters.",
        ]
