"""
Tests for the client workflow: session, profile form, chat, summary,
report analysis and notifications.
"""

import asyncio
import json
from pathlib import Path
from typing import Callable, Dict, List, Optional
from unittest.mock import patch

import httpx
import pytest
import pytest_asyncio

from healthyaar.client import (
    FALLBACK_TEXT,
    GREETING,
    ClientSettings,
    CredentialStore,
    GatewayState,
    HealthApp,
    NotificationCenter,
)
from healthyaar.errors import InvalidUpload
from healthyaar.models import Profile


def gemini_body(text: str) -> dict:
    return {"candidates": [{"content": {"role": "model", "parts": [{"text": text}]}}], "text": text}


class FakeBackend:
    """Routes requests to per-path handlers and records every request."""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.routes: Dict[str, Callable] = {
            "POST /auth/anonymous": lambda req: httpx.Response(
                201, json={"access_token": "anon-token", "uid": "anon-1", "is_anonymous": True}),
            "POST /auth/custom-token": lambda req: httpx.Response(
                200, json={"access_token": "custom-token", "uid": "patient-7", "is_anonymous": False}),
            "GET /auth/me": lambda req: httpx.Response(
                200, json={"uid": "stored-1", "is_anonymous": True}),
            "POST /auth/logout": lambda req: httpx.Response(204),
            "GET /profile": lambda req: httpx.Response(
                200, json={"exists": False, "profile": Profile().to_document()}),
            "PUT /profile": lambda req: httpx.Response(
                200, json={"exists": True, "profile": json.loads(req.content)}),
            "POST /api/chat": lambda req: httpx.Response(200, json=gemini_body("reply")),
            "POST /api/generateHealthSummary": lambda req: httpx.Response(
                200, json=gemini_body("<h3>Your Personalized Health Summary:</h3>")),
            "POST /api/analyzeReportImage": lambda req: httpx.Response(
                200, json=gemini_body("<h4>Summary</h4>")),
        }

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes[f"{request.method} {request.url.path}"]
        response = route(request)
        if asyncio.iscoroutine(response):
            response = await response
        return response

    def calls(self, method: str, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def client_settings():
    return ClientSettings(base_url="http://testserver", credential_path=None, initial_auth_token=None)


@pytest.fixture
def make_app(backend, client_settings):
    def factory(credentials: Optional[CredentialStore] = None) -> HealthApp:
        return HealthApp(client_settings, transport=backend.transport(), credentials=credentials)
    return factory


@pytest_asyncio.fixture
async def started_app(make_app):
    app = make_app()
    assert await app.start()
    return app


class TestSessionManager:

    @pytest.mark.asyncio
    async def test_anonymous_when_nothing_else(self, make_app, backend):
        app = make_app()
        assert app.session.ready is False

        assert await app.session.resolve() is True
        assert app.session.ready is True
        assert app.session.identity.uid == "anon-1"
        assert len(backend.calls("POST", "/auth/anonymous")) == 1

    @pytest.mark.asyncio
    async def test_custom_token_before_anonymous(self, make_app, backend):
        app = make_app()
        await app.session.resolve(initial_token="one-time")

        assert app.session.identity.uid == "patient-7"
        assert app.session.identity.is_anonymous is False
        assert json.loads(backend.calls("POST", "/auth/custom-token")[0].content) == {"token": "one-time"}
        assert backend.calls("POST", "/auth/anonymous") == []

    @pytest.mark.asyncio
    async def test_persisted_credential_first(self, make_app, backend, tmp_path):
        path = tmp_path / "credential.json"
        path.write_text(json.dumps({"uid": "stored-1", "token": "stored-token", "is_anonymous": True}))

        app = make_app(CredentialStore(str(path)))
        await app.session.resolve(initial_token="one-time")

        assert app.session.identity.token == "stored-token"
        assert backend.calls("GET", "/auth/me")[0].headers["Authorization"] == "Bearer stored-token"
        assert backend.calls("POST", "/auth/custom-token") == []

    @pytest.mark.asyncio
    async def test_rejected_persisted_credential_falls_through(self, make_app, backend, tmp_path):
        path = tmp_path / "credential.json"
        path.write_text(json.dumps({"uid": "old", "token": "expired", "is_anonymous": True}))
        backend.routes["GET /auth/me"] = lambda req: httpx.Response(401, json={"detail": "expired"})

        app = make_app(CredentialStore(str(path)))
        await app.session.resolve()

        assert app.session.identity.uid == "anon-1"
        assert json.loads(path.read_text())["token"] == "anon-token"

    @pytest.mark.asyncio
    async def test_failure_notifies_and_stays_not_ready(self, make_app, backend):
        def refuse(req):
            raise httpx.ConnectError("refused", request=req)

        backend.routes["POST /auth/anonymous"] = refuse
        app = make_app()

        assert await app.session.resolve() is False
        assert app.session.ready is False
        assert app.session.identity is None
        assert app.notifications.current.message == "Could not connect to essential services."
        assert app.notifications.current.severity == "error"
        assert len(backend.calls("POST", "/auth/anonymous")) == 1

    @pytest.mark.asyncio
    async def test_listeners_see_changes(self, make_app):
        app = make_app()
        seen = []
        app.session.subscribe(seen.append)

        await app.session.resolve()
        await app.session.logout()

        assert seen[0].uid == "anon-1"
        assert seen[1] is None


class TestProfileForm:

    @pytest.mark.asyncio
    async def test_not_found_keeps_defaults(self, started_app):
        assert started_app.profile.data == Profile()

    @pytest.mark.asyncio
    async def test_found_profile_fills_form(self, make_app, backend):
        stored = Profile(full_name="Asha", height=160).to_document()
        backend.routes["GET /profile"] = lambda req: httpx.Response(
            200, json={"exists": True, "profile": stored})

        app = make_app()
        await app.start()

        assert app.profile.data.full_name == "Asha"
        assert app.profile.data.height == 160
        assert app.profile.data.gender == "Male"

    @pytest.mark.asyncio
    async def test_save_sends_form(self, started_app, backend):
        started_app.profile.update(height=180, smokingStatus="Former")

        assert await started_app.profile.save() is True
        body = json.loads(backend.calls("PUT", "/profile")[0].content)
        assert body["height"] == 180
        assert body["smokingStatus"] == "Former"
        assert backend.calls("PUT", "/profile")[0].headers["Authorization"] == "Bearer anon-token"
        assert started_app.notifications.current.message == "Profile saved successfully!"

    @pytest.mark.asyncio
    async def test_save_without_identity_is_local_error(self, make_app, backend):
        app = make_app()

        assert await app.profile.save() is False
        assert await app.profile.load() is False
        assert backend.calls("PUT", "/profile") == []
        assert backend.calls("GET", "/profile") == []
        assert app.notifications.current.severity == "error"

    @pytest.mark.asyncio
    async def test_save_failure_notifies(self, started_app, backend):
        backend.routes["PUT /profile"] = lambda req: httpx.Response(503, json={"detail": "down"})
        assert await started_app.profile.save() is False
        assert started_app.notifications.current.message == "Failed to save profile."

    @pytest.mark.asyncio
    async def test_load_failure_notifies(self, make_app, backend):
        backend.routes["GET /profile"] = lambda req: httpx.Response(503, json={"detail": "down"})
        app = make_app()
        await app.start()
        assert app.profile.data == Profile()
        assert app.notifications.current.message == "Failed to load your profile data."


class TestChatSession:

    @pytest.mark.asyncio
    async def test_starts_with_greeting(self, started_app):
        assert [(m.role, m.text) for m in started_app.chat.messages] == [("assistant", GREETING)]

    @pytest.mark.asyncio
    async def test_history_excludes_greeting_and_keeps_order(self, started_app, backend):
        await started_app.chat.send("A")
        await started_app.chat.send("B")

        second = json.loads(backend.calls("POST", "/api/chat")[1].content)
        assert second["messages"] == [
            {"role": "user", "text": "A"},
            {"role": "assistant", "text": "reply"},
            {"role": "user", "text": "B"},
        ]
        assert second["profile"]["gender"] == "Male"

    @pytest.mark.asyncio
    async def test_reply_text_appended(self, started_app, backend):
        backend.routes["POST /api/chat"] = lambda req: httpx.Response(200, json=gemini_body("X"))

        assert await started_app.chat.send("Hello") is True
        assert [(m.role, m.text) for m in started_app.chat.messages[1:]] == [
            ("user", "Hello"), ("assistant", "X"),
        ]
        assert started_app.gateway.channels["chat"].last_outcome == GatewayState.SUCCESS

    @pytest.mark.asyncio
    @pytest.mark.parametrize("response", [
        httpx.Response(502, json={"detail": "Upstream responded with status 500"}),
        httpx.Response(200, json={"candidates": []}),
        httpx.Response(200, text="not json"),
    ])
    async def test_failure_appends_one_fallback(self, started_app, backend, response):
        backend.routes["POST /api/chat"] = lambda req: response

        await started_app.chat.send("Hello")

        assistant = [m for m in started_app.chat.messages[1:] if m.role == "assistant"]
        assert [m.text for m in assistant] == [FALLBACK_TEXT["chat"]]
        assert started_app.gateway.channels["chat"].last_outcome == GatewayState.FAILED
        assert started_app.gateway.channels["chat"].state == GatewayState.IDLE

    @pytest.mark.asyncio
    async def test_network_failure_appends_fallback(self, started_app, backend):
        def refuse(req):
            raise httpx.ConnectError("refused", request=req)

        backend.routes["POST /api/chat"] = refuse
        await started_app.chat.send("Hello")
        assert started_app.chat.messages[-1].text == FALLBACK_TEXT["chat"]

    @pytest.mark.asyncio
    async def test_blank_input_ignored(self, started_app, backend):
        assert await started_app.chat.send("   ") is False
        assert backend.calls("POST", "/api/chat") == []
        assert len(started_app.chat.messages) == 1

    @pytest.mark.asyncio
    async def test_one_request_in_flight(self, started_app, backend):
        release = asyncio.Event()

        async def slow_reply(req):
            await release.wait()
            return httpx.Response(200, json=gemini_body("reply"))

        backend.routes["POST /api/chat"] = slow_reply

        first = asyncio.create_task(started_app.chat.send("A"))
        await asyncio.sleep(0)
        while not backend.calls("POST", "/api/chat"):
            await asyncio.sleep(0)

        assert started_app.chat.is_loading is True
        assert await started_app.chat.send("B") is False

        release.set()
        assert await first is True

        assert len(backend.calls("POST", "/api/chat")) == 1
        assert [m.text for m in started_app.chat.messages[1:]] == ["A", "reply"]
        assert started_app.chat.is_loading is False

    @pytest.mark.asyncio
    async def test_gathered_sends_make_one_call(self, started_app, backend):
        release = asyncio.Event()

        async def slow_reply(req):
            await release.wait()
            return httpx.Response(200, json=gemini_body("reply"))

        async def release_later():
            await asyncio.sleep(0.01)
            release.set()

        backend.routes["POST /api/chat"] = slow_reply
        results = await asyncio.gather(
            started_app.chat.send("A"), started_app.chat.send("B"), release_later()
        )

        assert sorted(results[:2]) == [False, True]
        assert len(backend.calls("POST", "/api/chat")) == 1
        assert started_app.gateway.channels["chat"].calls == 1

    @pytest.mark.asyncio
    async def test_without_identity_falls_back(self, make_app, backend):
        app = make_app()
        await app.chat.send("Hello")
        assert app.chat.messages[-1].text == FALLBACK_TEXT["chat"]
        assert backend.calls("POST", "/api/chat") == []


class TestSummaryGenerator:

    @pytest.mark.asyncio
    async def test_requires_height_and_weight(self, started_app, backend):
        started_app.profile.update(height=170)

        assert await started_app.summary.generate() is False
        assert backend.calls("POST", "/api/generateHealthSummary") == []
        assert "height and weight" in started_app.notifications.current.message

    @pytest.mark.asyncio
    async def test_generates_summary(self, started_app, backend):
        started_app.profile.update(height=170, weight=65)

        assert await started_app.summary.generate() is True
        assert started_app.summary.summary.startswith("<h3>")
        body = json.loads(backend.calls("POST", "/api/generateHealthSummary")[0].content)
        assert body["formData"]["weight"] == 65

    @pytest.mark.asyncio
    async def test_failure_uses_fallback(self, started_app, backend):
        backend.routes["POST /api/generateHealthSummary"] = lambda req: httpx.Response(500)
        started_app.profile.update(height=170, weight=65)

        assert await started_app.summary.generate() is False
        assert started_app.summary.summary == FALLBACK_TEXT["summary"]


class TestReportAnalyzer:

    @pytest.mark.asyncio
    async def test_non_image_rejected(self, started_app):
        started_app.report.select_image("scan.png", b"\x89PNG", "image/png")

        with pytest.raises(InvalidUpload):
            started_app.report.select_image("report.pdf", b"%PDF", "application/pdf")

        assert started_app.report.pending is None
        assert started_app.report.preview is None
        assert started_app.notifications.current.severity == "error"

    @pytest.mark.asyncio
    async def test_valid_image_sets_payload_and_preview(self, started_app):
        pending = started_app.report.select_image("scan.png", b"\x89PNG", "image/png")

        assert started_app.report.pending is pending
        assert pending.data == b"\x89PNG"
        assert started_app.report.preview == "data:image/png;base64,iVBORw=="

    @pytest.mark.asyncio
    async def test_analyze_sends_base64_and_discards_image(self, started_app, backend):
        started_app.report.select_image("scan.jpg", b"jpegdata", "image/jpeg")

        assert await started_app.report.analyze() is True
        body = json.loads(backend.calls("POST", "/api/analyzeReportImage")[0].content)
        assert body == {"image": "anBlZ2RhdGE=", "mimeType": "image/jpeg"}
        assert started_app.report.analysis == "<h4>Summary</h4>"
        assert started_app.report.pending is None

    @pytest.mark.asyncio
    async def test_analyze_without_image(self, started_app, backend):
        assert await started_app.report.analyze() is False
        assert backend.calls("POST", "/api/analyzeReportImage") == []
        assert started_app.notifications.current.message == "Please upload a report image first."

    @pytest.mark.asyncio
    async def test_failure_uses_fallback(self, started_app, backend):
        backend.routes["POST /api/analyzeReportImage"] = lambda req: httpx.Response(400, json={"detail": "bad"})
        started_app.report.select_image("scan.jpg", b"jpegdata", "image/jpeg")

        assert await started_app.report.analyze() is False
        assert started_app.report.analysis == FALLBACK_TEXT["report"]


class TestLogout:

    @pytest.mark.asyncio
    async def test_logout_resets_everything(self, started_app, backend):
        started_app.profile.update(
            full_name="Asha", gender="Female", smoking_status="Current",
            stress_level="High", height=160, weight=55,
        )
        await started_app.chat.send("Hi")
        started_app.report.select_image("scan.png", b"\x89PNG", "image/png")

        await started_app.logout()

        assert started_app.session.identity is None
        assert started_app.session.ready is False
        assert started_app.profile.data == Profile()
        assert started_app.profile.data.gender == "Male"
        assert started_app.profile.data.smoking_status == "Never"
        assert len(started_app.profile.data.to_document()) == 17
        assert len(started_app.chat.messages) == 1
        assert started_app.report.pending is None
        assert backend.calls("POST", "/auth/logout")[0].headers["Authorization"] == "Bearer anon-token"
        assert started_app.notifications.current.message == "You have been logged out."

    @pytest.mark.asyncio
    async def test_state_cleared_even_if_revocation_fails(self, started_app, backend):
        def refuse(req):
            raise httpx.ConnectError("refused", request=req)

        backend.routes["POST /auth/logout"] = refuse
        started_app.profile.update(full_name="Asha")

        await started_app.logout()

        assert started_app.session.identity is None
        assert started_app.profile.data.full_name == ""

    @pytest.mark.asyncio
    async def test_logout_removes_persisted_credential(self, make_app, tmp_path):
        path = tmp_path / "credential.json"
        app = make_app(CredentialStore(str(path)))
        await app.start()
        assert path.exists()

        await app.logout()
        assert not path.exists()

    @pytest.mark.asyncio
    async def test_unremovable_credential_does_not_block_logout(self, make_app, tmp_path):
        path = tmp_path / "credential.json"
        app = make_app(CredentialStore(str(path)))
        await app.start()
        app.profile.update(full_name="Asha")

        with patch.object(Path, "unlink", side_effect=PermissionError("denied")):
            await app.logout()

        assert app.session.identity is None
        assert app.profile.data == Profile()
        assert app.notifications.current.message == "You have been logged out."


class TestLogoutDuringRequest:
    """Replies for a previous identity never reach the reset state."""

    @staticmethod
    def gate(backend, route, response):
        release = asyncio.Event()

        async def held(req):
            await release.wait()
            return response

        backend.routes[route] = held
        return release

    @staticmethod
    async def wait_for_call(backend, method, path):
        while not backend.calls(method, path):
            await asyncio.sleep(0)

    @pytest.mark.asyncio
    async def test_chat_reply_dropped(self, started_app, backend):
        release = self.gate(backend, "POST /api/chat",
                            httpx.Response(200, json=gemini_body("previous user's answer")))

        pending = asyncio.create_task(started_app.chat.send("A"))
        await self.wait_for_call(backend, "POST", "/api/chat")
        await started_app.logout()
        release.set()

        assert await pending is False
        assert [(m.role, m.text) for m in started_app.chat.messages] == [("assistant", GREETING)]
        assert started_app.chat.outbound_history() == []

    @pytest.mark.asyncio
    async def test_profile_load_dropped(self, make_app, backend):
        stored = Profile(full_name="Asha", height=160).to_document()
        release = self.gate(backend, "GET /profile",
                            httpx.Response(200, json={"exists": True, "profile": stored}))
        app = make_app()

        starting = asyncio.create_task(app.start())
        await self.wait_for_call(backend, "GET", "/profile")
        await app.logout()
        release.set()
        await starting

        assert app.session.identity is None
        assert app.profile.data == Profile()
        assert app.profile.loading is False

    @pytest.mark.asyncio
    async def test_summary_dropped(self, started_app, backend):
        release = self.gate(backend, "POST /api/generateHealthSummary",
                            httpx.Response(200, json=gemini_body("<h3>Old summary</h3>")))
        started_app.profile.update(height=170, weight=65)

        pending = asyncio.create_task(started_app.summary.generate())
        await self.wait_for_call(backend, "POST", "/api/generateHealthSummary")
        await started_app.logout()
        release.set()

        assert await pending is False
        assert started_app.summary.summary == ""

    @pytest.mark.asyncio
    async def test_report_analysis_dropped(self, started_app, backend):
        release = self.gate(backend, "POST /api/analyzeReportImage",
                            httpx.Response(200, json=gemini_body("<h4>Old report</h4>")))
        started_app.report.select_image("scan.png", b"\x89PNG", "image/png")

        pending = asyncio.create_task(started_app.report.analyze())
        await self.wait_for_call(backend, "POST", "/api/analyzeReportImage")
        await started_app.logout()
        release.set()

        assert await pending is False
        assert started_app.report.analysis == ""
        assert started_app.report.pending is None

    @pytest.mark.asyncio
    async def test_next_identity_starts_clean(self, started_app, backend):
        release = self.gate(backend, "POST /api/chat",
                            httpx.Response(200, json=gemini_body("previous user's answer")))
        pending = asyncio.create_task(started_app.chat.send("A"))
        await self.wait_for_call(backend, "POST", "/api/chat")
        await started_app.logout()
        release.set()
        await pending

        backend.routes["POST /api/chat"] = lambda req: httpx.Response(200, json=gemini_body("hello"))
        assert await started_app.start() is True
        await started_app.chat.send("B")

        body = json.loads(backend.calls("POST", "/api/chat")[-1].content)
        assert body["messages"] == [{"role": "user", "text": "B"}]


class TestNotificationCenter:

    def test_expires_after_ttl(self):
        now = [100.0]
        center = NotificationCenter(ttl=3.0, clock=lambda: now[0])

        center.show("Saved")
        now[0] += 2.9
        assert center.current.message == "Saved"
        now[0] += 0.2
        assert center.current is None

    def test_newer_notification_replaces_older(self):
        center = NotificationCenter()
        center.show("first")
        center.error("second")
        assert center.current.message == "second"
        assert center.current.severity == "error"
        assert [n.message for n in center.history] == ["first", "second"]

    @pytest.mark.asyncio
    async def test_timer_dismisses(self):
        center = NotificationCenter(ttl=0.01)
        center.show("Saved")
        await asyncio.sleep(0.05)
        assert center._current is None


class TestEndToEnd:
    """Client workflow against the real application over ASGI."""

    @pytest.mark.asyncio
    async def test_profile_and_chat_round_trip(self, settings, fake_provider, client_settings):
        from healthyaar.main import create_app

        backend_app = create_app(settings, llm_provider=fake_provider)
        transport = httpx.ASGITransport(app=backend_app)

        app = HealthApp(client_settings, transport=transport)
        assert await app.start() is True

        app.profile.update(weight=70, allergies="Peanuts")
        assert await app.profile.save() is True

        app.profile.reset()
        assert await app.profile.load() is True
        assert app.profile.data.weight == 70
        assert app.profile.data.allergies == "Peanuts"

        await app.chat.send("Any tips for sleep?")
        assert app.chat.messages[-1].text == "Stay hydrated."
        assert [c.role for c in fake_provider.calls[0]["contents"]] == ["user"]
