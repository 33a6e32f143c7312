"""API integration tests.

Exercises the FastAPI endpoints against a dispatch loop backed by the
scripted provider.
"""

from collections.abc import Generator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from agentcrew.api import api_router, init_dependencies
from agentcrew.core import (
    AgentProfileTable,
    CapabilityRegistry,
    DispatchLoop,
    IntentClassifier,
    ThreadMemoryStore,
)
from agentcrew.models import HandoffSignal, ModelResponse, ToolCall
from agentcrew.utils.error_handlers import register_error_handlers
from agentcrew.utils.observability import LangfuseClient

ARTICLE = "Pay figures TBC. Vacancies TBD. Turnover N/A. Growth XX%."


@pytest.fixture
def app() -> FastAPI:
    """Bare application with the API router and error handlers."""
    app = FastAPI(title="agentcrew test")
    register_error_handlers(app)
    app.include_router(api_router)
    return app


@pytest.fixture
def loop(
    provider,
    registry: CapabilityRegistry,
    profiles: AgentProfileTable,
    classifier: IntentClassifier,
) -> Generator[DispatchLoop, None, None]:
    """Dispatch loop wired into the routers for the duration of a test."""
    dispatcher = DispatchLoop(
        provider=provider,
        registry=registry,
        profiles=profiles,
        classifier=classifier,
        memory=ThreadMemoryStore(ttl_seconds=60, max_messages=10),
        observability=LangfuseClient(enabled=False),
    )
    init_dependencies(dispatcher, registry=registry, quality_threshold=70)
    yield dispatcher
    init_dependencies(None)


@pytest.fixture
def client(app: FastAPI, loop: DispatchLoop) -> TestClient:
    return TestClient(app)


def _body(text: str, thread_id: str = "t-1") -> dict:
    return {
        "user_id": "u-1",
        "thread_id": thread_id,
        "channel_id": "c-1",
        "messages": [{"role": "user", "text": text}],
    }


class TestHealth:
    """Tests for the health endpoint."""

    def test_degraded_without_dispatcher(self, app: FastAPI):
        init_dependencies(None)
        response = TestClient(app).get("/api/v1/health")
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "degraded"

    def test_healthy(self, client: TestClient):
        data = client.get("/api/v1/health").json()["data"]
        assert data["status"] == "healthy"
        assert data["agents"] == 3
        assert data["capabilities"] == 2
        assert data["sweeper_running"] is False
        assert data["provider"] is None

    def test_provider_health_check(self, client: TestClient):
        data = client.get("/api/v1/health", params={"check_provider": True}).json()["data"]
        assert data["status"] == "healthy"
        assert data["provider"] == {"provider": "fake", "status": "unknown"}

    def test_unhealthy_provider_degrades(
        self, client: TestClient, provider, monkeypatch: pytest.MonkeyPatch
    ):
        async def unhealthy():
            return {"provider": "fake", "status": "unhealthy", "error": "401"}

        monkeypatch.setattr(provider, "health_check", unhealthy)

        data = client.get("/api/v1/health?check_provider=true").json()["data"]
        assert data["status"] == "degraded"
        assert data["provider"]["error"] == "401"

    def test_unwired_endpoints_unavailable(self, app: FastAPI):
        init_dependencies(None)
        response = TestClient(app).get("/api/v1/agents")
        assert response.status_code == 503
        assert response.json()["error"]["code"] == "ServiceUnavailableError"


class TestDispatch:
    """Tests for the dispatch endpoint."""

    def test_plain_reply(self, client: TestClient, provider):
        provider.queue(ModelResponse(text="Hi! How can I help?"))

        response = client.post("/api/v1/dispatch", json=_body("Hello"))

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["text"] == "Hi! How can I help?"
        assert data["agent_id"] == "maven"
        assert data["agent_name"] == "Maven"
        assert data["handoff_chain"] == ["maven"]

    def test_tool_turn(self, client: TestClient, provider):
        provider.queue(
            ModelResponse(
                tool_calls=[ToolCall(call_id="c1", name="echo", arguments={"text": "hi"})]
            ),
            ModelResponse(text="Echoed."),
        )

        data = client.post("/api/v1/dispatch", json=_body("research echo")).json()["data"]

        assert data["agent_id"] == "scout"
        assert data["emoji"] == ":mag:"
        assert data["capabilities_used"] == ["echo"]
        assert data["text"] == "Echoed."

    def test_handoff(self, client: TestClient, provider):
        provider.queue(
            ModelResponse(
                text="Let me pass this on.",
                handoff=HandoffSignal(target_agent_id="sage", reason="strategy question"),
            ),
            ModelResponse(text="Here is the plan."),
        )

        data = client.post("/api/v1/dispatch", json=_body("Help me")).json()["data"]

        assert data["handoff_chain"] == ["maven", "sage"]
        assert data["agent_id"] == "sage"

    def test_model_failure_returns_apology(self, client: TestClient, provider):
        provider.queue(RuntimeError("provider down"))

        response = client.post("/api/v1/dispatch", json=_body("Hello"))

        assert response.status_code == 200
        assert response.json()["data"]["text"] == "Maven hit a snag."

    @pytest.mark.parametrize(
        "body",
        [
            {"user_id": "u-1", "thread_id": "t-1", "messages": []},
            {"user_id": "u-1", "thread_id": "t-1", "messages": [{"role": "assistant", "text": "x"}]},
            {"thread_id": "t-1", "messages": [{"text": "hi"}]},
        ],
    )
    def test_invalid_request(self, client: TestClient, body: dict):
        response = client.post("/api/v1/dispatch", json=body)
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "ValidationError"


class TestThreads:
    """Tests for thread endpoints."""

    def test_messages_after_turn(self, client: TestClient, provider):
        provider.queue(ModelResponse(text="Hello there."))
        client.post("/api/v1/dispatch", json=_body("Hello"))

        response = client.get("/api/v1/threads/t-1/messages")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["current_agent"] == "maven"
        assert data["message_count"] == 2
        assert [m["role"] for m in data["messages"]] == ["user", "assistant"]
        assert data["messages"][1]["agent_id"] == "maven"

    def test_unknown_thread(self, client: TestClient):
        response = client.get("/api/v1/threads/missing/messages")
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NotFoundError"

    def test_clear_thread(self, client: TestClient, provider):
        client.post("/api/v1/dispatch", json=_body("Hello"))

        response = client.delete("/api/v1/threads/t-1")
        assert response.status_code == 200
        assert response.json()["data"] == {"thread_id": "t-1", "cleared": True}

        assert client.delete("/api/v1/threads/t-1").status_code == 404
        assert client.get("/api/v1/threads/t-1/messages").status_code == 404

    def test_memory_stats(self, client: TestClient):
        client.post("/api/v1/dispatch", json=_body("Hello", thread_id="a"))
        client.post("/api/v1/dispatch", json=_body("Hello", thread_id="b"))

        data = client.get("/api/v1/memory/stats").json()["data"]

        assert data["total_threads"] == 2
        assert data["active_threads"] == 2
        assert data["average_messages"] == 2.0


class TestAgents:
    """Tests for agent endpoints."""

    def test_list(self, client: TestClient):
        body = client.get("/api/v1/agents").json()
        assert [a["agent_id"] for a in body["data"]] == ["scout", "sage", "maven"]
        assert body["metadata"] == {"count": 3, "default_agent": "maven"}

    def test_get(self, client: TestClient):
        data = client.get("/api/v1/agents/sage").json()["data"]
        assert data["name"] == "Sage"
        assert data["model_tier"] == "advanced"
        assert data["capabilities"] == ["echo"]

    def test_unknown_agent(self, client: TestClient):
        response = client.get("/api/v1/agents/wizard")
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "UnknownAgentError"


class TestQualityReview:
    """Tests for the quality review endpoint."""

    def test_review(self, client: TestClient):
        response = client.post("/api/v1/quality/review", json={"article": ARTICLE})

        assert response.status_code == 200
        body = response.json()
        assert body["data"]["score"] == 62
        assert body["data"]["passed"] is False
        assert body["data"]["threshold"] == 70
        assert body["metadata"]["issue_count"] == len(body["data"]["issues"])

    def test_threshold_override(self, client: TestClient):
        data = client.post(
            "/api/v1/quality/review", json={"article": ARTICLE, "threshold": 0}
        ).json()["data"]
        assert data["passed"] is True
        assert data["threshold"] == 0

    def test_empty_article(self, client: TestClient):
        assert client.post("/api/v1/quality/review", json={"article": ""}).status_code == 422
