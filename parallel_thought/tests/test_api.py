"""HTTP surface tests against the FastAPI app with scripted providers."""

import pytest
from fastapi.testclient import TestClient

from fakes import FakeAdapter, failing, make_manager
from parallel_thought import main as pt_main
from parallel_thought.config import EngineConfig


@pytest.fixture(autouse=True)
def setup_manager():
    adapters = {
        "openai": FakeAdapter("openai", reply="openai answer"),
        "anthropic": FakeAdapter("anthropic", reply="synthesized"),
        "gemini": failing("Gemini", "Service Unavailable"),
        "deepseek": FakeAdapter("deepseek", reply="cheap answer"),
    }
    pt_main.manager = make_manager(adapters, config=EngineConfig(synthesis_provider="anthropic"))
    yield adapters
    pt_main.manager = None


def make_client():
    return TestClient(pt_main.app)


class TestProvidersAndHealth:
    def test_health(self):
        with make_client() as c:
            r = c.get("/health")
        assert r.status_code == 200
        assert r.json() == {"status": "ok", "providers": ["openai", "anthropic", "gemini", "deepseek"]}

    def test_health_degraded_without_providers(self):
        pt_main.manager = make_manager({})
        with make_client() as c:
            assert c.get("/health").json()["status"] == "degraded"

    def test_list_providers_and_tiers(self):
        with make_client() as c:
            everything = c.get("/v1/providers").json()
            cheap = c.get("/v1/providers", params={"tier": "cheap"}).json()
            bad = c.get("/v1/providers", params={"tier": "gold"})
        assert everything["total_count"] == 4
        assert cheap["available_providers"] == ["deepseek"]
        assert bad.status_code == 422


class TestThink:
    def test_think_and_session_lifecycle(self):
        with make_client() as c:
            r = c.post("/v1/think", json={"prompt": "Is coffee healthy?", "providers": ["openai", "gemini"], "session_id": "s1"})
            assert r.status_code == 200
            body = r.json()
            assert body["session_id"] == "s1"
            assert body["providers"] == ["openai", "gemini"]
            assert [x["response"] for x in body["responses"]] == [
                "openai answer",
                "Error: Gemini API error: 500 Service Unavailable",
            ]
            assert body["responses"][1]["usage"] is None

            summary = c.post("/v1/sessions/s1/summary")
            assert summary.status_code == 200
            assert summary.json()["summary"] == "synthesized"
            assert summary.json()["original_responses"] == 2

            consensus = c.post("/v1/sessions/s1/consensus", json={"provider": "openai"})
            assert consensus.json()["consensus"] == "openai answer"

            info = c.get("/v1/sessions/s1").json()
            assert info["summary"] == "synthesized"
            assert info["consensus"] == "openai answer"
            assert len(info["tasks"]) == 2

            listing = c.get("/v1/sessions").json()
            assert listing["total_sessions"] == 1
            assert listing["sessions"][0]["has_summary"] is True

    def test_generated_session_id_and_all_providers(self):
        with make_client() as c:
            body = c.post("/v1/think", json={"prompt": "Hi", "providers": []}).json()
        assert body["session_id"].startswith("session-")
        assert body["providers"] == ["openai", "anthropic", "gemini", "deepseek"]

    def test_variants_multiply_tasks(self):
        with make_client() as c:
            body = c.post("/v1/think", json={"prompt": "Hi", "providers": ["openai"], "variants": ["a", "b", "c"]}).json()
        assert len(body["responses"]) == 3

    def test_unconfigured_provider_is_503(self):
        with make_client() as c:
            r = c.post("/v1/think", json={"prompt": "Hi", "providers": ["ollama"]})
        assert r.status_code == 503
        assert r.json()["type"] == "ConfigurationError"

    @pytest.mark.parametrize(
        "payload",
        [
            {"prompt": "Hi", "temperature": 3},
            {"prompt": "Hi", "max_tokens": 5000},
            {"prompt": ""},
            {"prompt": "Hi", "providers": ["openai", "openai"]},
        ],
    )
    def test_invalid_requests_are_422(self, payload):
        with make_client() as c:
            r = c.post("/v1/think", json=payload)
        assert r.status_code == 422

    def test_token_ceiling_follows_engine_config(self):
        pt_main.manager = make_manager(
            {"openai": FakeAdapter("openai", reply="long answer")}, config=EngineConfig(max_tokens_ceiling=8000)
        )
        with make_client() as c:
            ok = c.post("/v1/think", json={"prompt": "Hi", "max_tokens": 6000})
            too_big = c.post("/v1/think", json={"prompt": "Hi", "max_tokens": 8001})
        assert ok.status_code == 200
        assert ok.json()["responses"][0]["response"] == "long answer"
        assert too_big.status_code == 422

    def test_unknown_session_is_404(self):
        with make_client() as c:
            assert c.get("/v1/sessions/nope").status_code == 404
            r = c.post("/v1/sessions/nope/summary")
        assert r.status_code == 404
        assert r.json()["type"] == "NotFoundError"


class TestCostEndpoints:
    def test_delegate(self):
        with make_client() as c:
            r = c.post("/v1/delegate", json={"task": "List three colours"})
        body = r.json()
        assert body["delegated_to"] == "deepseek"
        assert body["result"] == "cheap answer"
        assert body["token_usage"]["total_tokens"] == 15

    def test_delegate_rejects_premium(self):
        with make_client() as c:
            r = c.post("/v1/delegate", json={"task": "x", "provider": "openai"})
        assert r.status_code == 503

    def test_draft_and_refine(self, setup_manager):
        with make_client() as c:
            body = c.post("/v1/draft-and-refine", json={"task": "Write a slogan", "refine_provider": "anthropic"}).json()
        assert body["draft"] == "cheap answer"
        assert body["final_result"] == "synthesized"
        assert body["draft_phase"]["provider"] == "deepseek"
        assert body["refine_phase"]["provider"] == "anthropic"
        assert "[Draft]\ncheap answer" in setup_manager["anthropic"].requests[0].prompt

    def test_summarize_for_efficiency(self):
        with make_client() as c:
            body = c.post("/v1/summarize-for-efficiency", json={"text": "y" * 120, "summary_length": "short"}).json()
        assert body["original_length"] == 120
        assert body["summary_length"] == len("cheap answer")
        assert body["provider"] == "deepseek"

    def test_batch(self):
        with make_client() as c:
            body = c.post("/v1/batch", json={"tasks": ["a", "b"]}).json()
            too_small = c.post("/v1/batch", json={"tasks": ["a"], "max_tokens_per_task": 10})
        assert body["tasks_count"] == 2
        assert body["batch_result"] == "cheap answer"
        assert too_small.status_code == 422
