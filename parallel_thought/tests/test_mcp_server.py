"""MCP tool handler tests, calling the registered handlers directly."""

import asyncio
import json

import pytest

from fakes import FakeAdapter, make_manager
from mcp_server import server as mcp_mod
from parallel_thought.config import EngineConfig
from parallel_thought.errors import ConfigurationError, NotFoundError, ValidationError


EXPECTED_TOOLS = {
    "parallel-ai-think",
    "summarize-thoughts",
    "find-consensus",
    "get-session-info",
    "list-providers",
    "list-sessions",
    "delegate-to-cheap-llm",
    "draft-and-refine",
    "summarize-for-efficiency",
    "batch-process-cheap",
}


def run(coro):
    return asyncio.run(coro)


def call(name, arguments=None):
    content = run(mcp_mod.call_tool(name, arguments or {}))
    assert len(content) == 1
    assert content[0].type == "text"
    return json.loads(content[0].text)


@pytest.fixture(autouse=True)
def setup_manager():
    adapters = {
        "openai": FakeAdapter("openai", reply="openai view"),
        "anthropic": FakeAdapter("anthropic", reply="synthesized"),
        "ollama": FakeAdapter("ollama", reply="local view", usage=False),
    }
    mcp_mod.manager = make_manager(adapters, config=EngineConfig(synthesis_provider="anthropic"))
    yield adapters
    mcp_mod.manager = None


class TestToolListing:
    def test_all_tools_advertised(self):
        tools = run(mcp_mod.list_tools())
        assert {t.name for t in tools} == EXPECTED_TOOLS

    def test_think_schema_requires_prompt(self):
        tools = {t.name: t for t in run(mcp_mod.list_tools())}
        schema = tools["parallel-ai-think"].inputSchema
        assert schema["required"] == ["prompt"]
        assert schema["properties"]["temperature"]["maximum"] == 2

    def test_token_ceiling_comes_from_config(self):
        mcp_mod.manager = make_manager({"openai": FakeAdapter("openai")}, config=EngineConfig(max_tokens_ceiling=6000))
        tools = {t.name: t for t in run(mcp_mod.list_tools())}
        assert tools["parallel-ai-think"].inputSchema["properties"]["maxTokens"]["maximum"] == 6000

    def test_non_mapping_model_overrides_rejected(self):
        with pytest.raises(ValidationError):
            call("parallel-ai-think", {"prompt": "Hi", "providers": ["openai"], "customModels": ["gpt-4o"]})


class TestSessionTools:
    def test_think_summarize_consensus_info(self):
        body = call("parallel-ai-think", {"prompt": "Tabs or spaces?", "providers": ["openai", "ollama"], "sessionId": "m1"})
        assert body["session_id"] == "m1"
        assert [r["response"] for r in body["responses"]] == ["openai view", "local view"]
        assert body["responses"][1]["usage"] is None

        assert call("summarize-thoughts", {"sessionId": "m1"})["summary"] == "synthesized"
        consensus = call("find-consensus", {"sessionId": "m1", "consensusProvider": "openai"})
        assert consensus["consensus"] == "openai view"
        assert consensus["original_responses"] == 2

        info = call("get-session-info", {"sessionId": "m1"})
        assert info["summary"] == "synthesized"
        assert info["consensus"] == "openai view"

        listing = call("list-sessions")
        assert listing["total_sessions"] == 1
        assert listing["sessions"][0]["session_id"] == "m1"

    def test_empty_provider_list_means_all(self):
        body = call("parallel-ai-think", {"prompt": "Hi", "providers": []})
        assert body["providers"] == ["openai", "anthropic", "ollama"]

    def test_list_providers(self):
        body = call("list-providers")
        assert body["available_providers"] == ["openai", "anthropic", "ollama"]
        assert body["total_count"] == 3

    def test_errors_propagate_to_the_protocol_layer(self):
        with pytest.raises(NotFoundError):
            call("get-session-info", {"sessionId": "missing"})
        with pytest.raises(ConfigurationError):
            call("parallel-ai-think", {"prompt": "Hi", "providers": ["deepseek"]})

    def test_unknown_tool(self):
        assert call("no-such-tool") == {"error": "unknown tool no-such-tool"}


class TestCostTools:
    def test_delegate(self):
        body = call("delegate-to-cheap-llm", {"task": "Say hi"})
        assert body["delegated_to"] == "ollama"
        assert body["result"] == "local view"
        assert body["token_usage"] is None

    def test_draft_and_refine(self, setup_manager):
        body = call("draft-and-refine", {"task": "Slogan", "refineProvider": "anthropic", "draftMaxTokens": 300})
        assert body["draft"] == "local view"
        assert body["final_result"] == "synthesized"
        assert setup_manager["ollama"].requests[0].max_tokens == 300

    def test_summarize_for_efficiency(self, setup_manager):
        body = call("summarize-for-efficiency", {"text": "z" * 200, "summaryLength": "detailed"})
        assert body["original_length"] == 200
        assert body["provider"] == "ollama"
        assert setup_manager["ollama"].requests[0].max_tokens == 600

    def test_batch(self, setup_manager):
        body = call("batch-process-cheap", {"tasks": ["a", "b", "c", "d"], "maxTokensPerTask": 100})
        assert body["tasks_count"] == 4
        assert setup_manager["ollama"].requests[0].max_tokens == 400
