"""Tests for the LLM provider layer."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import anthropic
import httpx
import pytest

from agentcrew.llm import AnthropicProvider, LLMResponse
from agentcrew.llm.anthropic import HANDOFF_TOOL_NAME, build_history
from agentcrew.models import (
    CapabilitySpec,
    ChatMessage,
    HandoffSignal,
    MessageRole,
    ModelRequest,
    ModelTier,
    ToolCall,
    ToolErrorKind,
    ToolExchange,
    ToolResult,
)
from agentcrew.utils.config import ModelTierConfig
from agentcrew.utils.exceptions import ModelCallFailure


def _text(text: str) -> SimpleNamespace:
    return SimpleNamespace(type="text", text=text)


def _tool_use(call_id: str, name: str, arguments: dict) -> SimpleNamespace:
    return SimpleNamespace(type="tool_use", id=call_id, name=name, input=arguments)


def _message(*blocks, model: str = "claude-test") -> SimpleNamespace:
    return SimpleNamespace(
        content=list(blocks),
        model=model,
        stop_reason="end_turn",
        usage=SimpleNamespace(input_tokens=10, output_tokens=5),
    )


def _request(**overrides) -> ModelRequest:
    data = {
        "system_context": "You are Scout.",
        "messages": [ChatMessage(role=MessageRole.USER, text="Hello")],
    }
    data.update(overrides)
    return ModelRequest(**data)


ECHO_SPEC = CapabilitySpec(
    name="echo",
    description="Echo text",
    input_schema={"type": "object", "properties": {"text": {"type": "string"}}},
)


@pytest.fixture
def client() -> MagicMock:
    mock = MagicMock()
    mock.messages.create = AsyncMock(return_value=_message(_text("Hi there")))
    return mock


@pytest.fixture
def provider(client: MagicMock) -> AnthropicProvider:
    models = ModelTierConfig(fast="m-fast", standard="m-standard", advanced="m-advanced")
    return AnthropicProvider(api_key="test-key", models=models, client=client)


class TestLLMResponse:
    """Tests for LLMResponse dataclass."""

    def test_response_with_defaults(self):
        response = LLMResponse(content="test", model="model")
        assert response.usage == {}
        assert response.finish_reason is None
        assert response.raw_response is None


class TestBuildHistory:
    """Tests for history conversion."""

    def test_merges_and_skips(self):
        history = build_history(
            [
                ChatMessage(role=MessageRole.ASSISTANT, text="Welcome"),
                ChatMessage(role=MessageRole.USER, text="one"),
                ChatMessage(role=MessageRole.USER, text="two"),
                ChatMessage(role=MessageRole.ASSISTANT, text="   "),
                ChatMessage(role=MessageRole.ASSISTANT, text="reply"),
            ]
        )
        assert history == [
            {"role": "user", "content": "one\n\ntwo"},
            {"role": "assistant", "content": "reply"},
        ]


class TestAnthropicProvider:
    """Tests for AnthropicProvider."""

    def test_properties(self, provider: AnthropicProvider):
        assert provider.provider_name == "anthropic"
        assert provider.default_model == "m-fast"
        assert provider.model_for("advanced") == "m-advanced"

    def test_api_key_from_environment(self, client: MagicMock):
        with patch.dict("os.environ", {"ANTHROPIC_API_KEY": "env-key"}):
            provider = AnthropicProvider(client=client)
        assert provider._api_key == "env-key"

    def test_params_for_initial_call(self, provider: AnthropicProvider):
        params = provider.build_params(
            _request(
                allowed_capabilities=[ECHO_SPEC],
                handoff_targets=["sage", "maven"],
                model_tier=ModelTier.STANDARD,
                max_tokens=512,
                temperature=0.2,
            )
        )
        assert params["model"] == "m-standard"
        assert params["system"] == "You are Scout."
        assert params["max_tokens"] == 512
        assert params["messages"] == [{"role": "user", "content": "Hello"}]
        names = [tool["name"] for tool in params["tools"]]
        assert names == ["echo", HANDOFF_TOOL_NAME]
        handoff = params["tools"][1]["input_schema"]["properties"]["target_agent"]
        assert handoff["enum"] == ["sage", "maven"]
        assert "tool_choice" not in params

    def test_params_without_tools(self, provider: AnthropicProvider):
        params = provider.build_params(_request())
        assert "tools" not in params
        assert "tool_choice" not in params

    def test_params_for_follow_up(self, provider: AnthropicProvider):
        call = ToolCall(call_id="toolu_1", name="echo", arguments={"text": "x"})
        exchange = ToolExchange(
            proposal_text="Checking.",
            tool_calls=[call],
            results=[ToolResult.failure(call, ToolErrorKind.EXECUTION_FAILURE, "echo failed")],
            offered=[ECHO_SPEC],
        )
        params = provider.build_params(_request(tool_exchange=exchange))

        assert params["tool_choice"] == {"type": "none"}
        assistant, user = params["messages"][-2:]
        assert assistant["role"] == "assistant"
        assert assistant["content"][0] == {"type": "text", "text": "Checking."}
        assert assistant["content"][1]["id"] == "toolu_1"
        result = user["content"][0]
        assert result["tool_use_id"] == "toolu_1"
        assert result["is_error"] is True
        assert "echo failed" in result["content"]

    def test_follow_up_replays_handoff_call(self, provider: AnthropicProvider):
        call = ToolCall(call_id="toolu_1", name="echo", arguments={})
        exchange = ToolExchange(
            tool_calls=[call],
            results=[ToolResult.success(call, {"ok": True})],
            offered=[ECHO_SPEC],
            handoff=HandoffSignal(target_agent_id="sage", reason="analysis", call_id="toolu_2"),
        )
        params = provider.build_params(_request(tool_exchange=exchange))

        assistant, user = params["messages"][-2:]
        assert [block["id"] for block in assistant["content"]] == ["toolu_1", "toolu_2"]
        assert [block["tool_use_id"] for block in user["content"]] == ["toolu_1", "toolu_2"]
        assert [tool["name"] for tool in params["tools"]] == ["echo", HANDOFF_TOOL_NAME]

    @pytest.mark.asyncio
    async def test_complete_text(self, provider: AnthropicProvider, client: MagicMock):
        response = await provider.complete(_request())
        assert response.text == "Hi there"
        assert response.tool_calls == []
        assert response.handoff is None
        assert response.usage == {"input_tokens": 10, "output_tokens": 5}
        client.messages.create.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_complete_tool_calls_and_handoff(
        self, provider: AnthropicProvider, client: MagicMock
    ):
        client.messages.create.return_value = _message(
            _text("Let me check."),
            _tool_use("toolu_1", "echo", {"text": "x"}),
            _tool_use(
                "toolu_2",
                HANDOFF_TOOL_NAME,
                {"target_agent": "sage", "reason": "analysis", "context": {"topic": "AI"}},
            ),
        )
        response = await provider.complete(_request(allowed_capabilities=[ECHO_SPEC]))

        assert response.text == "Let me check."
        assert response.tool_calls == [
            ToolCall(call_id="toolu_1", name="echo", arguments={"text": "x"})
        ]
        assert response.handoff.target_agent_id == "sage"
        assert response.handoff.context_payload == {"topic": "AI"}
        assert response.handoff.call_id == "toolu_2"

    @pytest.mark.asyncio
    async def test_empty_response_fails(self, provider: AnthropicProvider, client: MagicMock):
        client.messages.create.return_value = _message()
        with pytest.raises(ModelCallFailure):
            await provider.complete(_request())

    @pytest.mark.asyncio
    async def test_api_error_wrapped(self, provider: AnthropicProvider, client: MagicMock):
        error = anthropic.APIConnectionError(
            request=httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        )
        client.messages.create.side_effect = error

        with pytest.raises(ModelCallFailure) as exc_info:
            await provider.complete(_request())

        assert exc_info.value.cause is error
        assert exc_info.value.model == "m-standard"

    @pytest.mark.asyncio
    async def test_chat(self, provider: AnthropicProvider, client: MagicMock):
        response = await provider.chat(
            [{"role": "user", "content": "Hello"}], system_prompt="Be brief."
        )
        assert response.content == "Hi there"
        assert response.model == "claude-test"
        assert response.finish_reason == "end_turn"
        kwargs = client.messages.create.call_args.kwargs
        assert kwargs["system"] == "Be brief."
        assert kwargs["model"] == "m-fast"

    @pytest.mark.asyncio
    async def test_health_check(self, provider: AnthropicProvider, client: MagicMock):
        assert (await provider.health_check())["status"] == "healthy"

        client.messages.create.side_effect = RuntimeError("down")
        result = await provider.health_check()
        assert result["status"] == "unhealthy"
        assert result["error"] == "down"
