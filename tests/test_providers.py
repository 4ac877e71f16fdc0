"""Tests for the provider adapters.

Covers:
- Request building per wire protocol (pure)
- Response parsing into canonical GenerateResult (pure)
- Transport error mapping (SDK clients mocked, httpx via MockTransport)
- Credential resolution
- Adapter factory and ActiveProvider hot reconfiguration
"""

import json
from unittest.mock import AsyncMock, MagicMock

import anthropic
import httpx
import openai
import pytest

from reactloop.config import ProviderSettings, SettingsHolder
from reactloop.core.models import (
    AssistantTurn,
    TextBlock,
    ToolResult,
    ToolResultBlock,
    ToolResultsTurn,
    ToolUseBlock,
    UserTurn,
)
from reactloop.credentials import StaticCredentials
from reactloop.exceptions import (
    MissingCredentialError,
    ProviderError,
    ProviderResponseError,
    ProviderTimeoutError,
    UnknownProviderError,
)
from reactloop.providers import (
    ActiveProvider,
    AnthropicAdapter,
    GeminiAdapter,
    OllamaAdapter,
    OpenAIAdapter,
    create_adapter,
)
from reactloop.providers.openai import parse_arguments
from reactloop.tools.models import Tool

# ─── Helpers ────────────────────────────────────────────────


def make_settings(vendor: str, model: str = "test-model", **kwargs) -> ProviderSettings:
    return ProviderSettings(vendor=vendor, model=model, **kwargs)


def make_conversation() -> list:
    """User asks, assistant calls a tool, results come back."""
    return [
        UserTurn(content="Summarize notes.txt"),
        AssistantTurn(content=[
            TextBlock(text="Reading the file."),
            ToolUseBlock(id="call_1", name="fs_read", input={"path": "notes.txt"}),
        ]),
        ToolResultsTurn(results=[ToolResult(id="call_1", name="fs_read", content="buy milk")]),
    ]


def make_sdk_client(path: str, response) -> MagicMock:
    """MagicMock SDK client whose ``path`` coroutine returns ``response``."""
    client = MagicMock()
    target = client
    *parents, leaf = path.split(".")
    for attr in parents:
        target = getattr(target, attr)
    setattr(target, leaf, AsyncMock(return_value=response))
    return client


def http_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def make_read_tool() -> Tool:
    return Tool(
        "fs_read",
        lambda args: "",
        description="Read a file",
        parameters={
            "type": "object",
            "properties": {
                "path": {"type": "string"},
                "lines": {"type": "array"},
            },
            "required": ["path"],
        },
    )


FAKE_REQUEST = httpx.Request("POST", "https://api.example.com")


# ─── Anthropic ──────────────────────────────────────────────


class TestAnthropicAdapter:
    def make_adapter(self, client=None, **kwargs) -> AnthropicAdapter:
        return AnthropicAdapter(make_settings("anthropic", api_key="sk-ant", **kwargs), client=client)

    def test_build_request(self):
        request = self.make_adapter().build_request("Be brief.", make_conversation(), [{"name": "fs_read"}])
        assert request["model"] == "test-model"
        assert request["system"] == "Be brief."
        assert request["tools"] == [{"name": "fs_read"}]
        assert request["max_tokens"] == 8096

        user, assistant, results = request["messages"]
        assert user == {"role": "user", "content": "Summarize notes.txt"}
        assert assistant["content"][1] == {
            "type": "tool_use", "id": "call_1", "name": "fs_read", "input": {"path": "notes.txt"},
        }
        assert results == {
            "role": "user",
            "content": [{"type": "tool_result", "tool_use_id": "call_1", "content": "buy milk"}],
        }

    def test_build_request_omits_empty_system_and_tools(self):
        request = self.make_adapter().build_request("", [UserTurn(content="hi")], [])
        assert "system" not in request
        assert "tools" not in request

    def test_errored_result_flagged(self):
        turn = ToolResultsTurn(results=[ToolResult(id="c", name="x", error="boom")])
        request = self.make_adapter().build_request("", [turn], [])
        block = request["messages"][0]["content"][0]
        assert block["is_error"] is True
        assert block["content"] == "Error: boom"

    def test_native_content_resent_verbatim(self):
        native = [
            {"type": "thinking", "thinking": "hmm", "signature": "sig"},
            {"type": "tool_use", "id": "c1", "name": "fs_read", "input": {}},
        ]
        turn = AssistantTurn(content=[ToolUseBlock(id="c1", name="fs_read")], native=native, protocol="anthropic")
        request = self.make_adapter().build_request("", [turn], [])
        assert request["messages"][0]["content"] == native

    def test_foreign_native_rebuilt(self):
        turn = AssistantTurn(content="plain", native={"role": "assistant"}, protocol="openai")
        request = self.make_adapter().build_request("", [turn], [])
        assert request["messages"][0] == {"role": "assistant", "content": "plain"}

    def test_parse_response(self):
        result = self.make_adapter().parse_response({
            "model": "claude-x",
            "stop_reason": "tool_use",
            "content": [
                {"type": "text", "text": "Let me look."},
                {"type": "tool_use", "id": "toolu_1", "name": "fs_read", "input": {"path": "a"}},
            ],
            "usage": {"input_tokens": 12, "output_tokens": 7},
        })
        assert result.text == "Let me look."
        assert [(c.id, c.name, c.input) for c in result.tool_calls] == [("toolu_1", "fs_read", {"path": "a"})]
        assert result.stop_reason == "tool_use"
        assert result.input_tokens == 12
        assert result.output_tokens == 7
        assert result.model == "claude-x"
        assert result.native[1]["id"] == "toolu_1"
        assert isinstance(result.raw_content[1], ToolUseBlock)

    def test_parse_text_only(self):
        result = self.make_adapter().parse_response({
            "content": [{"type": "text", "text": "Done."}],
            "stop_reason": "stop_sequence",
        })
        assert result.stop_reason == "end_turn"
        assert result.has_tool_calls is False

    def test_empty_reply_not_resent(self):
        adapter = self.make_adapter()
        result = adapter.parse_response({"content": [], "stop_reason": "end_turn"})
        assert result.native is None

        turn = AssistantTurn(content=result.raw_content or result.text, native=result.native, protocol="anthropic")
        request = adapter.build_request("", [UserTurn(content="hi"), turn, UserTurn(content="still there?")], [])
        assert [m["role"] for m in request["messages"]] == ["user", "user"]
        assert all(m["content"] for m in request["messages"])

    def test_empty_native_falls_back_to_content(self):
        turn = AssistantTurn(content="plain", native=[], protocol="anthropic")
        request = self.make_adapter().build_request("", [turn], [])
        assert request["messages"] == [{"role": "assistant", "content": "plain"}]

    @pytest.mark.asyncio
    async def test_generate_uses_client(self):
        client = make_sdk_client("messages.create", {
            "content": [{"type": "text", "text": "hello"}],
            "stop_reason": "end_turn",
        })
        adapter = self.make_adapter(client=client)
        result = await adapter.generate("sys", [UserTurn(content="hi")])
        assert result.text == "hello"
        kwargs = client.messages.create.call_args.kwargs
        assert kwargs["system"] == "sys"
        assert kwargs["messages"] == [{"role": "user", "content": "hi"}]

    @pytest.mark.asyncio
    async def test_complete(self):
        client = make_sdk_client("messages.create", {"content": [{"type": "text", "text": "pong"}]})
        assert await self.make_adapter(client=client).complete("", "ping") == "pong"

    @pytest.mark.asyncio
    async def test_status_error_mapped(self):
        response = httpx.Response(529, request=FAKE_REQUEST)
        client = MagicMock()
        client.messages.create = AsyncMock(
            side_effect=anthropic.APIStatusError("overloaded", response=response, body=None)
        )
        with pytest.raises(ProviderResponseError) as exc_info:
            await self.make_adapter(client=client).generate("", [UserTurn(content="hi")])
        assert exc_info.value.status_code == 529
        assert "overloaded" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_timeout_mapped(self):
        client = MagicMock()
        client.messages.create = AsyncMock(side_effect=anthropic.APITimeoutError(request=FAKE_REQUEST))
        with pytest.raises(ProviderTimeoutError):
            await self.make_adapter(client=client).generate("", [UserTurn(content="hi")])

    @pytest.mark.asyncio
    async def test_missing_credential_fails_before_request(self):
        client = make_sdk_client("messages.create", {})
        adapter = AnthropicAdapter(make_settings("anthropic"), client=client)
        with pytest.raises(MissingCredentialError) as exc_info:
            await adapter.generate("", [UserTurn(content="hi")])
        assert "Anthropic (Claude)" in str(exc_info.value)
        client.messages.create.assert_not_called()

    def test_client_rebuilt_when_key_changes(self):
        adapter = AnthropicAdapter(make_settings("anthropic"))
        first = adapter._client_for("key-1")
        assert isinstance(first, anthropic.AsyncAnthropic)
        assert adapter._client_for("key-1") is first
        assert adapter._client_for("key-2") is not first

    def test_minimax_uses_own_endpoint(self):
        adapter = AnthropicAdapter(make_settings("minimax"))
        assert adapter.endpoint == "https://api.minimax.io/anthropic"
        assert adapter.name == "minimax"


# ─── OpenAI ─────────────────────────────────────────────────


class TestOpenAIAdapter:
    def make_adapter(self, model: str = "gpt-4o", client=None) -> OpenAIAdapter:
        return OpenAIAdapter(make_settings("openai", model=model, api_key="sk-oa"), client=client)

    def test_build_request(self):
        request = self.make_adapter().build_request("Be brief.", make_conversation(), [{"type": "function"}])
        system, user, assistant, tool = request["messages"]
        assert system == {"role": "system", "content": "Be brief."}
        assert user == {"role": "user", "content": "Summarize notes.txt"}
        assert assistant["content"] == "Reading the file."
        assert assistant["tool_calls"] == [{
            "id": "call_1",
            "type": "function",
            "function": {"name": "fs_read", "arguments": json.dumps({"path": "notes.txt"})},
        }]
        assert tool == {"role": "tool", "tool_call_id": "call_1", "content": "buy milk"}
        assert request["tool_choice"] == "auto"
        assert request["temperature"] == 0.7
        assert request["max_tokens"] == 8096

    def test_reasoning_model_request(self):
        adapter = self.make_adapter(model="o3-mini")
        request = adapter.build_request("", [UserTurn(content="hi")], [{"type": "function"}])
        assert adapter.is_reasoning_model
        assert request["max_completion_tokens"] == 8096
        assert "max_tokens" not in request
        assert "temperature" not in request
        assert "tool_choice" not in request

    def test_assistant_without_text_sends_null_content(self):
        turn = AssistantTurn(content=[ToolUseBlock(id="c", name="x")])
        (message,) = self.make_adapter().build_request("", [turn], [])["messages"]
        assert message["content"] is None

    def test_user_tool_result_blocks(self):
        turn = UserTurn(content=[
            ToolResultBlock(tool_use_id="c1", content="42"),
            TextBlock(text="and then?"),
        ])
        messages = self.make_adapter().build_request("", [turn], [])["messages"]
        assert messages == [
            {"role": "tool", "tool_call_id": "c1", "content": "42"},
            {"role": "user", "content": "and then?"},
        ]

    def test_native_resent_verbatim(self):
        native = {"role": "assistant", "content": None, "tool_calls": [{"id": "c1"}]}
        turn = AssistantTurn(content=[ToolUseBlock(id="c1", name="x")], native=native, protocol="openai")
        assert self.make_adapter().build_request("", [turn], [])["messages"] == [native]

    def test_parse_response(self):
        result = self.make_adapter().parse_response({
            "model": "gpt-4o-2024",
            "choices": [{
                "finish_reason": "tool_calls",
                "message": {
                    "role": "assistant",
                    "content": None,
                    "tool_calls": [{
                        "id": "call_9",
                        "type": "function",
                        "function": {"name": "fs_read", "arguments": '{"path": "a.txt"}'},
                    }],
                },
            }],
            "usage": {"prompt_tokens": 30, "completion_tokens": 5},
        })
        assert result.text == ""
        assert result.tool_calls[0].input == {"path": "a.txt"}
        assert result.stop_reason == "tool_use"
        assert result.input_tokens == 30
        assert result.native["tool_calls"][0]["function"]["arguments"] == '{"path": "a.txt"}'

    def test_parse_length_stop(self):
        result = self.make_adapter().parse_response({
            "choices": [{"finish_reason": "length", "message": {"content": "partial"}}],
        })
        assert result.text == "partial"
        assert result.stop_reason == "max_tokens"

    def test_parse_arguments(self):
        assert parse_arguments('{"a": 1}') == {"a": 1}
        assert parse_arguments({"a": 1}) == {"a": 1}
        assert parse_arguments("not json") == {}
        assert parse_arguments("[1, 2]") == {}
        assert parse_arguments(None) == {}

    @pytest.mark.asyncio
    async def test_malformed_response(self):
        client = make_sdk_client("chat.completions.create", {"choices": []})
        with pytest.raises(ProviderResponseError, match="Malformed response"):
            await self.make_adapter(client=client).generate("", [UserTurn(content="hi")])

    @pytest.mark.asyncio
    async def test_vendor_error_payload(self):
        client = make_sdk_client("chat.completions.create", {"error": {"message": "quota exceeded"}})
        with pytest.raises(ProviderResponseError, match="quota exceeded"):
            await self.make_adapter(client=client).generate("", [UserTurn(content="hi")])

    @pytest.mark.asyncio
    async def test_status_error_mapped(self):
        response = httpx.Response(401, request=FAKE_REQUEST)
        client = MagicMock()
        client.chat.completions.create = AsyncMock(
            side_effect=openai.AuthenticationError("bad key", response=response, body=None)
        )
        with pytest.raises(ProviderResponseError) as exc_info:
            await self.make_adapter(client=client).generate("", [UserTurn(content="hi")])
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_connection_error_is_provider_error(self):
        client = MagicMock()
        client.chat.completions.create = AsyncMock(side_effect=openai.APIConnectionError(request=FAKE_REQUEST))
        with pytest.raises(ProviderError):
            await self.make_adapter(client=client).generate("", [UserTurn(content="hi")])

    @pytest.mark.asyncio
    async def test_key_from_credentials(self):
        client = make_sdk_client("chat.completions.create", {
            "choices": [{"finish_reason": "stop", "message": {"content": "ok"}}],
        })
        adapter = OpenAIAdapter(
            make_settings("deepseek", model="deepseek-chat"),
            StaticCredentials({"deepseek": "ds-key"}),
            client=client,
        )
        assert adapter.resolve_api_key() == "ds-key"
        assert (await adapter.generate("", [UserTurn(content="hi")])).text == "ok"


# ─── Ollama ─────────────────────────────────────────────────


class TestOllamaAdapter:
    def test_build_request(self):
        adapter = OllamaAdapter(make_settings("ollama", model="llama3.2", max_tokens=512))
        request = adapter.build_request("sys", make_conversation(), [])
        assert request["stream"] is False
        assert request["options"] == {"temperature": 0.7, "num_predict": 512}
        assert "tools" not in request

        system, user, assistant, tool = request["messages"]
        assert system == {"role": "system", "content": "sys"}
        assert assistant["tool_calls"] == [{"function": {"name": "fs_read", "arguments": {"path": "notes.txt"}}}]
        assert tool == {"role": "tool", "content": "buy milk", "tool_name": "fs_read"}

    def test_parse_synthesizes_ids(self):
        adapter = OllamaAdapter()
        result = adapter.parse_response({
            "model": "llama3.2",
            "message": {
                "role": "assistant",
                "content": "",
                "tool_calls": [
                    {"function": {"name": "fs_read", "arguments": {"path": "a"}}},
                    {"function": {"name": "fs_read", "arguments": '{"path": "b"}'}},
                ],
            },
            "done_reason": "stop",
            "prompt_eval_count": 40,
            "eval_count": 9,
        })
        first, second = result.tool_calls
        assert first.id.startswith("ollama_")
        assert first.id != second.id
        assert second.input == {"path": "b"}
        assert result.stop_reason == "tool_use"
        assert result.input_tokens == 40
        assert result.output_tokens == 9

    @pytest.mark.asyncio
    async def test_generate_over_http(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={
                "message": {"role": "assistant", "content": "Hi there"},
                "done_reason": "stop",
            })

        adapter = OllamaAdapter(make_settings("ollama"), client=http_client(handler))
        tools = adapter.tool_declarations([make_read_tool().declaration])
        result = await adapter.generate("", [UserTurn(content="hi")], tools)

        assert result.text == "Hi there"
        assert result.stop_reason == "end_turn"
        assert seen["url"] == "http://127.0.0.1:11434/api/chat"
        params = seen["body"]["tools"][0]["function"]["parameters"]
        assert params["properties"]["lines"]["type"] == "string"

    @pytest.mark.asyncio
    async def test_custom_endpoint(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            return httpx.Response(200, json={"message": {"content": "ok"}})

        settings = make_settings("ollama", endpoint="http://gpu-box:11434/")
        await OllamaAdapter(settings, client=http_client(handler)).generate("", [UserTurn(content="hi")])
        assert seen["url"] == "http://gpu-box:11434/api/chat"

    @pytest.mark.asyncio
    async def test_http_error_truncated(self):
        def handler(request):
            return httpx.Response(500, text="x" * 2000)

        adapter = OllamaAdapter(make_settings("ollama"), client=http_client(handler))
        with pytest.raises(ProviderResponseError) as exc_info:
            await adapter.generate("", [UserTurn(content="hi")])
        assert exc_info.value.status_code == 500
        assert "HTTP 500" in str(exc_info.value)
        assert len(str(exc_info.value)) < 600

    @pytest.mark.asyncio
    async def test_error_payload(self):
        def handler(request):
            return httpx.Response(200, json={"error": "model 'llama9' not found"})

        adapter = OllamaAdapter(make_settings("ollama"), client=http_client(handler))
        with pytest.raises(ProviderResponseError, match="llama9"):
            await adapter.generate("", [UserTurn(content="hi")])

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("too slow", request=request)

        adapter = OllamaAdapter(make_settings("ollama"), client=http_client(handler))
        with pytest.raises(ProviderTimeoutError):
            await adapter.generate("", [UserTurn(content="hi")])

    @pytest.mark.asyncio
    async def test_connection_refused(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        adapter = OllamaAdapter(make_settings("ollama"), client=http_client(handler))
        with pytest.raises(ProviderError, match="Request failed"):
            await adapter.generate("", [UserTurn(content="hi")])

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        def handler(request):
            return httpx.Response(200, text="<html>")

        adapter = OllamaAdapter(make_settings("ollama"), client=http_client(handler))
        with pytest.raises(ProviderResponseError, match="Invalid JSON"):
            await adapter.generate("", [UserTurn(content="hi")])


# ─── Gemini ─────────────────────────────────────────────────


class TestGeminiAdapter:
    def make_adapter(self, client=None) -> GeminiAdapter:
        return GeminiAdapter(make_settings("google", model="gemini-2.5-flash", api_key="g-key"), client=client)

    def test_defaults(self):
        adapter = GeminiAdapter()
        assert adapter.name == "google"
        assert adapter.model == "gemini-2.5-flash"

    def test_build_request(self):
        request = self.make_adapter().build_request("sys", make_conversation(), [])
        assert request["system_instruction"] == {"parts": [{"text": "sys"}]}
        assert request["generationConfig"]["maxOutputTokens"] == 8096

        user, model, results = request["contents"]
        assert user == {"role": "user", "parts": [{"text": "Summarize notes.txt"}]}
        assert model["role"] == "model"
        assert model["parts"][1] == {"functionCall": {"name": "fs_read", "args": {"path": "notes.txt"}}}
        assert results == {
            "role": "user",
            "parts": [{"functionResponse": {"name": "fs_read", "response": {"result": "buy milk"}}}],
        }

    def test_empty_turn_skipped(self):
        turn = AssistantTurn(content=[TextBlock(text="")])
        request = self.make_adapter().build_request("", [UserTurn(content="hi"), turn], [])
        assert len(request["contents"]) == 1

    def test_unnamed_result_block(self):
        turn = UserTurn(content=[ToolResultBlock(tool_use_id="c1", content="42")])
        (content,) = self.make_adapter().build_request("", [turn], [])["contents"]
        assert content["parts"][0]["functionResponse"]["name"] == "unknown"

    def test_native_parts_resent(self):
        native = [{"functionCall": {"name": "fs_read", "args": {}}, "thoughtSignature": "abc"}]
        turn = AssistantTurn(content=[ToolUseBlock(id="g1", name="fs_read")], native=native, protocol="gemini")
        (content,) = self.make_adapter().build_request("", [turn], [])["contents"]
        assert content == {"role": "model", "parts": native}

    def test_parse_response(self):
        result = self.make_adapter().parse_response({
            "candidates": [{
                "content": {"parts": [
                    {"text": "thinking...", "thought": True},
                    {"text": "Checking."},
                    {"functionCall": {"name": "fs_read", "args": {"path": "a"}}},
                ]},
                "finishReason": "STOP",
            }],
            "usageMetadata": {"promptTokenCount": 11, "candidatesTokenCount": 4},
        })
        assert result.text == "Checking."
        (call,) = result.tool_calls
        assert call.id.startswith("gemini_")
        assert call.input == {"path": "a"}
        assert result.stop_reason == "tool_use"
        assert result.input_tokens == 11
        assert len(result.native) == 3

    def test_parse_finish_reasons(self):
        def parse(reason):
            return self.make_adapter().parse_response({
                "candidates": [{"content": {"parts": [{"text": "x"}]}, "finishReason": reason}],
            }).stop_reason

        assert parse("STOP") == "end_turn"
        assert parse("MAX_TOKENS") == "max_tokens"
        assert parse("SAFETY") == "safety"

    def test_parse_no_candidates(self):
        result = self.make_adapter().parse_response({"candidates": []})
        assert result.text == ""
        assert result.stop_reason == "end_turn"
        assert result.native is None

    def test_empty_reply_not_resent(self):
        adapter = self.make_adapter()
        result = adapter.parse_response({"candidates": [{"content": {"parts": []}, "finishReason": "STOP"}]})
        assert result.native is None

        turn = AssistantTurn(content=result.raw_content or result.text, native=result.native, protocol="gemini")
        request = adapter.build_request("", [UserTurn(content="hi"), turn], [])
        assert request["contents"] == [{"role": "user", "parts": [{"text": "hi"}]}]

    def test_empty_native_falls_back_to_content(self):
        turn = AssistantTurn(content="plain", native=[], protocol="gemini")
        (content,) = self.make_adapter().build_request("", [turn], [])["contents"]
        assert content == {"role": "model", "parts": [{"text": "plain"}]}

    @pytest.mark.asyncio
    async def test_generate_over_http(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["key"] = request.url.params.get("key")
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={
                "candidates": [{"content": {"parts": [{"text": "Hello"}]}, "finishReason": "STOP"}],
            })

        adapter = self.make_adapter(client=http_client(handler))
        tools = adapter.tool_declarations([make_read_tool().declaration])
        result = await adapter.generate("", [UserTurn(content="hi")], tools)

        assert result.text == "Hello"
        assert seen["path"] == "/v1beta/models/gemini-2.5-flash:generateContent"
        assert seen["key"] == "g-key"
        declaration = seen["body"]["tools"][0]["functionDeclarations"][0]
        assert declaration["parameters"]["properties"]["path"] == {"type": "STRING"}

    @pytest.mark.asyncio
    async def test_missing_key(self):
        adapter = GeminiAdapter(make_settings("google"), StaticCredentials())
        with pytest.raises(MissingCredentialError):
            await adapter.generate("", [UserTurn(content="hi")])


# ─── Factory & ActiveProvider ───────────────────────────────


class TestCreateAdapter:
    @pytest.mark.parametrize("vendor,adapter_cls", [
        ("anthropic", AnthropicAdapter),
        ("minimax", AnthropicAdapter),
        ("openai", OpenAIAdapter),
        ("deepseek", OpenAIAdapter),
        ("groq", OpenAIAdapter),
        ("ollama", OllamaAdapter),
        ("google", GeminiAdapter),
    ])
    def test_protocol_switch(self, vendor, adapter_cls):
        adapter = create_adapter(make_settings(vendor))
        assert isinstance(adapter, adapter_cls)
        assert adapter.name == vendor

    def test_unknown_vendor(self):
        with pytest.raises(UnknownProviderError):
            create_adapter(make_settings("acme-ai"))

    def test_default_settings(self):
        assert isinstance(create_adapter(), OllamaAdapter)

    def test_vendor_endpoint(self):
        assert create_adapter(make_settings("deepseek")).endpoint == "https://api.deepseek.com/v1"


class TestActiveProvider:
    def test_caches_per_revision(self):
        active = ActiveProvider(SettingsHolder(make_settings("ollama")))
        first = active.current()
        assert isinstance(first, OllamaAdapter)
        assert active.current() is first

    def test_rebuilds_after_update(self):
        holder = SettingsHolder(make_settings("ollama"))
        active = ActiveProvider(holder)
        before = active.current()

        holder.update(vendor="openai", model="gpt-4o")
        after = active.current()
        assert isinstance(after, OpenAIAdapter)
        assert after is not before
        assert after.model == "gpt-4o"

    def test_credentials_passed_through(self):
        creds = StaticCredentials({"anthropic": "k"})
        active = ActiveProvider(SettingsHolder(make_settings("anthropic")), creds)
        assert active.current().resolve_api_key() == "k"

    def test_fixed_ignores_updates(self):
        adapter = OllamaAdapter()
        active = ActiveProvider.fixed(adapter)
        active.holder.update(vendor="openai")
        assert active.current() is adapter
