"""
reactloop OpenAI Adapter

Wraps the OpenAI API (GPT-4o, o-series, etc.) behind the ProviderAdapter
interface.

Also serves every OpenAI-compatible vendor (DeepSeek, xAI, Mistral, Groq,
Together, Perplexity) via ``base_url``.
"""

from __future__ import annotations

import json
import re
from typing import TYPE_CHECKING, Any

import openai

from reactloop.config import ProviderSettings
from reactloop.core.models import (
    AssistantTurn,
    GenerateResult,
    StopReason,
    TextBlock,
    ToolCall,
    ToolResultBlock,
    ToolResultsTurn,
    UserTurn,
    parse_turn,
)
from reactloop.exceptions import ProviderError, ProviderTimeoutError
from reactloop.providers.base import ProviderAdapter, canonical_result, map_stop_reason, result_text
from reactloop.providers.catalog import WireProtocol

if TYPE_CHECKING:
    from reactloop.credentials import CredentialSource

REASONING_MODEL = re.compile(r"^o\d")

STOP_REASONS = {
    "stop": StopReason.END_TURN,
    "tool_calls": StopReason.TOOL_USE,
    "function_call": StopReason.TOOL_USE,
    "length": StopReason.MAX_TOKENS,
}


def parse_arguments(raw: Any) -> dict[str, Any]:
    """Function-call arguments arrive as a JSON string; anything unusable becomes {}."""
    if isinstance(raw, dict):
        return raw
    try:
        parsed = json.loads(raw or "{}")
    except (json.JSONDecodeError, TypeError):
        return {}
    return parsed if isinstance(parsed, dict) else {}


class OpenAIAdapter(ProviderAdapter):
    """OpenAI Chat Completions and compatible APIs."""

    protocol = WireProtocol.OPENAI
    default_vendor = "openai"

    def __init__(
        self,
        settings: ProviderSettings | None = None,
        credentials: CredentialSource | None = None,
        client: Any = None,
    ):
        super().__init__(settings, credentials)
        self._client = client
        self._client_key: str | None = None

    def _client_for(self, api_key: str | None) -> Any:
        if self._client is None or (self._client_key is not None and self._client_key != api_key):
            self._client = openai.AsyncOpenAI(
                api_key=api_key,
                base_url=self.endpoint,
                timeout=self._settings.timeout_seconds,
                max_retries=self._settings.max_retries,
            )
            self._client_key = api_key
        return self._client

    @property
    def is_reasoning_model(self) -> bool:
        return bool(REASONING_MODEL.match(self.model))

    def build_request(self, system_prompt: str, conversation: list[Any], tools: list[dict]) -> dict[str, Any]:
        messages: list[dict[str, Any]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        for turn in conversation:
            messages.extend(self._convert_turn(parse_turn(turn)))

        request: dict[str, Any] = {"model": self.model, "messages": messages}
        if self.is_reasoning_model:
            request["max_completion_tokens"] = self._settings.max_tokens
        else:
            request["max_tokens"] = self._settings.max_tokens
            request["temperature"] = self._settings.temperature
        if tools:
            request["tools"] = tools
            if not self.is_reasoning_model:
                request["tool_choice"] = "auto"
        return request

    def _convert_turn(self, turn: Any) -> list[dict[str, Any]]:
        """One canonical turn -> zero or more chat messages."""
        if isinstance(turn, ToolResultsTurn):
            return [
                {"role": "tool", "tool_call_id": r.id, "content": result_text(r)}
                for r in turn.results
            ]

        if isinstance(turn, AssistantTurn):
            if turn.native is not None and turn.protocol == self.protocol.value:
                return [turn.native]
            message: dict[str, Any] = {"role": "assistant", "content": turn.text or None}
            tool_calls = [
                {
                    "id": block.id,
                    "type": "function",
                    "function": {"name": block.name, "arguments": json.dumps(block.input)},
                }
                for block in turn.tool_uses()
            ]
            if tool_calls:
                message["tool_calls"] = tool_calls
            return [message]

        if isinstance(turn, UserTurn) and not isinstance(turn.content, str):
            messages = [
                {"role": "tool", "tool_call_id": b.tool_use_id, "content": b.content}
                for b in turn.content
                if isinstance(b, ToolResultBlock)
            ]
            text = "".join(b.text for b in turn.content if isinstance(b, TextBlock))
            if text:
                messages.append({"role": "user", "content": text})
            return messages

        return [{"role": "user", "content": turn.content}]

    async def _send(self, request: dict[str, Any], api_key: str | None) -> dict[str, Any]:
        client = self._client_for(api_key)
        try:
            response = await client.chat.completions.create(**request)
        except openai.APITimeoutError as e:
            raise ProviderTimeoutError(self.name, f"Request timed out: {e}") from e
        except openai.APIStatusError as e:
            raise self._fail(f"HTTP {e.status_code}: {e.message}", status_code=e.status_code) from e
        except openai.APIError as e:
            raise ProviderError(self.name, str(e)) from e
        return response if isinstance(response, dict) else response.to_dict()

    def parse_response(self, data: dict[str, Any]) -> GenerateResult:
        choice = data["choices"][0]
        message = choice.get("message") or {}
        text = message.get("content") or ""

        calls: list[ToolCall] = []
        native_calls: list[dict[str, Any]] = []
        for tc in message.get("tool_calls") or []:
            function = tc.get("function") or {}
            calls.append(ToolCall(
                id=tc["id"],
                name=function["name"],
                input=parse_arguments(function.get("arguments")),
            ))
            native_calls.append({
                "id": tc["id"],
                "type": "function",
                "function": {"name": function["name"], "arguments": function.get("arguments") or "{}"},
            })

        native: dict[str, Any] = {"role": "assistant", "content": message.get("content")}
        if native_calls:
            native["tool_calls"] = native_calls

        usage = data.get("usage") or {}
        return canonical_result(
            text,
            calls,
            map_stop_reason(choice.get("finish_reason"), STOP_REASONS, bool(calls)),
            native=native,
            model=data.get("model") or self.model,
            input_tokens=usage.get("prompt_tokens") or 0,
            output_tokens=usage.get("completion_tokens") or 0,
        )
