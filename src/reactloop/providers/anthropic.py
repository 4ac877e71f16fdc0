"""
reactloop Anthropic Adapter

Wraps the Anthropic SDK (anthropic.AsyncAnthropic) behind the
ProviderAdapter interface. The canonical conversation is already
Anthropic-shaped, so the mapping is thin:

- tool_results turns become one user turn of tool_result blocks
- assistant turns produced by this protocol are re-sent verbatim
  (thinking blocks included)

Also serves Anthropic-compatible vendors (MiniMax) via ``base_url``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import anthropic

from reactloop.config import ProviderSettings
from reactloop.core.models import (
    AssistantTurn,
    GenerateResult,
    StopReason,
    TextBlock,
    ToolCall,
    ToolResultBlock,
    ToolResultsTurn,
    ToolUseBlock,
    parse_turn,
)
from reactloop.exceptions import ProviderError, ProviderTimeoutError
from reactloop.providers.base import ProviderAdapter, canonical_result, map_stop_reason, result_text
from reactloop.providers.catalog import WireProtocol

if TYPE_CHECKING:
    from reactloop.credentials import CredentialSource

STOP_REASONS = {
    "end_turn": StopReason.END_TURN,
    "stop_sequence": StopReason.END_TURN,
    "tool_use": StopReason.TOOL_USE,
    "max_tokens": StopReason.MAX_TOKENS,
}


def _block_to_wire(block: Any) -> dict[str, Any] | None:
    if isinstance(block, TextBlock):
        return {"type": "text", "text": block.text} if block.text else None
    if isinstance(block, ToolUseBlock):
        return {"type": "tool_use", "id": block.id, "name": block.name, "input": block.input}
    if isinstance(block, ToolResultBlock):
        wire = {"type": "tool_result", "tool_use_id": block.tool_use_id, "content": block.content}
        if block.is_error:
            wire["is_error"] = True
        return wire
    return None


class AnthropicAdapter(ProviderAdapter):
    """Anthropic Messages API."""

    protocol = WireProtocol.ANTHROPIC
    default_vendor = "anthropic"

    def __init__(
        self,
        settings: ProviderSettings | None = None,
        credentials: CredentialSource | None = None,
        client: anthropic.AsyncAnthropic | None = None,
    ):
        super().__init__(settings, credentials)
        self._client = client
        self._client_key: str | None = None

    def _client_for(self, api_key: str | None) -> anthropic.AsyncAnthropic:
        if self._client is None or (self._client_key is not None and self._client_key != api_key):
            self._client = anthropic.AsyncAnthropic(
                api_key=api_key,
                base_url=self.endpoint,
                timeout=self._settings.timeout_seconds,
                max_retries=self._settings.max_retries,
            )
            self._client_key = api_key
        return self._client

    def build_request(self, system_prompt: str, conversation: list[Any], tools: list[dict]) -> dict[str, Any]:
        messages = [m for m in (self._to_wire(parse_turn(turn)) for turn in conversation) if m is not None]
        request: dict[str, Any] = {
            "model": self.model,
            "max_tokens": self._settings.max_tokens,
            "temperature": self._settings.temperature,
            "messages": messages,
        }
        if system_prompt:
            request["system"] = system_prompt
        if tools:
            request["tools"] = tools
        return request

    def _to_wire(self, turn: Any) -> dict[str, Any] | None:
        if isinstance(turn, ToolResultsTurn):
            content = []
            for result in turn.results:
                block = {"type": "tool_result", "tool_use_id": result.id, "content": result_text(result)}
                if result.error:
                    block["is_error"] = True
                content.append(block)
            return {"role": "user", "content": content}

        if isinstance(turn, AssistantTurn) and turn.native and turn.protocol == self.protocol.value:
            return {"role": "assistant", "content": turn.native}

        if isinstance(turn.content, str):
            content: Any = turn.content
        else:
            content = [b for b in (_block_to_wire(block) for block in turn.content) if b is not None]
        # The API rejects assistant messages with nothing in them.
        if isinstance(turn, AssistantTurn) and not content:
            return None
        return {"role": turn.role, "content": content}

    async def _send(self, request: dict[str, Any], api_key: str | None) -> dict[str, Any]:
        client = self._client_for(api_key)
        try:
            response = await client.messages.create(**request)
        except anthropic.APITimeoutError as e:
            raise ProviderTimeoutError(self.name, f"Request timed out: {e}") from e
        except anthropic.APIStatusError as e:
            raise self._fail(f"HTTP {e.status_code}: {e.message}", status_code=e.status_code) from e
        except anthropic.APIError as e:
            raise ProviderError(self.name, str(e)) from e
        return response if isinstance(response, dict) else response.to_dict()

    def parse_response(self, data: dict[str, Any]) -> GenerateResult:
        content = data.get("content") or []
        text_parts: list[str] = []
        calls: list[ToolCall] = []
        for block in content:
            if block.get("type") == "text":
                text_parts.append(block.get("text") or "")
            elif block.get("type") == "tool_use":
                calls.append(ToolCall(id=block["id"], name=block["name"], input=block.get("input") or {}))

        usage = data.get("usage") or {}
        return canonical_result(
            "".join(text_parts),
            calls,
            map_stop_reason(data.get("stop_reason"), STOP_REASONS, bool(calls)),
            native=content or None,
            model=data.get("model") or self.model,
            input_tokens=usage.get("input_tokens") or 0,
            output_tokens=usage.get("output_tokens") or 0,
        )
