"""
reactloop Ollama Adapter

Local models through Ollama's native ``/api/chat`` endpoint. No API key.

Ollama tool calls carry object arguments and no ids, so ids are
synthesized here and tool results are matched back by ``tool_name``.
"""

from __future__ import annotations

from typing import Any

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
from reactloop.providers.base import (
    HttpAdapter,
    canonical_result,
    map_stop_reason,
    result_text,
    synthetic_call_id,
)
from reactloop.providers.catalog import WireProtocol
from reactloop.providers.openai import parse_arguments

STOP_REASONS = {
    "stop": StopReason.END_TURN,
    "length": StopReason.MAX_TOKENS,
}


class OllamaAdapter(HttpAdapter):
    """Ollama chat API over httpx."""

    protocol = WireProtocol.OLLAMA
    default_vendor = "ollama"

    def build_request(self, system_prompt: str, conversation: list[Any], tools: list[dict]) -> dict[str, Any]:
        messages: list[dict[str, Any]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        for turn in conversation:
            messages.extend(self._convert_turn(parse_turn(turn)))

        request: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "stream": False,
            "options": {
                "temperature": self._settings.temperature,
                "num_predict": self._settings.max_tokens,
            },
        }
        if tools:
            request["tools"] = tools
        return request

    def _convert_turn(self, turn: Any) -> list[dict[str, Any]]:
        if isinstance(turn, ToolResultsTurn):
            return [
                {"role": "tool", "content": result_text(r), "tool_name": r.name}
                for r in turn.results
            ]

        if isinstance(turn, AssistantTurn):
            if turn.native is not None and turn.protocol == self.protocol.value:
                return [turn.native]
            message: dict[str, Any] = {"role": "assistant", "content": turn.text}
            tool_calls = [
                {"function": {"name": block.name, "arguments": block.input}}
                for block in turn.tool_uses()
            ]
            if tool_calls:
                message["tool_calls"] = tool_calls
            return [message]

        if isinstance(turn, UserTurn) and not isinstance(turn.content, str):
            messages = [
                {"role": "tool", "content": b.content, "tool_name": b.tool_name}
                for b in turn.content
                if isinstance(b, ToolResultBlock)
            ]
            text = "".join(b.text for b in turn.content if isinstance(b, TextBlock))
            if text:
                messages.append({"role": "user", "content": text})
            return messages

        return [{"role": "user", "content": turn.content}]

    async def _send(self, request: dict[str, Any], api_key: str | None) -> dict[str, Any]:
        return await self._post_json(f"{self.endpoint}/api/chat", request)

    def parse_response(self, data: dict[str, Any]) -> GenerateResult:
        message = data.get("message") or {}
        text = message.get("content") or ""

        calls: list[ToolCall] = []
        for tc in message.get("tool_calls") or []:
            function = tc.get("function") or tc
            calls.append(ToolCall(
                id=synthetic_call_id("ollama"),
                name=function["name"],
                input=parse_arguments(function.get("arguments")),
            ))

        native: dict[str, Any] = {"role": "assistant", "content": text}
        if message.get("tool_calls"):
            native["tool_calls"] = message["tool_calls"]

        return canonical_result(
            text,
            calls,
            map_stop_reason(data.get("done_reason"), STOP_REASONS, bool(calls)),
            native=native,
            model=data.get("model") or self.model,
            input_tokens=data.get("prompt_eval_count") or 0,
            output_tokens=data.get("eval_count") or 0,
        )
