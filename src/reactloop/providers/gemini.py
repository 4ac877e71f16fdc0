"""
reactloop Gemini Adapter

Google Gemini ``generateContent`` over httpx. Roles are ``user`` and
``model``; tool results go back as ``functionResponse`` parts keyed by
function name. Model parts (thought signatures included) are re-sent
verbatim on later turns.
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
    ToolUseBlock,
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

STOP_REASONS = {
    "STOP": StopReason.END_TURN,
    "MAX_TOKENS": StopReason.MAX_TOKENS,
}


def _function_response(name: str, content: str) -> dict[str, Any]:
    return {"functionResponse": {"name": name or "unknown", "response": {"result": content}}}


class GeminiAdapter(HttpAdapter):
    """Gemini REST API (v1beta)."""

    protocol = WireProtocol.GEMINI
    default_vendor = "google"

    def build_request(self, system_prompt: str, conversation: list[Any], tools: list[dict]) -> dict[str, Any]:
        contents = []
        for turn in conversation:
            content = self._convert_turn(parse_turn(turn))
            if content is not None:
                contents.append(content)

        request: dict[str, Any] = {
            "contents": contents,
            "generationConfig": {
                "temperature": self._settings.temperature,
                "maxOutputTokens": self._settings.max_tokens,
            },
        }
        if system_prompt:
            request["system_instruction"] = {"parts": [{"text": system_prompt}]}
        if tools:
            request["tools"] = tools
        return request

    def _convert_turn(self, turn: Any) -> dict[str, Any] | None:
        if isinstance(turn, ToolResultsTurn):
            parts = [_function_response(r.name, result_text(r)) for r in turn.results]
            return {"role": "user", "parts": parts} if parts else None

        if isinstance(turn, AssistantTurn) and turn.native and turn.protocol == self.protocol.value:
            return {"role": "model", "parts": turn.native}

        role = "model" if isinstance(turn, AssistantTurn) else "user"
        if isinstance(turn.content, str):
            return {"role": role, "parts": [{"text": turn.content}]} if turn.content else None

        parts: list[dict[str, Any]] = []
        for block in turn.content:
            if isinstance(block, TextBlock) and block.text:
                parts.append({"text": block.text})
            elif isinstance(block, ToolUseBlock):
                parts.append({"functionCall": {"name": block.name, "args": block.input}})
            elif isinstance(block, ToolResultBlock):
                parts.append(_function_response(block.tool_name, block.content))
        return {"role": role, "parts": parts} if parts else None

    async def _send(self, request: dict[str, Any], api_key: str | None) -> dict[str, Any]:
        url = f"{self.endpoint}/v1beta/models/{self.model}:generateContent"
        return await self._post_json(url, request, params={"key": api_key or ""})

    def parse_response(self, data: dict[str, Any]) -> GenerateResult:
        candidates = data.get("candidates") or [{}]
        candidate = candidates[0]
        parts = (candidate.get("content") or {}).get("parts") or []

        text = "".join(p["text"] for p in parts if p.get("text") and not p.get("thought"))
        calls: list[ToolCall] = []
        for part in parts:
            call = part.get("functionCall")
            if not call:
                continue
            calls.append(ToolCall(
                id=call.get("id") or synthetic_call_id("gemini"),
                name=call["name"],
                input=call.get("args") or {},
            ))

        usage = data.get("usageMetadata") or {}
        return canonical_result(
            text,
            calls,
            map_stop_reason(candidate.get("finishReason"), STOP_REASONS, bool(calls)),
            native=parts or None,
            model=data.get("modelVersion") or self.model,
            input_tokens=usage.get("promptTokenCount") or 0,
            output_tokens=usage.get("candidatesTokenCount") or 0,
        )
