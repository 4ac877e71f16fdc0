"""Shared test fixtures for the reactloop test suite."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from reactloop.config import ProviderSettings
from reactloop.core.events import AgentEvent, EventEmitter
from reactloop.core.models import GenerateResult, TextBlock, ToolCall, ToolUseBlock
from reactloop.providers.catalog import WireProtocol
from reactloop.tools.models import Tool, ToolCategory
from reactloop.tools.registry import ToolRegistry


def text_result(text: str) -> GenerateResult:
    return GenerateResult(text=text, raw_content=[TextBlock(text=text)], stop_reason="end_turn")


def tool_result(*calls: tuple[str, str, dict], text: str = "") -> GenerateResult:
    """GenerateResult asking for ``calls`` given as (id, name, input) tuples."""
    blocks: list[Any] = [TextBlock(text=text)] if text else []
    tool_calls = []
    for call_id, name, tool_input in calls:
        blocks.append(ToolUseBlock(id=call_id, name=name, input=tool_input))
        tool_calls.append(ToolCall(id=call_id, name=name, input=tool_input))
    return GenerateResult(text=text, tool_calls=tool_calls, raw_content=blocks, stop_reason="tool_use")


class ScriptedAdapter:
    """Stand-in provider that replays queued results and records each request."""

    protocol = WireProtocol.ANTHROPIC
    name = "scripted"
    model = "scripted-model"

    def __init__(self, *results: GenerateResult | Exception, repeat_last: bool = False):
        self.settings = ProviderSettings(vendor="anthropic", model=self.model)
        self._results = list(results)
        self._repeat_last = repeat_last
        self.requests: list[dict[str, Any]] = []
        self.on_generate = None

    async def generate(self, system_prompt: str, conversation: list[Any], tools: list[dict] | None = None):
        self.requests.append({
            "system_prompt": system_prompt,
            "conversation": list(conversation),
            "tools": tools,
        })
        if self.on_generate is not None:
            self.on_generate()
        if len(self._results) > 1 or not self._repeat_last:
            result = self._results.pop(0)
        else:
            result = self._results[0]
        if isinstance(result, Exception):
            raise result
        return result


class EventRecorder:
    def __init__(self) -> None:
        self.events: list[AgentEvent] = []

    def __call__(self, event: AgentEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type) -> list[AgentEvent]:
        return [e for e in self.events if e.type == event_type]


@pytest.fixture
def recorder() -> EventRecorder:
    return EventRecorder()


@pytest.fixture
def emitter(recorder: EventRecorder) -> EventEmitter:
    return EventEmitter(recorder)


@pytest.fixture
def echo_tool() -> Tool:
    return Tool(
        "echo",
        lambda args: f"echo: {args.get('text', '')}",
        description="Echo the text back",
        parameters={"type": "object", "properties": {"text": {"type": "string"}}, "required": ["text"]},
        risk_level="safe",
    )


@pytest.fixture
def slow_tool() -> Tool:
    async def run(args: dict) -> str:
        await asyncio.sleep(args.get("delay", 0.05))
        return "slow done"

    return Tool("slow", run, description="Sleeps then answers", risk_level="safe")


@pytest.fixture
def failing_tool() -> Tool:
    def run(args: dict) -> str:
        raise RuntimeError("disk on fire")

    return Tool("broken", run, description="Always fails", risk_level="safe")


@pytest.fixture
def registry(echo_tool: Tool, slow_tool: Tool, failing_tool: Tool) -> ToolRegistry:
    return ToolRegistry([echo_tool, slow_tool, failing_tool])


@pytest.fixture
def delete_tool() -> Tool:
    deleted: list[str] = []

    def run(args: dict) -> str:
        deleted.append(args["path"])
        return f"deleted {args['path']}"

    tool = Tool(
        "fs_delete",
        run,
        description="Delete a file",
        parameters={"type": "object", "properties": {"path": {"type": "string"}}, "required": ["path"]},
        category=ToolCategory.FILESYSTEM,
        risk_level="dangerous",
    )
    tool.deleted = deleted  # type: ignore[attr-defined]
    return tool
