"""
External tool sources (plugin hosts).

A connected plugin host advertises tool definitions shaped
``{name, description, inputSchema}``. They are registered under
``mcp_{slug}_{tool}`` and refreshed as one unit whenever the host
reconnects or its tool list changes.
"""

from __future__ import annotations

import re
from collections.abc import Awaitable, Callable
from typing import Any

from reactloop.core.models import RiskLevel
from reactloop.tools.models import Tool, ToolCategory
from reactloop.tools.registry import ToolRegistry

CallTool = Callable[[str, dict[str, Any]], Awaitable[Any]]


def slugify(name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "_", (name or "server").lower()).strip("_")
    return slug[:32] or "server"


class ExternalToolSource:
    """Adapts one plugin host's tools into registry Tools."""

    def __init__(self, name: str, call_tool: CallTool, source_id: str | None = None):
        self.name = name
        self.slug = slugify(name)
        self.source_id = source_id or f"mcp:{self.slug}"
        self._call_tool = call_tool

    def registry_name(self, tool_name: str) -> str:
        return f"mcp_{self.slug}_{tool_name}"

    def build_tools(self, definitions: list[dict[str, Any]]) -> list[Tool]:
        tools = []
        for definition in definitions:
            remote_name = definition["name"]
            schema = definition.get("inputSchema") or {"type": "object", "properties": {}}
            description = f"[MCP:{self.name}] {definition.get('description') or remote_name}"
            tools.append(Tool(
                name=self.registry_name(remote_name),
                execute=self._executor(remote_name),
                description=description,
                parameters={
                    "type": "object",
                    "properties": schema.get("properties") or {},
                    "required": schema.get("required") or [],
                },
                category=ToolCategory.EXTERNAL,
                risk_level=RiskLevel.SENSITIVE,
                source=self.source_id,
            ))
        return tools

    def refresh(self, registry: ToolRegistry, definitions: list[dict[str, Any]]) -> int:
        """Replace this source's tools in ``registry``; returns how many were removed."""
        return registry.replace_source(self.source_id, self.build_tools(definitions))

    def detach(self, registry: ToolRegistry) -> int:
        return registry.replace_source(self.source_id, [])

    def _executor(self, remote_name: str):
        async def execute(tool_input: dict[str, Any]) -> Any:
            return await self._call_tool(remote_name, tool_input)

        return execute
