"""
reactloop Tool Models

A Tool is a named capability with a JSON-schema-like parameter contract
and an execute entry point returning text. Concrete implementations
(filesystem, shell, office, browser, fetch) live outside the core and
are handed in as opaque callables.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from reactloop.core.models import RiskLevel


class ToolCategory(str, Enum):
    """Coarse grouping used for timeouts and external-source bookkeeping."""
    FILESYSTEM = "filesystem"
    SYSTEM = "system"
    DOCUMENT = "document"
    BROWSER = "browser"
    WEB = "web"
    APP = "app"
    LLM = "llm"
    EXTERNAL = "external"
    OTHER = "other"


class ToolDeclaration(BaseModel):
    """Canonical, vendor-agnostic tool declaration."""
    name: str
    description: str = ""
    parameters: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}, "required": []}
    )

    @property
    def properties(self) -> dict[str, Any]:
        return self.parameters.get("properties") or {}

    @property
    def required(self) -> list[str]:
        return list(self.parameters.get("required") or [])


ToolHandler = Callable[[dict[str, Any]], Any] | Callable[[dict[str, Any]], Awaitable[Any]]


class Tool:
    """A registered capability.

    ``execute`` receives the (normalized) input dict and returns text, or
    raises with a message on failure. Sync handlers run in a worker thread
    so one blocking tool cannot stall its concurrently dispatched siblings.
    """

    def __init__(
        self,
        name: str,
        execute: ToolHandler,
        *,
        description: str = "",
        parameters: dict[str, Any] | None = None,
        category: ToolCategory | str = ToolCategory.OTHER,
        risk_level: RiskLevel | str = RiskLevel.SENSITIVE,
        timeout: float | None = None,
        source: str | None = None,
    ):
        if not name or not callable(execute):
            raise ValueError("Invalid tool: must have name and execute function")
        self.name = name
        self.execute = execute
        self.description = description
        self.parameters = _object_schema(parameters)
        self.category = ToolCategory(category)
        self.risk_level = RiskLevel(risk_level)
        self.timeout = timeout
        self.source = source

    @property
    def declaration(self) -> ToolDeclaration:
        return ToolDeclaration(
            name=self.name,
            description=self.description,
            parameters=self.parameters,
        )

    def parameter_type(self, key: str) -> str | None:
        prop = (self.parameters.get("properties") or {}).get(key)
        if not isinstance(prop, dict):
            return None
        return prop.get("type")

    async def run(self, tool_input: dict[str, Any]) -> str:
        if inspect.iscoroutinefunction(self.execute):
            output = await self.execute(tool_input)
        else:
            output = await asyncio.to_thread(self.execute, tool_input)
            if inspect.isawaitable(output):
                output = await output
        return "" if output is None else str(output)

    def __repr__(self) -> str:
        return f"Tool(name={self.name!r}, category={self.category.value}, risk={self.risk_level.value})"


def _object_schema(parameters: dict[str, Any] | None) -> dict[str, Any]:
    schema = dict(parameters or {})
    schema.setdefault("type", "object")
    schema.setdefault("properties", {})
    schema.setdefault("required", [])
    return schema
