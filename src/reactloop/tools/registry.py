"""
reactloop Tool Registry

Central registry for every capability the turn loop can dispatch. The
registry owns the set of Tools and projects them, per turn, into the
declaration shape of the active wire protocol.

Writers (register, unregister, replace_source) build a new mapping and
swap it in under a lock; readers take the current mapping once. A
concurrent ``project_for`` therefore sees either the old or the new set,
never a mix.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable

from reactloop.logging import get_logger
from reactloop.providers.catalog import WireProtocol
from reactloop.tools.models import Tool, ToolDeclaration
from reactloop.tools.projection import project

logger = get_logger("reactloop.tools.registry")


class ToolRegistry:
    """Name-keyed set of Tools. Last registration for a name wins."""

    def __init__(self, tools: Iterable[Tool] | None = None) -> None:
        self._tools: dict[str, Tool] = {}
        self._write_lock = threading.Lock()
        if tools:
            self.register_many(tools)

    def register(self, tool: Tool) -> None:
        """Register a tool, replacing any existing tool with the same name."""
        self.register_many([tool])

    def register_many(self, tools: Iterable[Tool]) -> None:
        with self._write_lock:
            updated = dict(self._tools)
            for tool in tools:
                if tool.name in updated:
                    logger.debug("Replacing tool %s", tool.name, extra={"tool_name": tool.name})
                updated[tool.name] = tool
            self._tools = updated

    def unregister(self, name: str) -> bool:
        with self._write_lock:
            if name not in self._tools:
                return False
            updated = dict(self._tools)
            del updated[name]
            self._tools = updated
            return True

    def replace_source(self, source: str, tools: Iterable[Tool]) -> int:
        """Swap every tool attributed to ``source`` for ``tools`` in one step.

        Returns the number of previously registered tools removed.
        """
        incoming = list(tools)
        for tool in incoming:
            tool.source = source

        with self._write_lock:
            updated = {name: t for name, t in self._tools.items() if t.source != source}
            removed = len(self._tools) - len(updated)
            for tool in incoming:
                updated[tool.name] = tool
            self._tools = updated

        logger.info(
            "Refreshed tool source %s: %d removed, %d registered",
            source, removed, len(incoming),
        )
        return removed

    def get(self, name: str) -> Tool | None:
        """Look up a registered tool by name."""
        return self._tools.get(name)

    def list_tools(self) -> list[Tool]:
        return list(self._tools.values())

    def names(self) -> list[str]:
        return list(self._tools.keys())

    def declarations(self) -> list[ToolDeclaration]:
        return [t.declaration for t in self._tools.values()]

    def project_for(self, target: str | WireProtocol) -> list[dict]:
        """Tool declarations in the wire shape of a vendor or protocol."""
        snapshot = self._tools
        return project([t.declaration for t in snapshot.values()], target)

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools
