"""
reactloop Tool System

Every capability the model can call is a Tool held by the ToolRegistry.
Per turn the registry projects its tools into the active protocol's
declaration shape, and the ToolDispatcher runs the calls that come back:

    Model (tool_use) -> RiskClassifier -> ApprovalGate -> concurrent execute

Components:
- Tool / ToolDeclaration: capability descriptor and canonical declaration
- ToolRegistry: last-write-wins registry with atomic source refresh
- projection: per-protocol declaration shapes
- ToolDispatcher: gating, deadlines, transient retries, failure isolation
- ExternalToolSource: plugin-host tools registered as one refreshable unit
"""

from reactloop.tools.dispatch import ToolDispatcher, TransientErrorPolicy, normalize_input
from reactloop.tools.external import ExternalToolSource
from reactloop.tools.models import Tool, ToolCategory, ToolDeclaration
from reactloop.tools.registry import ToolRegistry

__all__ = [
    "ExternalToolSource",
    "Tool",
    "ToolCategory",
    "ToolDeclaration",
    "ToolDispatcher",
    "ToolRegistry",
    "TransientErrorPolicy",
    "normalize_input",
]
