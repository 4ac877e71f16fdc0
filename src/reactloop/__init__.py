"""
reactloop — Provider-Agnostic Agent Turn Loop

Usage:
    from reactloop import TurnLoop, ToolRegistry, Tool, create_adapter, ProviderSettings

    registry = ToolRegistry([Tool("fs_read", read_file, parameters={...}, risk_level="safe")])
    adapter = create_adapter(ProviderSettings(vendor="anthropic", model="claude-sonnet-4-20250514"))
    loop = TurnLoop(adapter, registry)

    result = await loop.run(
        [{"role": "user", "content": "Summarize README.md"}],
        system_prompt="You are a helpful desktop agent.",
    )
    print(result.text)
"""

from reactloop.config import (
    ApprovalSettings,
    DispatchSettings,
    LoopOptions,
    ProviderSettings,
    SettingsHolder,
)
from reactloop.core.events import AgentEvent, EventEmitter, EventType
from reactloop.core.models import (
    ApprovalDecision,
    ApprovalRequest,
    AssistantTurn,
    GenerateResult,
    RiskLevel,
    RunResult,
    ToolCall,
    ToolResult,
    ToolResultsTurn,
    UserTurn,
)
from reactloop.credentials import ChainedCredentials, EnvCredentials, StaticCredentials
from reactloop.engine.loop import TurnLoop
from reactloop.exceptions import (
    GenerationError,
    MissingCredentialError,
    ProviderError,
    ReactLoopError,
    TurnLimitExceededError,
)
from reactloop.providers import ActiveProvider, WireProtocol, create_adapter
from reactloop.safety import ApprovalGate, RiskClassifier
from reactloop.tools import ExternalToolSource, Tool, ToolCategory, ToolDispatcher, ToolRegistry

__version__ = "0.1.0"

__all__ = [
    # Main API
    "TurnLoop",
    "__version__",
    # Configuration
    "ApprovalSettings",
    "DispatchSettings",
    "LoopOptions",
    "ProviderSettings",
    "SettingsHolder",
    # Models
    "ApprovalDecision",
    "ApprovalRequest",
    "AssistantTurn",
    "GenerateResult",
    "RiskLevel",
    "RunResult",
    "ToolCall",
    "ToolResult",
    "ToolResultsTurn",
    "UserTurn",
    # Events
    "AgentEvent",
    "EventEmitter",
    "EventType",
    # Providers
    "ActiveProvider",
    "WireProtocol",
    "create_adapter",
    "ChainedCredentials",
    "EnvCredentials",
    "StaticCredentials",
    # Tools
    "ExternalToolSource",
    "Tool",
    "ToolCategory",
    "ToolDispatcher",
    "ToolRegistry",
    # Safety
    "ApprovalGate",
    "RiskClassifier",
    # Errors
    "GenerationError",
    "MissingCredentialError",
    "ProviderError",
    "ReactLoopError",
    "TurnLimitExceededError",
]
