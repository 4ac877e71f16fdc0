"""
reactloop Custom Exceptions

Structured exception hierarchy for the agent core.
All reactloop-specific exceptions inherit from ReactLoopError.

Exception hierarchy:
    ReactLoopError
    +-- ConfigurationError            (invalid settings)
    |   +-- UnknownProviderError      (vendor not in the catalog)
    +-- ProviderError                 (model call failure, fatal to the run)
    |   +-- MissingCredentialError    (vendor needs a key, none configured)
    |   +-- ProviderTimeoutError      (request timeout)
    |   +-- ProviderResponseError     (malformed or vendor-reported error payload)
    |   +-- GenerationError           (provider failure observed by the turn loop)
    +-- ToolExecutionError            (tool failure, reported back to the model)
    |   +-- ToolTimeoutError          (tool exceeded its deadline)
    +-- TurnLimitExceededError        (max turns reached without a final answer)
"""

from __future__ import annotations


class ReactLoopError(Exception):
    """Base exception for all reactloop errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class ConfigurationError(ReactLoopError):
    """Raised when settings are invalid or inconsistent."""


class UnknownProviderError(ConfigurationError):
    """Raised when a vendor name is not in the provider catalog."""

    def __init__(self, vendor: str, known: list[str] | None = None):
        known = known or []
        super().__init__(
            f"Unknown LLM provider: {vendor}. Supported: {', '.join(known)}",
            details={"vendor": vendor, "known": known},
        )
        self.vendor = vendor


class ProviderError(ReactLoopError):
    """Base exception for LLM provider errors."""

    def __init__(self, provider_name: str, message: str, details: dict | None = None):
        super().__init__(
            f"Provider '{provider_name}' error: {message}",
            details={"provider_name": provider_name, **(details or {})},
        )
        self.provider_name = provider_name


class MissingCredentialError(ProviderError):
    """Raised before any request when the vendor requires a key and none is configured."""

    def __init__(self, provider_name: str, label: str | None = None):
        super().__init__(
            provider_name,
            f"No API key configured for {label or provider_name}",
        )
        self.label = label or provider_name


class ProviderTimeoutError(ProviderError):
    """Raised when a provider request times out."""

    pass


class ProviderResponseError(ProviderError):
    """Raised for HTTP failures, malformed payloads and vendor-reported errors."""

    def __init__(
        self,
        provider_name: str,
        message: str,
        status_code: int | None = None,
        details: dict | None = None,
    ):
        super().__init__(
            provider_name,
            message,
            details={"status_code": status_code, **(details or {})},
        )
        self.status_code = status_code


class GenerationError(ProviderError):
    """Raised by the turn loop when the model call for a turn fails.

    Wraps the underlying ProviderError and records which turn failed.
    """

    def __init__(self, provider_name: str, turn: int, cause: Exception):
        super().__init__(
            provider_name,
            f"LLM call failed (turn {turn}): {cause}",
            details={"turn": turn},
        )
        self.turn = turn
        self.cause = cause


class ToolExecutionError(ReactLoopError):
    """Raised when a tool execution fails.

    Includes tool name for debugging. The dispatcher never lets this escape
    the turn; it becomes an errored ToolResult instead.
    """

    def __init__(self, tool_name: str, message: str, details: dict | None = None):
        super().__init__(
            f"Tool '{tool_name}' execution failed: {message}",
            details={"tool_name": tool_name, **(details or {})},
        )
        self.tool_name = tool_name


class ToolTimeoutError(ToolExecutionError):
    """Raised when a tool does not finish within its deadline."""

    def __init__(self, tool_name: str, timeout: float):
        super().__init__(tool_name, f"timed out after {timeout:g}s", details={"timeout": timeout})
        self.timeout = timeout


class TurnLimitExceededError(ReactLoopError):
    """Raised when the loop reaches max_turns without a final answer.

    Signals either an overly complex task or a model stuck in a loop;
    never silently truncated.
    """

    def __init__(self, max_turns: int, task_id: str = ""):
        super().__init__(
            f"Agent reached maximum turns ({max_turns}). "
            "The task may be too complex or the model is looping.",
            details={"max_turns": max_turns, "task_id": task_id},
        )
        self.max_turns = max_turns
        self.task_id = task_id
