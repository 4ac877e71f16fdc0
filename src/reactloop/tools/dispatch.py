"""
reactloop Tool Dispatch

Turns one model response's tool calls into exactly one ToolResult each,
in the same order the model emitted them:

1. Classify every call; unknown names fail without classification
2. Gate dangerous calls (and sensitive ones when configured) through the
   approval gate, one at a time, in call order
3. Execute everything dispatchable concurrently
4. Wrap each execution with a deadline, a bounded retry for transient
   errors, and isolation so one failure never aborts its siblings

Tool failures never raise out of ``dispatch``; they come back as data so
the model can correct itself on the next turn.
"""

from __future__ import annotations

import asyncio
import errno
import json
import time
from typing import Any

from reactloop.config import DispatchSettings
from reactloop.core.events import EventEmitter, EventType
from reactloop.core.models import ApprovalAction, RiskLevel, ToolCall, ToolResult
from reactloop.exceptions import ToolTimeoutError
from reactloop.logging import get_logger
from reactloop.safety.approval import ApprovalGate
from reactloop.safety.risk import RiskClassifier
from reactloop.tools.models import Tool
from reactloop.tools.registry import ToolRegistry

logger = get_logger("reactloop.tools.dispatch")

UNKNOWN_TOOL = "unknown_tool"
DENIED = "denied"
CANCELLED = "cancelled"


def _discard_late_result(task: asyncio.Future) -> None:
    if not task.cancelled() and task.exception() is not None:
        logger.debug("Late failure from timed-out tool: %s", task.exception())


class TransientErrorPolicy:
    """Decides whether a tool failure is worth another attempt.

    Membership is configuration: codes are matched against ``errno`` names
    and, case-insensitively, against the error message.
    """

    def __init__(
        self,
        codes: list[str] | tuple[str, ...] = ("EBUSY", "ETIMEDOUT", "EAGAIN"),
        types: tuple[type[BaseException], ...] = (BlockingIOError, ConnectionResetError),
    ):
        self.codes = tuple(c.upper() for c in codes)
        self.types = types

    def is_transient(self, error: BaseException) -> bool:
        if isinstance(error, ToolTimeoutError):
            return False
        if self.types and isinstance(error, self.types):
            return True
        err_no = getattr(error, "errno", None)
        if isinstance(err_no, int) and errno.errorcode.get(err_no, "") in self.codes:
            return True
        code = getattr(error, "code", None)
        if isinstance(code, str) and code.upper() in self.codes:
            return True
        message = str(error).upper()
        return any(c in message for c in self.codes)


def normalize_input(tool: Tool | None, tool_input: Any) -> dict[str, Any]:
    """Best-effort repair of model-emitted arguments.

    A whole-input JSON string is parsed (anything but an object becomes
    ``{}``). Parameters the schema declares as array/object but that
    arrived as strings are parsed when valid JSON, else left as-is.
    """
    if isinstance(tool_input, str):
        try:
            tool_input = json.loads(tool_input)
        except json.JSONDecodeError:
            return {}
    if not isinstance(tool_input, dict):
        return {}
    if tool is None:
        return dict(tool_input)

    normalized = dict(tool_input)
    for key, value in tool_input.items():
        if not isinstance(value, str):
            continue
        if tool.parameter_type(key) not in ("array", "object"):
            continue
        try:
            normalized[key] = json.loads(value)
        except json.JSONDecodeError:
            pass  # keep the raw string
    return normalized


class ToolDispatcher:
    """Executes one turn's worth of tool calls."""

    def __init__(
        self,
        registry: ToolRegistry,
        classifier: RiskClassifier | None = None,
        gate: ApprovalGate | None = None,
        events: EventEmitter | None = None,
        settings: DispatchSettings | None = None,
        transient: TransientErrorPolicy | None = None,
    ):
        self._registry = registry
        self._classifier = classifier or RiskClassifier()
        self._events = events or EventEmitter()
        self._gate = gate or ApprovalGate(self._events)
        self._settings = settings or DispatchSettings()
        self._transient = transient or TransientErrorPolicy(self._settings.transient_codes)

    @property
    def settings(self) -> DispatchSettings:
        return self._settings

    def timeout_for(self, tool: Tool) -> float:
        if tool.timeout is not None:
            return tool.timeout
        if tool.category.value in self._settings.long_running_categories:
            return self._settings.long_running_timeout
        return self._settings.default_timeout

    def _needs_approval(self, level: RiskLevel) -> bool:
        if level == RiskLevel.DANGEROUS:
            return True
        return self._settings.gate_sensitive and level == RiskLevel.SENSITIVE

    async def dispatch(
        self,
        calls: list[ToolCall],
        task_id: str = "",
        is_cancelled=lambda: False,
    ) -> list[ToolResult]:
        """Produce one ToolResult per call, positionally aligned with ``calls``."""
        results: list[ToolResult | None] = [None] * len(calls)
        runnable: list[tuple[int, Tool, dict[str, Any]]] = []
        gated: list[tuple[int, Tool, dict[str, Any], RiskLevel]] = []

        for index, call in enumerate(calls):
            tool = self._registry.get(call.name)
            if tool is None:
                results[index] = self._unknown_tool(call)
                continue
            tool_input = normalize_input(tool, call.input)
            level = self._classifier.classify(call.name, tool_input, default=tool.risk_level)
            if self._needs_approval(level):
                gated.append((index, tool, tool_input, level))
            else:
                runnable.append((index, tool, tool_input))

        for index, tool, tool_input, level in gated:
            call = calls[index]
            if is_cancelled():
                results[index] = ToolResult(
                    id=call.id,
                    name=call.name,
                    content="Operation skipped: the task was cancelled.",
                    error=CANCELLED,
                )
                continue
            decision = await self._gate.request_approval(
                ApprovalAction(tool_name=call.name, arguments=tool_input, risk_level=level),
                task_id,
            )
            if decision.approved:
                runnable.append((index, tool, tool_input))
            else:
                note = f" ({decision.note})" if decision.note else ""
                results[index] = ToolResult(
                    id=call.id,
                    name=call.name,
                    content=f"User denied permission for this operation.{note}",
                    error=DENIED,
                )

        outcomes = await asyncio.gather(
            *(self._execute(calls[index], tool, tool_input, task_id) for index, tool, tool_input in runnable),
            return_exceptions=True,
        )
        for (index, _, _), outcome in zip(runnable, outcomes):
            call = calls[index]
            if isinstance(outcome, BaseException):
                # _execute already isolates tool errors; this only catches bugs
                # in the wrapper itself or a cancellation of the whole turn.
                if isinstance(outcome, asyncio.CancelledError):
                    raise outcome
                message = str(outcome) or type(outcome).__name__
                outcome = ToolResult(
                    id=call.id,
                    name=call.name,
                    content=f"Tool execution error: {message}",
                    error=message,
                )
            results[index] = outcome

        return [r for r in results if r is not None]

    async def _execute(self, call: ToolCall, tool: Tool, tool_input: dict[str, Any], task_id: str) -> ToolResult:
        timeout = self.timeout_for(tool)
        self._events.emit(EventType.TOOL_START, task_id, id=call.id, name=call.name, input=tool_input)

        start = time.monotonic()
        last_error: BaseException | None = None
        for attempt in range(self._settings.max_retries + 1):
            try:
                output = await self._run_with_deadline(tool, tool_input, timeout)
            except Exception as e:
                last_error = e
                if attempt < self._settings.max_retries and self._transient.is_transient(e):
                    logger.info(
                        "Transient failure in %s (attempt %d), retrying: %s",
                        call.name, attempt + 1, e,
                        extra={"tool_name": call.name, "task_id": task_id or None},
                    )
                    await asyncio.sleep(self._settings.retry_delay)
                    continue
                break
            else:
                duration_ms = round((time.monotonic() - start) * 1000, 2)
                self._events.emit(
                    EventType.TOOL_END, task_id,
                    id=call.id, name=call.name, success=True, outputPreview=output[:300],
                )
                logger.debug(
                    "Tool %s finished", call.name,
                    extra={"tool_name": call.name, "duration_ms": duration_ms},
                )
                return ToolResult(id=call.id, name=call.name, content=output)

        message = str(last_error) or type(last_error).__name__
        self._events.emit(
            EventType.TOOL_END, task_id,
            id=call.id, name=call.name, success=False, error=message,
        )
        logger.warning(
            "Tool %s failed: %s", call.name, message,
            extra={"tool_name": call.name, "task_id": task_id or None},
        )
        return ToolResult(
            id=call.id,
            name=call.name,
            content=f"Error executing {call.name}: {message}",
            error=message,
        )

    @staticmethod
    async def _run_with_deadline(tool: Tool, tool_input: dict[str, Any], timeout: float) -> str:
        # The timer only bounds our observation. The tool keeps running and
        # its side effects may still land after we stop waiting.
        task = asyncio.ensure_future(tool.run(tool_input))
        done, _ = await asyncio.wait({task}, timeout=timeout)
        if not done:
            task.add_done_callback(_discard_late_result)
            raise ToolTimeoutError(tool.name, timeout)
        return task.result()

    def _unknown_tool(self, call: ToolCall) -> ToolResult:
        available = ", ".join(self._registry.names())
        return ToolResult(
            id=call.id,
            name=call.name,
            content=f'Unknown tool: "{call.name}". Available tools: {available}',
            error=UNKNOWN_TOOL,
        )
