"""
reactloop Turn Loop

Drives one task as a bounded sequence of model calls:

    1. Send conversation + projected tool declarations to the model
    2. Model answers with text (done) or with tool calls
    3. Dispatch the calls (gated, concurrent, deadline-bounded)
    4. Append the results as a tool_results turn
    5. Repeat until a final text answer, cancellation or max_turns

Every tool call the model emits gets exactly one result in the next turn.
Provider failures are fatal to the run; tool failures never are.
"""

from __future__ import annotations

from typing import Any

from reactloop.config import ApprovalSettings, DispatchSettings, LoopOptions
from reactloop.core.events import EventEmitter, EventSink, EventType
from reactloop.core.models import (
    AssistantTurn,
    RunResult,
    TaskState,
    ToolResult,
    ToolResultsTurn,
    parse_conversation,
)
from reactloop.engine.context import truncate_conversation
from reactloop.exceptions import GenerationError, TurnLimitExceededError
from reactloop.logging import get_logger
from reactloop.providers.base import ProviderAdapter
from reactloop.providers.router import ActiveProvider
from reactloop.safety.approval import ApprovalGate
from reactloop.safety.risk import RiskClassifier
from reactloop.tools.dispatch import ToolDispatcher
from reactloop.tools.registry import ToolRegistry

logger = get_logger("reactloop.engine.loop")

RESULTS_PREVIEW_CHARS = 2000
CANCELLED_NOTE = "cancelled"


def trim_result(result: ToolResult, limit: int) -> ToolResult:
    """Cap a result's content before it goes back into the conversation."""
    content = result.content
    if len(content) <= limit:
        return result
    return result.model_copy(update={
        "content": f"{content[:limit]}\n... [output truncated -- {len(content)} chars total]",
    })


class TurnLoop:
    """Runs tasks against one provider and one tool registry.

    Concurrent ``run`` calls are independent: each owns its TaskState,
    keyed by task id, so cancelling one never affects another.
    """

    def __init__(
        self,
        provider: ProviderAdapter | ActiveProvider,
        registry: ToolRegistry,
        classifier: RiskClassifier | None = None,
        gate: ApprovalGate | None = None,
        events: EventEmitter | EventSink | None = None,
        dispatch_settings: DispatchSettings | None = None,
        approval_settings: ApprovalSettings | None = None,
    ):
        if not isinstance(provider, ActiveProvider):
            provider = ActiveProvider.fixed(provider)
        if not isinstance(events, EventEmitter):
            events = EventEmitter(events)

        self._provider = provider
        self._registry = registry
        self._events = events
        self._classifier = classifier or RiskClassifier()
        if gate is None:
            approval_settings = approval_settings or ApprovalSettings()
            gate = ApprovalGate(events, timeout=approval_settings.timeout_seconds)
        self._gate = gate
        self._dispatcher = ToolDispatcher(
            registry,
            classifier=self._classifier,
            gate=self._gate,
            events=events,
            settings=dispatch_settings,
        )
        self._active: dict[str, TaskState] = {}

    @property
    def gate(self) -> ApprovalGate:
        return self._gate

    @property
    def classifier(self) -> RiskClassifier:
        return self._classifier

    @property
    def events(self) -> EventEmitter:
        return self._events

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    def active_tasks(self) -> list[str]:
        return list(self._active)

    async def run(
        self,
        conversation: list[Any],
        system_prompt: str = "",
        options: LoopOptions | None = None,
        task_id: str | None = None,
    ) -> RunResult:
        """Run the loop until the model gives a final answer.

        The caller's conversation is not modified; the returned RunResult
        carries the extended copy.

        Raises:
            GenerationError: The model call for a turn failed.
            TurnLimitExceededError: ``max_turns`` passed without a final answer.
        """
        options = options or LoopOptions()
        state = TaskState(task_id=task_id) if task_id else TaskState()
        self._active[state.task_id] = state
        turns = parse_conversation(conversation)
        accumulated = ""

        try:
            while state.turn_count < options.max_turns and not state.cancelled:
                state.turn_count += 1
                turn = state.turn_count
                self._events.emit(EventType.THINKING, state.task_id, turn=turn)

                truncate_conversation(turns, system_prompt, options.context_token_budget)

                adapter = self._provider.current()
                declarations = self._registry.project_for(adapter.protocol)
                try:
                    response = await adapter.generate(system_prompt, turns, declarations)
                except Exception as e:
                    self._events.emit(EventType.ERROR, state.task_id, turn=turn, error=str(e))
                    logger.error(
                        "Model call failed: %s", e,
                        extra={"task_id": state.task_id, "turn": turn, "provider": adapter.name},
                    )
                    raise GenerationError(adapter.name, turn, e) from e

                if response.text:
                    accumulated += response.text
                assistant = AssistantTurn(
                    content=response.raw_content or response.text,
                    native=response.native,
                    protocol=adapter.protocol.value,
                )

                if state.cancelled:
                    # Never leave a tool_use without its results.
                    if not response.has_tool_calls:
                        turns.append(assistant)
                    return self._cancelled(state, turns, response.text or accumulated)

                turns.append(assistant)

                if not response.has_tool_calls:
                    final_text = response.text or accumulated
                    self._events.emit(EventType.TEXT_COMPLETE, state.task_id, text=final_text)
                    return RunResult(
                        text=final_text,
                        conversation=turns,
                        turns=turn,
                        task_id=state.task_id,
                    )

                self._events.emit(
                    EventType.TOOL_CALLS, state.task_id,
                    turn=turn,
                    calls=[{"id": c.id, "name": c.name, "input": c.input} for c in response.tool_calls],
                )
                logger.info(
                    "Turn %d: %d tool call(s)", turn, len(response.tool_calls),
                    extra={"task_id": state.task_id, "turn": turn},
                )

                results = await self._dispatcher.dispatch(
                    response.tool_calls,
                    task_id=state.task_id,
                    is_cancelled=lambda: state.cancelled,
                )
                turns.append(ToolResultsTurn(
                    results=[trim_result(r, options.max_result_chars) for r in results],
                ))
                self._events.emit(
                    EventType.TOOL_RESULTS, state.task_id,
                    turn=turn,
                    results=[
                        {
                            "id": r.id,
                            "name": r.name,
                            "success": r.ok,
                            "content": r.content[:RESULTS_PREVIEW_CHARS],
                            "error": r.error,
                        }
                        for r in results
                    ],
                )

            if state.cancelled:
                return self._cancelled(state, turns, accumulated)

            raise TurnLimitExceededError(options.max_turns, state.task_id)
        finally:
            self._active.pop(state.task_id, None)

    def _cancelled(self, state: TaskState, turns: list[Any], text: str) -> RunResult:
        self._events.emit(EventType.CANCELLED, state.task_id, turn=state.turn_count)
        logger.info(
            "Task cancelled after %d turn(s)", state.turn_count,
            extra={"task_id": state.task_id},
        )
        return RunResult(
            text=text,
            conversation=turns,
            turns=state.turn_count,
            cancelled=True,
            task_id=state.task_id,
        )

    def cancel(self, task_id: str | None = None) -> int:
        """Flag one run (or every active run) as cancelled.

        Takes effect at the next turn boundary. Approval requests the
        cancelled runs are waiting on are denied immediately.

        Returns:
            Number of runs flagged.
        """
        targets = [
            state for tid, state in self._active.items()
            if task_id is None or tid == task_id
        ]
        for state in targets:
            state.cancelled = True

        flagged = {state.task_id for state in targets}
        for request in self._gate.pending():
            if request.task_id in flagged:
                self._gate.resolve(request.id, False, CANCELLED_NOTE)
        return len(targets)
