"""
reactloop Approval Gate

Suspends a risky tool call until an external approver answers or the
timeout elapses. Each request is a one-shot future stored under a
correlation id; the wait is a race between that future and a timer.

Presence in the pending map is the single source of truth for "still
pending". Whoever removes the entry first (an external ``resolve`` or
the timeout) decides the outcome; the other side becomes a no-op.
"""

from __future__ import annotations

import asyncio

from reactloop.core.events import EventEmitter, EventType
from reactloop.core.models import ApprovalAction, ApprovalDecision, ApprovalRequest
from reactloop.logging import get_logger

logger = get_logger("reactloop.safety.approval")

DEFAULT_APPROVAL_TIMEOUT = 300.0
TIMED_OUT_NOTE = "timed out"


class ApprovalGate:
    """Correlation-keyed map of outstanding approval requests."""

    def __init__(
        self,
        events: EventEmitter | None = None,
        timeout: float = DEFAULT_APPROVAL_TIMEOUT,
    ):
        self._events = events or EventEmitter()
        self._timeout = timeout
        self._pending: dict[str, tuple[ApprovalRequest, asyncio.Future[ApprovalDecision]]] = {}

    @property
    def timeout(self) -> float:
        return self._timeout

    async def request_approval(self, action: ApprovalAction, task_id: str = "") -> ApprovalDecision:
        """Publish an approval request and wait for its single resolution.

        Times out to ``ApprovalDecision(approved=False, note="timed out")``;
        fails closed, never open.
        """
        request = ApprovalRequest(task_id=task_id, action=action)
        future: asyncio.Future[ApprovalDecision] = asyncio.get_running_loop().create_future()
        self._pending[request.id] = (request, future)

        self._events.emit(
            EventType.APPROVAL_REQUEST,
            task_id,
            requestId=request.id,
            action=action.model_dump(mode="json"),
            timestamp=request.created_at.isoformat(),
        )
        logger.info(
            "Approval requested for %s", action.tool_name,
            extra={"request_id": request.id, "task_id": task_id or None, "tool_name": action.tool_name},
        )

        try:
            decision = await asyncio.wait_for(future, timeout=self._timeout)
        except asyncio.TimeoutError:
            decision = ApprovalDecision(approved=False, note=TIMED_OUT_NOTE)
            logger.warning(
                "Approval timed out for %s", action.tool_name,
                extra={"request_id": request.id, "tool_name": action.tool_name},
            )
        finally:
            self._pending.pop(request.id, None)
        return decision

    def resolve(self, request_id: str, approved: bool, note: str | None = None) -> bool:
        """Deliver an external decision.

        Returns True if the request was still pending, False for unknown,
        already-resolved or timed-out ids (no-op).
        """
        entry = self._pending.pop(request_id, None)
        if entry is None:
            return False
        _, future = entry
        if future.done():
            return False
        future.set_result(ApprovalDecision(
            approved=approved,
            note=note if note is not None else ("approved" if approved else "denied"),
        ))
        return True

    def pending(self) -> list[ApprovalRequest]:
        return [request for request, _ in self._pending.values()]

    def deny_all(self, note: str = "cancelled") -> int:
        """Resolve every outstanding request as denied; returns how many."""
        count = 0
        for request_id in list(self._pending):
            if self.resolve(request_id, False, note):
                count += 1
        return count

    def __len__(self) -> int:
        return len(self._pending)
