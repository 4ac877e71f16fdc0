"""
reactloop Core Data Models

The canonical, vendor-agnostic conversation model shared by the turn loop,
the tool dispatcher and every provider adapter. This module is the
foundation that every other component imports from; it must have zero
internal dependencies beyond pydantic.

Canonical turns (Anthropic-inspired):
    user          content: str | [text | tool_result blocks]
    assistant     content: str | [text | tool_use blocks]
    tool_results  results: [ToolResult]   (synthetic; adapters expand it)
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter


# ─── Enums ───────────────────────────────────────────────────

class RiskLevel(str, Enum):
    """Risk tier of a single tool invocation."""
    SAFE = "safe"
    SENSITIVE = "sensitive"
    DANGEROUS = "dangerous"

    @property
    def rank(self) -> int:
        return _RISK_RANK[self]

    def escalate(self, other: RiskLevel) -> RiskLevel:
        """Return the higher of the two levels."""
        return other if other.rank > self.rank else self


_RISK_RANK = {RiskLevel.SAFE: 0, RiskLevel.SENSITIVE: 1, RiskLevel.DANGEROUS: 2}


class StopReason(str, Enum):
    """Normalized reasons a model turn ended."""
    END_TURN = "end_turn"
    TOOL_USE = "tool_use"
    MAX_TOKENS = "max_tokens"


# ─── Content Blocks ──────────────────────────────────────────

class TextBlock(BaseModel):
    type: Literal["text"] = "text"
    text: str = ""


class ToolUseBlock(BaseModel):
    """A model-requested action inside an assistant turn."""
    type: Literal["tool_use"] = "tool_use"
    id: str
    name: str
    input: dict[str, Any] = Field(default_factory=dict)


class ToolResultBlock(BaseModel):
    """A tool outcome injected inside a user turn."""
    type: Literal["tool_result"] = "tool_result"
    tool_use_id: str
    content: str = ""
    is_error: bool = False
    tool_name: str = ""


ContentBlock = Annotated[
    Union[TextBlock, ToolUseBlock, ToolResultBlock],
    Field(discriminator="type"),
]


# ─── Tool Calls & Results ────────────────────────────────────

class ToolCall(BaseModel):
    """A single model-requested action, correlated to its result by id."""
    id: str
    name: str
    input: Any = Field(default_factory=dict)


class ToolResult(BaseModel):
    """Outcome of one tool call.

    When ``error`` is set, ``content`` already describes the failure in a
    form the model can read and react to on the next turn.
    """
    id: str
    name: str
    content: str = ""
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


# ─── Turns ───────────────────────────────────────────────────

class UserTurn(BaseModel):
    role: Literal["user"] = "user"
    content: str | list[ContentBlock] = ""


class AssistantTurn(BaseModel):
    """A model turn.

    ``native`` is the vendor's own payload for this turn and ``protocol``
    the wire protocol that produced it. Adapters re-submit ``native``
    verbatim to the same protocol and rebuild from ``content`` otherwise.
    """
    role: Literal["assistant"] = "assistant"
    content: str | list[ContentBlock] = ""
    native: Any = None
    protocol: str | None = None

    def tool_uses(self) -> list[ToolUseBlock]:
        if isinstance(self.content, str):
            return []
        return [b for b in self.content if isinstance(b, ToolUseBlock)]

    @property
    def text(self) -> str:
        if isinstance(self.content, str):
            return self.content
        return "".join(b.text for b in self.content if isinstance(b, TextBlock))


class ToolResultsTurn(BaseModel):
    """Synthetic canonical-only turn carrying the results of the previous assistant turn."""
    role: Literal["tool_results"] = "tool_results"
    results: list[ToolResult] = Field(default_factory=list)


Turn = Annotated[
    Union[UserTurn, AssistantTurn, ToolResultsTurn],
    Field(discriminator="role"),
]

Conversation = list[Turn]

_TURN_ADAPTER: TypeAdapter[Any] = TypeAdapter(Turn)


def parse_turn(data: dict[str, Any] | BaseModel) -> UserTurn | AssistantTurn | ToolResultsTurn:
    """Validate a plain dict (or pass through a model) as a canonical turn."""
    if isinstance(data, (UserTurn, AssistantTurn, ToolResultsTurn)):
        return data
    return _TURN_ADAPTER.validate_python(data)


def parse_conversation(turns: list[Any]) -> list[UserTurn | AssistantTurn | ToolResultsTurn]:
    return [parse_turn(t) for t in turns]


# ─── Provider Output ─────────────────────────────────────────

class GenerateResult(BaseModel):
    """Canonical result of one provider ``generate`` call."""
    text: str = ""
    tool_calls: list[ToolCall] = Field(default_factory=list)
    raw_content: str | list[ContentBlock] = ""
    stop_reason: str = StopReason.END_TURN.value
    native: Any = None
    model: str = ""
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)


# ─── Loop State & Output ─────────────────────────────────────

class TaskState(BaseModel):
    """Per-run state, owned by exactly one ``TurnLoop.run`` invocation."""
    task_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    turn_count: int = 0
    cancelled: bool = False


class RunResult(BaseModel):
    text: str = ""
    conversation: list[Turn] = Field(default_factory=list)
    turns: int = 0
    cancelled: bool = False
    task_id: str = ""


# ─── Approvals & Audit ───────────────────────────────────────

class ApprovalAction(BaseModel):
    """The tool invocation an approver is asked about."""
    tool_name: str
    arguments: Any = Field(default_factory=dict)
    risk_level: RiskLevel = RiskLevel.DANGEROUS


class ApprovalRequest(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    task_id: str = ""
    action: ApprovalAction
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ApprovalDecision(BaseModel):
    approved: bool
    note: str = ""


class AuditEntry(BaseModel):
    """One risk classification, with sensitive argument values redacted."""
    tool_name: str
    arguments: Any = Field(default_factory=dict)
    risk_level: RiskLevel
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
