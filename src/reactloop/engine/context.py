"""
reactloop Context Truncation

Keeps the conversation inside a rough token budget before every model
call. Tokens are estimated as ``ceil(chars / 3.5)`` over the compact JSON
form of each turn's content (strings as-is). Assistant turns carrying a
vendor-native payload are measured by that payload.

Strategy: keep the first user turn and the most recent turns; drop the
oldest turns after the first until under budget.
"""

from __future__ import annotations

import json
import math
from typing import Any

from pydantic import BaseModel

from reactloop.core.models import ToolResultsTurn
from reactloop.logging import get_logger

logger = get_logger("reactloop.engine.context")

CHARS_PER_TOKEN = 3.5
DEFAULT_TOKEN_BUDGET = 80_000
MIN_TURNS = 3


def _jsonable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, list):
        return [_jsonable(v) for v in value]
    return value


def estimate_tokens(payload: Any) -> int:
    if not payload:
        return 0
    if isinstance(payload, str):
        text = payload
    else:
        text = json.dumps(_jsonable(payload), separators=(",", ":"), ensure_ascii=False, default=str)
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def turn_tokens(turn: Any) -> int:
    """Estimate for one turn: its native payload or content, plus any tool result contents."""
    if isinstance(turn, dict):
        content = turn.get("native") or turn.get("content")
        results = turn.get("results") or []
        return estimate_tokens(content) + sum(estimate_tokens(r.get("content")) for r in results)

    total = estimate_tokens(getattr(turn, "native", None) or getattr(turn, "content", None))
    for result in getattr(turn, "results", None) or []:
        total += estimate_tokens(result.content)
    return total


def _is_tool_results(turn: Any) -> bool:
    if isinstance(turn, dict):
        return turn.get("role") == "tool_results"
    return isinstance(turn, ToolResultsTurn)


def truncate_conversation(
    conversation: list[Any],
    system_prompt: str = "",
    max_tokens: int = DEFAULT_TOKEN_BUDGET,
) -> int:
    """Drop turns from index 1 in place until the estimate fits the budget.

    Never removes the first turn or the last two. A tool_results turn left
    at index 1 (its assistant turn just removed) goes too, as long as more
    than three turns remain.

    Returns:
        Number of turns removed.
    """
    budget = max_tokens - estimate_tokens(system_prompt)
    total = sum(turn_tokens(t) for t in conversation)
    if total <= budget:
        return 0

    removed = 0
    while total > budget and len(conversation) > MIN_TURNS:
        total -= turn_tokens(conversation.pop(1))
        removed += 1
        while len(conversation) > MIN_TURNS and _is_tool_results(conversation[1]):
            total -= turn_tokens(conversation.pop(1))
            removed += 1

    if removed:
        logger.info("Truncated %d turns to fit context budget", removed)
    return removed
