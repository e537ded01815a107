from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Callable, Iterable

from sqlstream.parsing.heuristics import is_sql_like
from sqlstream.parsing.machine import MachineState
from sqlstream.parsing.models import INTERRUPTED_PURPOSE, InterruptedQuery, SqlExecution
from sqlstream.parsing.tool_io import parse_tool_input, tool_purpose

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InterruptDetection:
    query: InterruptedQuery | None = None
    execution: SqlExecution | None = None


def _interrupt_payload_line(line: str) -> str | None:
    stripped = line.strip()
    if not stripped.startswith("data:"):
        return None
    body = stripped[len("data:"):].strip()
    if body.startswith("[") and '"value"' in body:
        return body
    return None


def _interrupt_id(raw: object, fallback_id: Callable[[], str]) -> str:
    if isinstance(raw, str) and raw:
        return raw
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        return str(raw)
    return fallback_id()


def _materialize(execution_id: str, query: str, purpose: str) -> InterruptDetection:
    return InterruptDetection(
        query=InterruptedQuery(id=execution_id, query=query, original_query=query, purpose=purpose),
        execution=SqlExecution(
            id=execution_id,
            purpose=purpose,
            original_purpose=purpose,
            query=query,
            status="interrupted",
        ),
    )


def _from_payload(lines: Iterable[str], fallback_id: Callable[[], str]) -> InterruptDetection | None:
    for line in lines:
        body = _interrupt_payload_line(line)
        if body is None:
            continue
        try:
            data = json.loads(body)
        except json.JSONDecodeError:
            logger.warning("Failed to parse interrupt data: %s", body[:200])
            return None
        if not isinstance(data, list) or not data or not isinstance(data[0], dict):
            return None
        first = data[0]
        value = first.get("value")
        if not is_sql_like(value):
            return None
        return _materialize(_interrupt_id(first.get("id"), fallback_id), value, INTERRUPTED_PURPOSE)
    return None


def _from_tool_input(state: MachineState) -> InterruptDetection | None:
    if state.channel != "tool_input" or not state.execution_id or not state.tool_buffer:
        return None
    payload = parse_tool_input(state.tool_buffer)
    if payload is None:
        return None
    return _materialize(state.execution_id, payload["query"], tool_purpose(payload, INTERRUPTED_PURPOSE))


def detect_interrupt(
    following: Iterable[str],
    state: MachineState,
    fallback_id: Callable[[], str],
) -> InterruptDetection:
    """
    Recover the paused query after an `__interrupt__` event.

    The first `data: [...]` line carrying a `value` wins; otherwise a tool-input
    channel still open at the interruption point is used. A detection with no
    query still means the stream is interrupted.
    """
    return _from_payload(following, fallback_id) or _from_tool_input(state) or InterruptDetection()
