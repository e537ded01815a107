from __future__ import annotations

import json
import logging
import re
from typing import Any

from sqlstream.parsing.heuristics import is_sql_like
from sqlstream.parsing.models import DEFAULT_PURPOSE, OUTPUT_PARSE_ERROR, SqlExecution

logger = logging.getLogger(__name__)


# Workarounds for an upstream encoder that JSON-encodes the tool result and then
# embeds it in a string again. These match the observed artifacts only; they are
# not a general unescaper and must stay in this order.
_BACKSLASH_BEFORE_IDENT = re.compile(r'\\(?=[A-Za-z_]\w*")')
_BACKSLASH_BEFORE_COLON = re.compile(r'"([^"\\]*?)\\\s*:')


def repair_tool_output(raw: str) -> str:
    s = raw.strip()
    if s.startswith('"'):
        s = s[1:]
    if s.endswith('"'):
        s = s[:-1]

    s = s.replace('\\"', '"')
    s = s.replace("\\n", "\n")
    s = s.replace("\\t", "\t")
    s = _BACKSLASH_BEFORE_IDENT.sub('"', s)
    s = _BACKSLASH_BEFORE_COLON.sub(r'"\1":', s)
    return s


def parse_tool_input(buffer: str) -> dict | None:
    """
    Returns the tool-call arguments when they carry a SQL-like `query`, else None.
    """
    if not buffer:
        return None
    try:
        payload = json.loads(buffer)
    except json.JSONDecodeError:
        logger.warning("Failed to parse tool input: %s", buffer[:200])
        return None
    if not isinstance(payload, dict):
        return None
    query = payload.get("query")
    if not query or not is_sql_like(query):
        return None
    return payload


def tool_purpose(payload: dict, default: str) -> str:
    p = payload.get("purpose")
    return p if isinstance(p, str) and p else default


def execution_from_tool_input(execution_id: str, buffer: str) -> SqlExecution | None:
    payload = parse_tool_input(buffer)
    if payload is None:
        return None
    return SqlExecution(
        id=execution_id,
        purpose=tool_purpose(payload, DEFAULT_PURPOSE),
        query=payload["query"],
        status="executing",
    )


def _outcome(payload: Any) -> dict:
    if not isinstance(payload, dict):
        return {"results": payload, "status": "completed", "error": None}

    results = payload.get("results")
    message = payload.get("message")
    return {
        "results": results if results is not None else payload,
        "status": "error" if payload.get("error") else "completed",
        "error": message if message is None or isinstance(message, str) else str(message),
    }


def apply_tool_output(execution_id: str, buffer: str, existing: SqlExecution | None) -> SqlExecution | None:
    """
    Completion/error transition for `execution_id`.

    When there is no prior record (resume stream carrying only the result),
    one is synthesized with an empty query so the caller-side merge can
    restore the original text.
    """
    if not buffer:
        return None

    try:
        payload = json.loads(repair_tool_output(buffer))
    except json.JSONDecodeError:
        logger.warning(
            "Failed to parse tool output (%d chars): %s...",
            len(buffer),
            buffer[:200],
        )
        update: dict = {"status": "error", "error": OUTPUT_PARSE_ERROR}
    else:
        update = _outcome(payload)

    if existing is not None:
        return existing.model_copy(update=update)
    return SqlExecution(id=execution_id, purpose=DEFAULT_PURPOSE, query="", **update)
