from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Iterator, Literal

logger = logging.getLogger(__name__)


DONE_SENTINEL = "data: [DONE]"
INTERRUPT_EVENT = "__interrupt__"

TokenKind = Literal["event", "data", "raw"]


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    value: str


def _preview(s: str, n: int = 200) -> str:
    return s if len(s) <= n else s[:n] + "..."


def is_done(line: str) -> bool:
    return line.strip() == DONE_SENTINEL


def unwrap_envelope(line: str) -> str | None:
    """
    Outer transport line -> inner protocol text.

    `data: {"content": "..."}` yields the content string. Anything else
    (control lines, error frames, non-JSON) is logged and yields None.
    """
    stripped = line.strip()
    if not stripped.startswith("data:"):
        logger.debug("Ignoring non-data transport line: %s", _preview(stripped))
        return None

    body = stripped[len("data:"):].strip()
    try:
        parsed = json.loads(body)
    except json.JSONDecodeError:
        logger.warning("Failed to parse JSON line: %s", _preview(stripped))
        return None

    if not isinstance(parsed, dict):
        logger.debug("Ignoring non-object envelope: %s", _preview(body))
        return None

    content = parsed.get("content")
    if isinstance(content, str):
        return content

    if parsed.get("error"):
        logger.warning("Upstream reported an error frame: %s", parsed.get("error"))
    else:
        logger.debug("Envelope carries no content: %s", _preview(body))
    return None


def tokenize_line(line: str) -> Token | None:
    stripped = line.strip()
    if not stripped:
        return None
    if stripped.startswith("event:"):
        return Token("event", stripped[len("event:"):].strip())
    if stripped.startswith("data:"):
        payload = stripped[len("data:"):]
        if payload.startswith(" "):
            payload = payload[1:]
        return Token("data", payload)
    return Token("raw", stripped)


def tokenize(content: str) -> Iterator[Token]:
    for line in content.split("\n"):
        token = tokenize_line(line)
        if token is not None:
            yield token
