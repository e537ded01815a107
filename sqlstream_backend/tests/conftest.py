import itertools
import json
from types import SimpleNamespace

import pytest

from sqlstream.parsing.parser import ContentParser


def envelope(*lines: str) -> str:
    """One transport record wrapping the given inner protocol lines."""
    return "data: " + json.dumps({"content": "\n".join(lines)}, ensure_ascii=False) + "\n\n"


def block(channel: str, *payload_lines: str) -> list[str]:
    return [
        "event: block-start",
        f"data: {json.dumps(channel)}",
        *payload_lines,
        "event: block-end",
        f"data: {json.dumps(channel)}",
    ]


def fragment(text: str) -> str:
    return f"data: {json.dumps(text, ensure_ascii=False)}"


def tool_input(args: dict) -> list[str]:
    # tool arguments arrive as a JSON string fragment
    return block("tool-input", fragment(json.dumps(args)))


def tool_output(payload: dict) -> list[str]:
    return block("tool-output", f"data: {json.dumps(payload)}")


@pytest.fixture
def wire():
    return SimpleNamespace(
        envelope=envelope,
        block=block,
        fragment=fragment,
        tool_input=tool_input,
        tool_output=tool_output,
    )


@pytest.fixture
def parser():
    ids = itertools.count(1)
    interrupt_ids = itertools.count(1)
    return ContentParser(
        execution_id_factory=lambda: f"sql-{next(ids)}",
        interrupt_id_factory=lambda: f"interrupted-{next(interrupt_ids)}",
    )
