from __future__ import annotations

import json
import logging
from dataclasses import dataclass, replace
from typing import Callable, Literal, Union

from sqlstream.parsing.envelope import INTERRUPT_EVENT, Token

logger = logging.getLogger(__name__)


ChannelState = Literal["idle", "reasoning", "narrative", "tool_input", "tool_output"]

# wire name -> channel; "thinking"/"text" are the older upstream spellings
CHANNEL_NAMES: dict[str, ChannelState] = {
    "reasoning": "reasoning",
    "thinking": "reasoning",
    "narrative": "narrative",
    "text": "narrative",
    "tool-input": "tool_input",
    "tool-output": "tool_output",
}

CONTENT_CHANNELS = ("reasoning", "narrative")
TOOL_CHANNELS = ("tool_input", "tool_output")


# ----------------------------
# State
# ----------------------------
@dataclass(frozen=True)
class MachineState:
    channel: ChannelState = "idle"
    # a block-start was seen; the next data token may name the channel
    awaiting_channel: bool = False
    # the data token right after block-end describes the closed block
    skip_next_data: bool = False
    execution_id: str | None = None
    tool_buffer: str = ""


# ----------------------------
# Effects
# ----------------------------
@dataclass(frozen=True)
class OpenBlock:
    channel: str


@dataclass(frozen=True)
class AppendText:
    channel: str
    text: str


@dataclass(frozen=True)
class CloseBlock:
    channel: str


@dataclass(frozen=True)
class ToolInputClosed:
    execution_id: str
    buffer: str


@dataclass(frozen=True)
class ToolOutputClosed:
    execution_id: str | None
    buffer: str


Effect = Union[OpenBlock, AppendText, CloseBlock, ToolInputClosed, ToolOutputClosed]
Step = tuple[MachineState, list[Effect]]


def _strip_quotes(s: str) -> str:
    if len(s) >= 2 and s.startswith('"') and s.endswith('"'):
        return s[1:-1]
    return s


def _channel_from_data(payload: str) -> ChannelState | None:
    try:
        name = json.loads(payload)
    except json.JSONDecodeError:
        return None
    if not isinstance(name, str):
        return None
    return CHANNEL_NAMES.get(name)


def _leave(state: MachineState) -> list[Effect]:
    if state.channel in CONTENT_CHANNELS:
        return [CloseBlock(state.channel)]
    return []


# ----------------------------
# Transitions
# ----------------------------
def _open(state: MachineState, channel: ChannelState, new_execution_id: Callable[[], str]) -> Step:
    effects = _leave(state)
    if channel in CONTENT_CHANNELS:
        effects.append(OpenBlock(channel))
        return replace(state, channel=channel), effects
    if channel == "tool_input":
        return replace(state, channel=channel, tool_buffer="", execution_id=new_execution_id()), effects
    return replace(state, channel=channel, tool_buffer=""), effects


def _close(state: MachineState) -> Step:
    effects: list[Effect] = []
    if state.channel in CONTENT_CHANNELS:
        effects.append(CloseBlock(state.channel))
    elif state.channel == "tool_input":
        if state.execution_id:
            effects.append(ToolInputClosed(state.execution_id, state.tool_buffer))
    elif state.channel == "tool_output":
        effects.append(ToolOutputClosed(state.execution_id, state.tool_buffer))
    return replace(state, channel="idle", skip_next_data=True, tool_buffer=""), effects


def _on_event(state: MachineState, name: str, new_execution_id: Callable[[], str]) -> Step:
    if name == "block-start":
        return replace(state, awaiting_channel=True), []

    if name == "block-end":
        return _close(state)

    if name == "complete":
        return replace(state, channel="idle", tool_buffer=""), _leave(state)

    channel = CHANNEL_NAMES.get(name)
    if channel in CONTENT_CHANNELS:
        if state.channel == channel:
            return state, []
        return _open(state, channel, new_execution_id)

    if channel in TOOL_CHANNELS:
        # continuation style: switch channel, keep buffer and id
        return replace(state, channel=channel), _leave(state)

    if name != INTERRUPT_EVENT:
        logger.debug("Ignoring unknown event: %s", name)
    return state, []


def _on_data(state: MachineState, payload: str) -> Step:
    if state.channel == "idle":
        return state, []

    if state.channel == "tool_output":
        # double-encoded upstream; kept raw until the block closes
        return replace(state, tool_buffer=state.tool_buffer + payload), []

    try:
        value = json.loads(payload)
    except json.JSONDecodeError:
        logger.warning("Failed to parse %s data: %s", state.channel, payload[:200])
        return state, []

    if state.channel == "tool_input":
        fragment = value if isinstance(value, str) else payload
        return replace(state, tool_buffer=state.tool_buffer + fragment), []

    if not isinstance(value, str):
        logger.warning("Skipping non-string %s fragment: %r", state.channel, value)
        return state, []
    return state, [AppendText(state.channel, value)]


def _on_raw(state: MachineState, line: str) -> Step:
    if state.channel in TOOL_CHANNELS:
        return replace(state, tool_buffer=state.tool_buffer + _strip_quotes(line)), []
    return state, []


def reduce(state: MachineState, token: Token, new_execution_id: Callable[[], str]) -> Step:
    """
    Pure transition: (state, token) -> (state, effects).

    `new_execution_id` is only called when a tool-input channel opens.
    """
    if state.skip_next_data:
        state = replace(state, skip_next_data=False)
        if token.kind == "data":
            return state, []

    if state.awaiting_channel:
        state = replace(state, awaiting_channel=False)
        if token.kind == "data":
            channel = _channel_from_data(token.value)
            if channel is not None:
                return _open(state, channel, new_execution_id)

    if token.kind == "event":
        return _on_event(state, token.value, new_execution_id)
    if token.kind == "data":
        return _on_data(state, token.value)
    return _on_raw(state, token.value)
