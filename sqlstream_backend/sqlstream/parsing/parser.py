from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable

from sqlstream.parsing.envelope import INTERRUPT_EVENT, is_done, tokenize_line, unwrap_envelope
from sqlstream.parsing.grouping import group_blocks
from sqlstream.parsing.interrupts import detect_interrupt
from sqlstream.parsing.machine import (
    AppendText,
    CloseBlock,
    Effect,
    MachineState,
    OpenBlock,
    ToolInputClosed,
    ToolOutputClosed,
    reduce,
)
from sqlstream.parsing.models import (
    ContentBlock,
    GroupedContentBlock,
    InterruptedQuery,
    ParseResult,
    SqlExecution,
)
from sqlstream.parsing.tool_io import apply_tool_output, execution_from_tool_input
from sqlstream.utils.ids import new_execution_id, new_interrupt_id

logger = logging.getLogger(__name__)


def _is_interrupt_line(line: str) -> bool:
    token = tokenize_line(line)
    return token is not None and token.kind == "event" and token.value == INTERRUPT_EVENT


class ContentParser:
    """
    Incremental parser for one agent stream.

    Feed it one buffered transport record at a time via `parse_chunk`; the
    returned ParseResult is cumulative for this instance until `reset()`.
    Malformed records are logged and skipped, never raised.
    """

    def __init__(
        self,
        *,
        execution_id_factory: Callable[[], str] = new_execution_id,
        interrupt_id_factory: Callable[[], str] = new_interrupt_id,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._new_execution_id = execution_id_factory
        self._new_interrupt_id = interrupt_id_factory
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self.reset()

    def reset(self) -> None:
        self._state = MachineState()
        self._blocks: list[ContentBlock] = []
        self._open_block: ContentBlock | None = None
        self._block_counter = 0
        self._executions: list[SqlExecution] = []
        self._interrupted = False
        self._interrupted_query: InterruptedQuery | None = None
        self._resume_target: str | None = None

    def set_resume_target(self, execution_id: str) -> None:
        self._resume_target = execution_id

    # ----------------------------
    # Feeding
    # ----------------------------
    def parse_chunk(self, raw_chunk: str) -> ParseResult:
        before = len(self._executions)

        lines = raw_chunk.split("\n")
        for i, line in enumerate(lines):
            stripped = line.strip()
            if not stripped:
                continue
            if is_done(stripped):
                break
            if _is_interrupt_line(stripped):
                self._interrupt(lines[i + 1:])
                break

            content = unwrap_envelope(stripped)
            if content is not None and self._feed_content(content):
                break

        return self._snapshot(has_new_sql=len(self._executions) > before)

    def _feed_content(self, content: str) -> bool:
        """Returns True when the content raised an interruption."""
        inner = content.split("\n")
        for i, line in enumerate(inner):
            token = tokenize_line(line)
            if token is None:
                continue
            if token.kind == "event" and token.value == INTERRUPT_EVENT:
                self._interrupt(inner[i + 1:])
                return True
            self._state, effects = reduce(self._state, token, self._new_execution_id)
            for effect in effects:
                self._apply(effect)
        return False

    def _interrupt(self, following: list[str]) -> None:
        self._interrupted = True
        detection = detect_interrupt(following, self._state, self._new_interrupt_id)
        if detection.query is not None:
            self._interrupted_query = detection.query
        if detection.execution is not None:
            self._record(detection.execution.model_copy(update={"timestamp": self._clock()}))
        logger.info(
            "Stream interrupted (query=%s)",
            detection.query.id if detection.query else None,
        )

    # ----------------------------
    # Effects
    # ----------------------------
    def _apply(self, effect: Effect) -> None:
        if isinstance(effect, OpenBlock):
            self._block_counter += 1
            block = ContentBlock(
                id=f"{effect.channel}-{self._block_counter}",
                channel=effect.channel,
                created_at=self._clock(),
            )
            self._blocks.append(block)
            self._open_block = block

        elif isinstance(effect, AppendText):
            if self._open_block is not None and self._open_block.channel == effect.channel:
                self._open_block.content += effect.text

        elif isinstance(effect, CloseBlock):
            block = self._open_block
            if block is not None and block.channel == "reasoning":
                block.content = block.content.strip()
            self._open_block = None

        elif isinstance(effect, ToolInputClosed):
            execution = execution_from_tool_input(effect.execution_id, effect.buffer)
            if execution is not None:
                self._record(execution.model_copy(update={"timestamp": self._clock()}))

        elif isinstance(effect, ToolOutputClosed):
            execution_id = effect.execution_id or self._resume_target
            if not execution_id:
                logger.warning("No execution id available for tool-output processing")
                return
            existing = self._find(execution_id)
            updated = apply_tool_output(execution_id, effect.buffer, existing)
            if updated is None:
                return
            if existing is None:
                updated = updated.model_copy(update={"timestamp": self._clock()})
            self._record(updated)

    def _find(self, execution_id: str) -> SqlExecution | None:
        for e in self._executions:
            if e.id == execution_id:
                return e
        return None

    def _record(self, execution: SqlExecution) -> None:
        for i, e in enumerate(self._executions):
            if e.id == execution.id:
                self._executions[i] = execution
                return
        self._executions.append(execution)

    # ----------------------------
    # Views
    # ----------------------------
    @property
    def is_interrupted(self) -> bool:
        return self._interrupted

    @property
    def interrupted_query(self) -> InterruptedQuery | None:
        return self._interrupted_query

    def content_blocks(self) -> list[ContentBlock]:
        return [b.model_copy() for b in self._blocks]

    def grouped_content_blocks(self) -> list[GroupedContentBlock]:
        return group_blocks(self._blocks)

    def reasoning_blocks(self) -> list[ContentBlock]:
        return [b.model_copy() for b in self._blocks if b.channel == "reasoning"]

    def narrative_text(self) -> str:
        return "".join(b.content for b in self._blocks if b.channel == "narrative")

    def sql_executions(self) -> list[SqlExecution]:
        return [e.model_copy(deep=True) for e in self._executions]

    def _snapshot(self, has_new_sql: bool) -> ParseResult:
        return ParseResult(
            text=self.narrative_text(),
            reasoning=self.reasoning_blocks(),
            content_blocks=self.content_blocks(),
            grouped_content_blocks=self.grouped_content_blocks(),
            sql_executions=self.sql_executions(),
            has_new_sql=has_new_sql,
            is_interrupted=self._interrupted,
            interrupted_query=self._interrupted_query.model_copy() if self._interrupted_query else None,
        )
