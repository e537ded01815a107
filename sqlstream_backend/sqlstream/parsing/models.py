from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


DEFAULT_PURPOSE = "Query execution"
INTERRUPTED_PURPOSE = "Interrupted Query"
OUTPUT_PARSE_ERROR = "Failed to parse SQL output response"

Channel = Literal["reasoning", "narrative"]
ExecutionStatus = Literal["executing", "completed", "error", "interrupted"]


def _now() -> datetime:
    return datetime.now(timezone.utc)


class WireModel(BaseModel):
    """
    Python attribute names are snake_case; the collaborator-facing JSON is camelCase.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ----------------------------
# Content
# ----------------------------
class ContentBlock(WireModel):
    id: str
    channel: Channel
    content: str = ""
    created_at: datetime = Field(default_factory=_now)


class GroupedContentBlock(WireModel):
    """
    Derived view over a run of consecutive same-channel blocks.
    Reasoning runs keep their sub-blocks; narrative runs are flattened to text.
    """

    id: str
    channel: Channel
    payload: str | list[ContentBlock]
    earliest_timestamp: datetime
    is_multiple: bool = False


# ----------------------------
# Executions
# ----------------------------
class SqlExecution(WireModel):
    id: str
    purpose: str = DEFAULT_PURPOSE
    original_purpose: str | None = None
    query: str = ""
    results: Any = None
    status: ExecutionStatus = "executing"
    error: str | None = None
    timestamp: datetime = Field(default_factory=_now)
    thread_id: str | None = None


class InterruptedQuery(WireModel):
    id: str
    query: str
    original_query: str
    purpose: str = INTERRUPTED_PURPOSE


# ----------------------------
# Parse call result
# ----------------------------
class ParseResult(WireModel):
    text: str = ""
    reasoning: list[ContentBlock] = Field(default_factory=list)
    content_blocks: list[ContentBlock] = Field(default_factory=list)
    grouped_content_blocks: list[GroupedContentBlock] = Field(default_factory=list)
    sql_executions: list[SqlExecution] = Field(default_factory=list)
    has_new_sql: bool = False
    is_interrupted: bool = False
    interrupted_query: InterruptedQuery | None = None

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
