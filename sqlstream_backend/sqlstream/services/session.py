from __future__ import annotations

from pydantic import BaseModel, Field

from sqlstream.core.errors import MissingSchemaError
from sqlstream.utils.ids import new_thread_id


class ChatSession(BaseModel):
    """
    Per-conversation request context: who is talking, on which thread, and
    which uploaded tables the agent may query. Created when the conversation
    starts and cleared when the upload is replaced or the session ends.
    """

    user_id: str
    thread_id: str = Field(default_factory=new_thread_id)
    tables_schema_xml: str | None = None
    upload_id: str | None = None

    @property
    def has_schema(self) -> bool:
        return bool(self.tables_schema_xml and self.tables_schema_xml.strip())

    def attach_upload(self, tables_schema_xml: str, upload_id: str | None = None) -> None:
        self.tables_schema_xml = tables_schema_xml
        self.upload_id = upload_id

    def clear(self) -> None:
        self.tables_schema_xml = None
        self.upload_id = None

    def require_schema(self) -> str:
        if not self.has_schema:
            raise MissingSchemaError()
        return self.tables_schema_xml  # type: ignore[return-value]
