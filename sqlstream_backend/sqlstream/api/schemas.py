from pydantic import BaseModel, ConfigDict, Field

from sqlstream.parsing.models import SqlExecution


class ChatModelSettings(BaseModel):
    primary_model: str
    secondary_model: str
    max_tokens: int = Field(default=16384, gt=0)


class StreamChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    user_id: str = Field(alias="userId")
    thread_id: str = Field(alias="threadId")
    interrupt_policy: str = "never"
    tables_schema_xml: str
    chat_model_settings: ChatModelSettings = Field(alias="chatModelSettings")


class ExecuteQueryRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    query: str
    reason: str
    chat_model_settings: ChatModelSettings
    tables_schema_xml: str
    user_id: str = Field(alias="userId")
    thread_id: str = Field(alias="threadId")


class ParseTranscriptRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    transcript: str = Field(description="Raw transport text, records separated by blank lines")
    resume_target_id: str | None = Field(default=None, alias="resumeTargetId")


class MergeLedgerRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    existing: list[SqlExecution] = Field(default_factory=list)
    incoming: list[SqlExecution] = Field(default_factory=list)
    fallback_thread_id: str | None = Field(default=None, alias="fallbackThreadId")
