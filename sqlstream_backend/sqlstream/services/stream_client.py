from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict

import httpx

from sqlstream.api.schemas import ChatModelSettings, ExecuteQueryRequest, StreamChatRequest
from sqlstream.core.config import Settings, get_settings
from sqlstream.core.errors import SqlStreamError, StreamTransportError
from sqlstream.parsing.envelope import is_done
from sqlstream.parsing.models import ParseResult
from sqlstream.parsing.parser import ContentParser
from sqlstream.services.session import ChatSession

logger = logging.getLogger(__name__)


RECORD_SEPARATOR = "\n\n"


def _noop(*_args: Any) -> None:
    return None


@dataclass
class StreamHandlers:
    on_update: Callable[[ParseResult], None] = _noop
    on_error: Callable[[str], None] = _noop
    on_complete: Callable[[], None] = _noop


def split_records(buffer: str) -> tuple[list[str], str]:
    """
    Split buffered transport text into complete records plus the trailing
    partial record, which must be kept for the next read.
    """
    parts = buffer.split(RECORD_SEPARATOR)
    return parts[:-1], parts[-1]


class AgentStreamClient:
    """
    Drives one agent stream at a time: POSTs the request, feeds each complete
    record to a ContentParser and reports results through StreamHandlers.

    Transport failures end the stream with a single `on_error`; whatever was
    parsed before the failure has already been delivered and stays valid.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._transport = transport

    def _model_settings(self) -> ChatModelSettings:
        s = self._settings
        return ChatModelSettings(
            primary_model=s.PRIMARY_MODEL,
            secondary_model=s.SECONDARY_MODEL,
            max_tokens=s.MAX_TOKENS,
        )

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._settings.AGENT_API_KEY:
            headers["Authorization"] = f"Bearer {self._settings.AGENT_API_KEY}"
        return headers

    def build_chat_request(self, session: ChatSession, message: str) -> StreamChatRequest:
        return StreamChatRequest(
            message=message,
            user_id=session.user_id,
            thread_id=session.thread_id,
            interrupt_policy=self._settings.INTERRUPT_POLICY,
            tables_schema_xml=session.require_schema(),
            chat_model_settings=self._model_settings(),
        )

    def build_query_request(self, session: ChatSession, query: str, reason: str) -> ExecuteQueryRequest:
        return ExecuteQueryRequest(
            query=query,
            reason=reason,
            chat_model_settings=self._model_settings(),
            tables_schema_xml=session.require_schema(),
            user_id=session.user_id,
            thread_id=session.thread_id,
        )

    async def stream_chat(
        self,
        session: ChatSession,
        message: str,
        handlers: StreamHandlers,
        *,
        parser: ContentParser | None = None,
    ) -> Dict[str, Any]:
        try:
            request = self.build_chat_request(session, message)
        except SqlStreamError as e:
            return self._fail(handlers, e)

        return await self._run(
            self._settings.CHAT_STREAM_PATH,
            request.model_dump(by_alias=True),
            parser or ContentParser(),
            handlers,
        )

    async def execute_query(
        self,
        session: ChatSession,
        query: str,
        reason: str,
        target_execution_id: str | None,
        handlers: StreamHandlers,
        *,
        parser: ContentParser | None = None,
    ) -> Dict[str, Any]:
        """
        Resume a previously interrupted execution. Tool output arriving without
        a matching tool input is bound to `target_execution_id`.
        """
        try:
            request = self.build_query_request(session, query, reason)
        except SqlStreamError as e:
            return self._fail(handlers, e)

        parser = parser or ContentParser()
        if target_execution_id:
            parser.set_resume_target(target_execution_id)

        return await self._run(
            self._settings.RESUME_STREAM_PATH,
            request.model_dump(by_alias=True),
            parser,
            handlers,
        )

    async def _run(
        self,
        path: str,
        body: dict,
        parser: ContentParser,
        handlers: StreamHandlers,
    ) -> Dict[str, Any]:
        last: ParseResult | None = None

        def feed(record: str) -> ParseResult | None:
            nonlocal last
            if not record.strip():
                return None
            last = parser.parse_chunk(record + RECORD_SEPARATOR)
            handlers.on_update(last)
            return last

        try:
            async with httpx.AsyncClient(
                base_url=self._settings.AGENT_BASE_URL,
                timeout=httpx.Timeout(self._settings.STREAM_TIMEOUT_SECONDS),
                transport=self._transport,
            ) as client:
                async with client.stream("POST", path, json=body, headers=self._headers()) as response:
                    if not response.is_success:
                        raise StreamTransportError(
                            f"HTTP error! status: {response.status_code}",
                            status_code=response.status_code,
                        )

                    buffer = ""
                    done = False
                    async for text in response.aiter_text():
                        buffer += text
                        records, buffer = split_records(buffer)
                        for record in records:
                            if is_done(record):
                                done = True
                                break
                            result = feed(record)
                            if result is not None and result.is_interrupted:
                                # further buffered input belongs to the paused run
                                handlers.on_complete()
                                return {"status": "INTERRUPTED", "result": result}
                        if done:
                            break

                    if not done and not is_done(buffer):
                        result = feed(buffer)
                        if result is not None and result.is_interrupted:
                            handlers.on_complete()
                            return {"status": "INTERRUPTED", "result": result}

        except (SqlStreamError, httpx.HTTPError) as e:
            return self._fail(handlers, e, last)

        handlers.on_complete()
        return {"status": "COMPLETED", "result": last}

    def _fail(
        self,
        handlers: StreamHandlers,
        error: Exception,
        last: ParseResult | None = None,
    ) -> Dict[str, Any]:
        message = str(error) or error.__class__.__name__
        logger.error("Agent stream failed: %s", message)
        handlers.on_error(message)
        return {"status": "FAILED", "result": last, "error": message}
