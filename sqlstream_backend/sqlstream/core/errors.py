class SqlStreamError(Exception):
    """Base class for failures surfaced by sqlstream."""


class MissingSchemaError(SqlStreamError):
    def __init__(self, message: str = "No CSV data available. Please upload a CSV file first.") -> None:
        super().__init__(message)


class StreamTransportError(SqlStreamError):
    """
    Transport-level failure of one agent stream (non-2xx status, read error).
    Fatal for the current stream only.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ResumeTargetNotFound(SqlStreamError):
    def __init__(self, execution_id: str) -> None:
        super().__init__(f"Cannot resume: query not found ({execution_id})")
        self.execution_id = execution_id
