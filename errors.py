from enum import Enum


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    PARSE_ERROR = "parse_error"
    EMPTY_TOKEN = "empty_token"
    NETWORK = "network"
    HTTP = "http"
    NO_DATA = "no_data"
    TOOL_NOT_FOUND = "tool_not_found"
    PROCESS = "process"
    BOTH_FAILED = "both_failed"
    IO = "io"


class UsageError(Exception):
    """Base for every failure the engine knows how to report."""

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind


class CredentialError(UsageError):
    pass


class PrimarySourceError(UsageError):
    def __init__(self, kind: ErrorKind, message: str, status: int | None = None, body: str = ""):
        super().__init__(kind, message)
        self.status = status
        self.body = body


class SecondarySourceError(UsageError):
    pass


class ReconciliationError(UsageError):
    def __init__(self, primary_error: Exception, secondary_error: Exception):
        self.primary_error = primary_error
        self.secondary_error = secondary_error
        super().__init__(ErrorKind.BOTH_FAILED, str(self.surfaced))

    @property
    def surfaced(self) -> Exception:
        # Primary wins unless it has nothing to say.
        if str(self.primary_error):
            return self.primary_error
        return self.secondary_error


class PersistenceError(UsageError):
    pass
