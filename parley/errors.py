"""Error taxonomy shared by the orchestrator and the provider adapters."""

from enum import Enum


class ErrorKind(str, Enum):
    NETWORK = "network"
    AUTH = "auth"
    RATE_LIMIT = "rate_limit"
    INVALID_MODEL = "invalid_model"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"
    BUSY = "busy"


class OrchestratorError(Exception):
    """Raised to the caller when an operation is rejected. Nothing is appended."""

    kind: ErrorKind = ErrorKind.UNKNOWN


class BusyError(OrchestratorError):
    """Another operation is already active on the thread."""

    kind = ErrorKind.BUSY

    def __init__(self, thread_id: str, active_operation: str) -> None:
        self.thread_id = thread_id
        self.active_operation = active_operation
        super().__init__(f"Thread {thread_id} is busy with '{active_operation}'")


class InvalidModelError(OrchestratorError):
    """Model id is not in the catalog."""

    kind = ErrorKind.INVALID_MODEL

    def __init__(self, model_id: str) -> None:
        self.model_id = model_id
        super().__init__(f"Unknown model: {model_id}")


class ThreadNotFoundError(OrchestratorError):
    def __init__(self, thread_id: str) -> None:
        self.thread_id = thread_id
        super().__init__(f"Thread not found: {thread_id}")


class ThreadKindError(OrchestratorError):
    """Message operations only apply to chat threads."""

    def __init__(self, thread_id: str) -> None:
        self.thread_id = thread_id
        super().__init__(f"Thread {thread_id} is a note, not a chat")
