"""Pure dataclasses for threads, messages and discussion sessions. No I/O."""

from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar

from parley.delay import CancellationToken


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    ERROR = "error"
    SYSTEM = "system"
    COMPARISON = "comparison"


class ThreadKind(str, Enum):
    CHAT = "chat"
    NOTE = "note"


class SessionStatus(str, Enum):
    RUNNING = "running"
    PAUSED = "paused"
    STOPPED = "stopped"
    COMPLETED = "completed"


@dataclass(frozen=True)
class ModelDescriptor:
    id: str
    display_name: str
    provider_id: str       # "anthropic", "openai", "xai", "perplexity", "google"
    description: str = ""
    max_tokens: int | None = None


@dataclass(frozen=True)
class FileAttachment:
    name: str
    content: str


# --- Message variants ---
# Timestamps are assigned by MessageLog.append; 0 means "not yet stored".


@dataclass(frozen=True)
class UserMessage:
    role: ClassVar[Role] = Role.USER
    content: str
    timestamp: int = 0


@dataclass(frozen=True)
class AssistantMessage:
    role: ClassVar[Role] = Role.ASSISTANT
    content: str
    model_id: str
    timestamp: int = 0


@dataclass(frozen=True)
class ErrorMessage:
    role: ClassVar[Role] = Role.ERROR
    content: str
    model_id: str | None = None
    timestamp: int = 0


@dataclass(frozen=True)
class SystemMessage:
    role: ClassVar[Role] = Role.SYSTEM
    content: str
    timestamp: int = 0


@dataclass(frozen=True)
class ComparisonSide:
    id: str
    response: str


@dataclass(frozen=True)
class Comparison:
    prompt_text: str
    model1: ComparisonSide
    model2: ComparisonSide


@dataclass(frozen=True)
class ComparisonMessage:
    role: ClassVar[Role] = Role.COMPARISON
    content: str
    comparison: Comparison
    timestamp: int = 0


Message = UserMessage | AssistantMessage | ErrorMessage | SystemMessage | ComparisonMessage


@dataclass
class Thread:
    id: str
    name: str
    kind: ThreadKind = ThreadKind.CHAT
    messages: list[Message] = field(default_factory=list)
    last_used_model_id: str | None = None
    created_at: int = 0
    updated_at: int = 0


@dataclass
class ModelRequest:
    message: str
    model_id: str
    provider_id: str
    attachment: FileAttachment | None = None

    def prompt(self) -> str:
        """Full prompt text, with the attached file folded in when present."""
        if self.attachment is None:
            return self.message
        return (
            f"{self.message}\n\nAttached file '{self.attachment.name}' content:\n"
            f"{self.attachment.content}"
        )


@dataclass
class ModelReply:
    content: str
    model_id: str
    provider_id: str
    latency_sec: float = 0.0
    token_count: int | None = None


@dataclass
class DiscussionSession:
    thread_id: str
    model1_id: str
    model2_id: str
    pending_message: str
    max_rounds: int = 5
    round: int = 0
    status: SessionStatus = SessionStatus.RUNNING
    pause_requested: bool = False
    stop_announced: bool = False
    token: CancellationToken = field(default_factory=CancellationToken)

    @property
    def finished(self) -> bool:
        return self.status in (SessionStatus.STOPPED, SessionStatus.COMPLETED)
