"""Uniform events pushed to streaming callers."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class EventKind(Enum):
    CHUNK = "chunk"
    DONE = "done"
    ERROR = "error"
    SEARCH_START = "search_start"
    SEARCH_PROGRESS = "search_progress"
    SEARCH_RESULT = "search_result"
    SEARCH_COMPLETE = "search_complete"


TERMINAL_KINDS = {EventKind.DONE, EventKind.ERROR}


@dataclass(frozen=True)
class StreamEvent:
    kind: EventKind
    chunk: str = ""
    error: str | None = None
    data: dict[str, Any] = field(default_factory=dict)
    # Set on search_complete so the orchestrator can reuse the outcome; never serialized.
    outcome: Any = field(default=None, compare=False, repr=False)

    @classmethod
    def text(cls, chunk: str) -> "StreamEvent":
        return cls(kind=EventKind.CHUNK, chunk=chunk)

    @classmethod
    def done(cls) -> "StreamEvent":
        return cls(kind=EventKind.DONE)

    @classmethod
    def failure(cls, message: str) -> "StreamEvent":
        return cls(kind=EventKind.ERROR, error=message)

    @classmethod
    def search(cls, kind: EventKind, outcome: Any = None, **data) -> "StreamEvent":
        return cls(kind=kind, data=data, outcome=outcome)

    @property
    def is_terminal(self) -> bool:
        return self.kind in TERMINAL_KINDS

    @property
    def is_search(self) -> bool:
        return self.kind.value.startswith("search_")

    def to_dict(self) -> dict[str, Any]:
        """Wire shape of the event."""
        if self.kind == EventKind.CHUNK:
            return {"chunk": self.chunk, "done": False}
        if self.kind == EventKind.DONE:
            return {"chunk": "", "done": True}
        if self.kind == EventKind.ERROR:
            return {"error": self.error or "", "done": True}
        return {"type": self.kind.value, **self.data, "done": False}
