"""
Chat turn containers.

ChatRequest is built once per incoming call and never mutated; ChatResult is
what a unary turn resolves to.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping


class ChatMode(Enum):
    DETAILED = "detailed"
    CONCISE = "concise"
    CREATIVE = "creative"


class ChatRequestError(ValueError):
    """Raised when an incoming chat payload is missing required fields."""


@dataclass(frozen=True)
class ChatRequest:
    """
    One user turn.

    Attributes:
        message: Raw user text
        model_id: Logical model name selected in the UI (e.g. "gpt-5")
        mode: Response style instruction
        stream: Deliver incremental StreamEvents instead of one ChatResult
        use_web_search: Allow search augmentation when the message calls for it
    """

    message: str
    model_id: str
    mode: ChatMode = ChatMode.DETAILED
    stream: bool = False
    use_web_search: bool = True

    def __post_init__(self):
        if not self.message or not self.model_id:
            raise ChatRequestError("Message and model are required")
        if not isinstance(self.mode, ChatMode):
            try:
                object.__setattr__(self, "mode", ChatMode(self.mode))
            except ValueError as e:
                raise ChatRequestError(f"Unsupported mode: {self.mode}") from e

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "ChatRequest":
        """
        Build a request from the inbound JSON shape
        ({message, model, mode, stream, useWebSearch}).
        """
        return cls(
            message=payload.get("message") or "",
            model_id=payload.get("model") or "",
            mode=payload.get("mode") or ChatMode.DETAILED,
            stream=bool(payload.get("stream", False)),
            use_web_search=bool(payload.get("useWebSearch", True)),
        )


@dataclass(frozen=True)
class ChatResult:
    success: bool
    response: str | None = None
    model: str | None = None
    mode: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        if not self.success:
            return {"success": False, "error": self.error}
        return {
            "success": True,
            "response": self.response,
            "model": self.model,
            "mode": self.mode,
        }
