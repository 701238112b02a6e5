"""
Models package for chat turn, provider result and stream event objects.
"""

from .chat import ChatMode, ChatRequest, ChatRequestError, ChatResult
from .provider_result import FallbackKind, NormalizedError, ProviderCallResult, StreamShape
from .stream_event import EventKind, StreamEvent

__all__ = [
    "ChatMode",
    "ChatRequest",
    "ChatRequestError",
    "ChatResult",
    "EventKind",
    "FallbackKind",
    "NormalizedError",
    "ProviderCallResult",
    "StreamEvent",
    "StreamShape",
]
