"""Pydantic request models for FastAPI endpoints."""

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

Mode = Literal["detailed", "concise", "creative"]


class ChatRequestBody(BaseModel):
    # message/model presence is checked by models.chat.ChatRequest so the
    # error text matches the non-HTTP entry points.
    model_config = ConfigDict(populate_by_name=True)

    message: Optional[str] = None
    model: Optional[str] = None
    mode: Mode = "detailed"
    stream: bool = False
    use_web_search: bool = Field(True, alias="useWebSearch")


class WebSearchRequest(BaseModel):
    query: Optional[str] = None


class CompareRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: Optional[str] = None
    models: List[str] = Field(..., min_length=2, max_length=4)
    mode: Mode = "detailed"
    use_web_search: bool = Field(True, alias="useWebSearch")
