"""Pydantic response models (DTOs) for FastAPI endpoints."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ChatResponseDTO(BaseModel):
    success: bool
    response: str | None = None
    model: str | None = None
    mode: str | None = None
    error: str | None = None

    @classmethod
    def from_chat_result(cls, result):
        """Convert ChatResult to DTO."""
        return cls(
            success=result.success,
            response=result.response,
            model=result.model,
            mode=result.mode,
            error=result.error,
        )


class CompareResponseDTO(BaseModel):
    success: bool = True
    results: list[ChatResponseDTO]


class SearchResultDTO(BaseModel):
    title: str
    snippet: str
    link: str
    source: str


class SearchInfoDTO(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_results: int = Field(alias="totalResults")
    search_time: float = Field(alias="searchTime")


class WebSearchResponseDTO(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    query: str
    results: list[SearchResultDTO]
    search_info: SearchInfoDTO = Field(alias="searchInfo")

    @classmethod
    def from_outcome(cls, outcome):
        """Convert SearchOutcome to DTO."""
        data: dict[str, Any] = outcome.to_dict()
        return cls(query=data["query"], results=data["results"], searchInfo=data["searchInfo"])


class HealthResponseDTO(BaseModel):
    status: str
    timestamp: str
    version: str = "1.0.0"
    providers: dict[str, str] = Field(default_factory=dict)
