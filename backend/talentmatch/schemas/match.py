# Purpose: Pydantic DTOs for match runs, persisted results and batch reports.

from typing import Any, Optional
from pydantic import BaseModel, Field
from datetime import datetime
from uuid import UUID


class MatchRequest(BaseModel):
    threshold: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    limit: Optional[int] = Field(default=None, ge=1, le=200)
    persist: bool = True
    statuses: Optional[list[str]] = None
    exclude_assigned_to_client: Optional[str] = None


class TextSearchRequest(BaseModel):
    description: str = Field(min_length=1)
    job_id: Optional[UUID] = None
    threshold: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    limit: Optional[int] = Field(default=None, ge=1, le=200)


class MatchHitOut(BaseModel):
    id: str
    score: float
    details: dict[str, Any] = {}


class MatchRunOut(BaseModel):
    query_type: str
    query_id: Optional[UUID] = None
    threshold: float
    limit: int
    result_id: Optional[UUID] = None
    matches: list[MatchHitOut]

    @classmethod
    def from_run(cls, run) -> "MatchRunOut":
        return cls(
            query_type=run.query_type,
            query_id=run.query_id,
            threshold=run.threshold,
            limit=run.limit,
            result_id=run.result_id,
            matches=[MatchHitOut(id=str(h.entity_id), score=h.score, details=h.payload) for h in run.hits],
        )


class SearchResultOut(BaseModel):
    id: UUID
    query_type: str
    job_id: Optional[UUID] = None
    candidate_id: Optional[UUID] = None
    matched_ids: list[str]
    scores: list[float]
    threshold: Optional[float] = None
    result_limit: Optional[int] = None
    created_by: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ProcessedItemOut(BaseModel):
    filename: str
    candidate_id: str
    resume_url: Optional[str] = None
    embedded: bool


class FailedItemOut(BaseModel):
    filename: str
    error: str
    error_type: str


class BatchReportOut(BaseModel):
    processed: list[ProcessedItemOut]
    failed: list[FailedItemOut]
    total: int
