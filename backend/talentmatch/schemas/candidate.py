# Purpose: Pydantic DTOs for candidate endpoints.

from typing import Any, Optional
from pydantic import BaseModel, Field
from datetime import datetime
from uuid import UUID


class CandidateUpdate(BaseModel):
    full_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    linkedin_url: Optional[str] = None
    resume_summary: Optional[str] = None
    objective: Optional[str] = None
    skills: Optional[list[str]] = None
    languages: Optional[list[str]] = None
    other_links: Optional[list[str]] = None
    social_media: Optional[dict[str, str]] = None
    education: Optional[list[dict[str, Any]]] = None
    experience: Optional[list[dict[str, Any]]] = None
    projects: Optional[list[dict[str, Any]]] = None
    publications: Optional[list[dict[str, Any]]] = None
    # Unknown values fall back to the first state rather than failing the request
    pipeline_stage: Optional[str] = Field(default=None, max_length=32)
    status: Optional[str] = Field(default=None, max_length=32)
    assigned_to_clients: Optional[list[str]] = None
    liked_by_clients: Optional[list[str]] = None


class CandidateOut(BaseModel):
    id: UUID
    full_name: Optional[str]
    email: Optional[str]
    phone: Optional[str]
    linkedin_url: Optional[str]
    resume_summary: Optional[str]
    objective: Optional[str]

    skills: list[str] = []
    languages: list[str] = []
    other_links: list[str] = []
    social_media: dict[str, Any] = {}
    education: list[dict[str, Any]] = []
    experience: list[dict[str, Any]] = []
    projects: list[dict[str, Any]] = []
    publications: list[dict[str, Any]] = []

    resume_url: Optional[str] = None
    resume_filename: Optional[str] = None
    pipeline_stage: str
    status: str
    assigned_to_clients: list[str] = []
    liked_by_clients: list[str] = []

    embedding_model: Optional[str] = None
    embedded_at: Optional[datetime] = None
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    # Set by write endpoints: None when no embedding refresh was needed
    embedded: Optional[bool] = None

    class Config:
        from_attributes = True
