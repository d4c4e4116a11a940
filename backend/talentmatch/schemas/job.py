# Purpose: Pydantic DTOs for Job endpoints.

from typing import Optional
from pydantic import BaseModel, Field
from datetime import datetime
from uuid import UUID


class JobCreate(BaseModel):
    title: str = Field(min_length=1, max_length=300)
    description: str = ""
    requirements: list[str] = []
    responsibilities: list[str] = []
    location: Optional[str] = None
    salary_range: Optional[str] = None
    job_type: Optional[str] = Field(default=None, max_length=32)
    status: Optional[str] = Field(default="draft", max_length=32)
    client_id: Optional[str] = Field(default=None, max_length=64)


class JobUpdate(BaseModel):
    title: Optional[str] = Field(default=None, max_length=300)
    description: Optional[str] = None
    requirements: Optional[list[str]] = None
    responsibilities: Optional[list[str]] = None
    location: Optional[str] = None
    salary_range: Optional[str] = None
    job_type: Optional[str] = Field(default=None, max_length=32)
    status: Optional[str] = Field(default=None, max_length=32)
    client_id: Optional[str] = Field(default=None, max_length=64)


class JobParseRequest(BaseModel):
    """Raw posting text to be structured by the extraction model."""
    text: str
    model: Optional[str] = Field(default=None, description="'fast', 'capable' or a literal model name")


class JobOut(BaseModel):
    id: UUID
    title: str
    description: str
    requirements: list[str] = []
    responsibilities: list[str] = []
    location: Optional[str] = None
    salary_range: Optional[str] = None
    job_type: Optional[str] = None
    status: str
    client_id: Optional[str] = None

    embedding_model: Optional[str] = None
    embedded_at: Optional[datetime] = None
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    embedded: Optional[bool] = None

    class Config:
        from_attributes = True
