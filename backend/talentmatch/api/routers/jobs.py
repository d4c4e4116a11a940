from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from talentmatch.api.deps import get_job_service, require
from talentmatch.db.base import get_db
from talentmatch.schemas.job import JobCreate, JobOut, JobParseRequest, JobUpdate
from talentmatch.services.jobs import JobService

router = APIRouter(prefix="/jobs", tags=["jobs"])


def _out(job, embedded: Optional[bool]) -> JobOut:
    out = JobOut.model_validate(job)
    out.embedded = embedded
    return out


@router.post("", response_model=JobOut, status_code=status.HTTP_201_CREATED)
def create_job(
    payload: JobCreate,
    db: Session = Depends(get_db),
    user_id: Optional[str] = Depends(require("jobs:create")),
    service: JobService = Depends(get_job_service),
):
    job, embedded = service.create(db, payload.model_dump(), created_by=user_id)
    return _out(job, embedded)


@router.post("/parse", response_model=JobOut, status_code=status.HTTP_201_CREATED)
def create_job_from_text(
    payload: JobParseRequest,
    db: Session = Depends(get_db),
    user_id: Optional[str] = Depends(require("jobs:create")),
    service: JobService = Depends(get_job_service),
):
    """Structure a raw posting with the extraction model and save it as a draft."""
    job, embedded = service.create_from_text(db, payload.text, created_by=user_id, model=payload.model)
    return _out(job, embedded)


@router.get("/{job_id}", response_model=JobOut)
def get_job(job_id: UUID, db: Session = Depends(get_db), service: JobService = Depends(get_job_service)):
    return _out(service.get(db, job_id), None)


@router.patch("/{job_id}", response_model=JobOut)
def update_job(
    job_id: UUID,
    payload: JobUpdate,
    db: Session = Depends(get_db),
    user_id: Optional[str] = Depends(require("jobs:update")),
    service: JobService = Depends(get_job_service),
):
    job, embedded = service.update(db, job_id, payload.model_dump(exclude_unset=True))
    return _out(job, embedded)


@router.post("/{job_id}/embedding", response_model=JobOut)
def embed_job(
    job_id: UUID,
    force: bool = Query(False),
    db: Session = Depends(get_db),
    user_id: Optional[str] = Depends(require("jobs:update")),
    service: JobService = Depends(get_job_service),
):
    return _out(service.refresh_embedding(db, job_id, force=force), True)
