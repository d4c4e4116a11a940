# path: backend/talentmatch/repositories/job_repo.py
# Purpose: Data-access only (CRUD) for Job. No business rules here.
from datetime import datetime, timezone
from typing import Any, Optional, Sequence
from uuid import UUID
from sqlalchemy import select
from sqlalchemy.orm import Session
from talentmatch.models.job import Job


def create(db: Session, *, fields: dict[str, Any], created_by: Optional[str] = None) -> Job:
    job = Job(**fields, created_by=created_by)
    if not job.status:
        job.status = "draft"
    db.add(job)
    db.commit()
    db.refresh(job)
    return job


def get(db: Session, job_id: UUID) -> Optional[Job]:
    return db.get(Job, job_id)


def update(db: Session, job: Job, **fields) -> Job:
    for k, v in fields.items():
        if v is not None:
            setattr(job, k, v)
    db.add(job)
    db.commit()
    db.refresh(job)
    return job


def attach_embedding(db: Session, job: Job, *, embedding: list[float], model: Optional[str], text_hash: Optional[str]) -> Job:
    job.embedding = embedding
    job.embedding_model = model
    job.embedding_hash = text_hash
    job.embedded_at = datetime.now(timezone.utc)
    db.add(job)
    db.commit()
    db.refresh(job)
    return job


def list_embedded(db: Session, *, statuses: Optional[Sequence[str]] = None) -> list[Job]:
    """Jobs with a stored vector, in creation order (the ranking tie-break order)."""
    stmt = select(Job).where(Job.embedding.is_not(None))
    if statuses:
        stmt = stmt.where(Job.status.in_(list(statuses)))
    stmt = stmt.order_by(Job.created_at.asc(), Job.created_seq.asc())
    return list(db.execute(stmt).scalars().all())


def list_unembedded(db: Session) -> list[Job]:
    stmt = select(Job).where(Job.embedding.is_(None)).order_by(Job.created_at.asc(), Job.created_seq.asc())
    return list(db.execute(stmt).scalars().all())
