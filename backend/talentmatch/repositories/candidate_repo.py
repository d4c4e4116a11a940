from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Optional, Sequence
from uuid import UUID
from sqlalchemy import select
from sqlalchemy.orm import Session
from talentmatch.models.candidate import Candidate


def create(db: Session, *, fields: dict[str, Any], created_by: Optional[str] = None) -> Candidate:
    c = Candidate(**fields, created_by=created_by, modified_by=created_by)
    db.add(c)
    db.commit()
    db.refresh(c)
    return c


def get(db: Session, candidate_id: UUID) -> Optional[Candidate]:
    return db.get(Candidate, candidate_id)


def update(db: Session, candidate: Candidate, **fields) -> Candidate:
    for k, v in fields.items():
        setattr(candidate, k, v)
    db.add(candidate)
    db.commit()
    db.refresh(candidate)
    return candidate


def attach_embedding(db: Session, candidate: Candidate, *, embedding: list[float], model: Optional[str], text_hash: str) -> Candidate:
    # Overwrites in place: one vector per candidate, last write wins.
    candidate.embedding = embedding
    candidate.embedding_model = model
    candidate.embedding_hash = text_hash
    candidate.embedded_at = datetime.now(timezone.utc)
    db.add(candidate)
    db.commit()
    db.refresh(candidate)
    return candidate


def list_embedded(db: Session, *, statuses: Optional[Sequence[str]] = None) -> list[Candidate]:
    """Candidates with a stored vector, in creation order (the ranking tie-break order)."""
    stmt = select(Candidate).where(Candidate.embedding.is_not(None))
    if statuses:
        stmt = stmt.where(Candidate.status.in_(list(statuses)))
    stmt = stmt.order_by(Candidate.created_at.asc(), Candidate.created_seq.asc())
    return list(db.execute(stmt).scalars().all())


def known_resume_filenames(db: Session) -> set[str]:
    rows = db.execute(select(Candidate.resume_filename).where(Candidate.resume_filename.is_not(None))).all()
    return {r[0] for r in rows}


def list_unembedded(db: Session) -> list[Candidate]:
    stmt = (
        select(Candidate)
        .where(Candidate.embedding.is_(None))
        .order_by(Candidate.created_at.asc(), Candidate.created_seq.asc())
    )
    return list(db.execute(stmt).scalars().all())
