# path: backend/talentmatch/repositories/search_result_repo.py
# Purpose: Append-only access to persisted match runs (no update/delete).
from __future__ import annotations
from typing import Optional
from uuid import UUID
from sqlalchemy import select, type_coerce
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Session
from talentmatch.models.search_result import SearchResult


def insert(
    db: Session,
    *,
    query_type: str,
    query_id: UUID,
    matched_ids: list[str],
    scores: list[float],
    threshold: Optional[float],
    result_limit: Optional[int],
    created_by: Optional[str],
) -> SearchResult:
    row = SearchResult(
        query_type=query_type,
        job_id=query_id if query_type == "job" else None,
        candidate_id=query_id if query_type == "candidate" else None,
        matched_ids=matched_ids,
        scores=scores,
        threshold=threshold,
        result_limit=result_limit,
        created_by=created_by,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def get(db: Session, result_id: UUID) -> Optional[SearchResult]:
    return db.get(SearchResult, result_id)


def list_for_job(db: Session, job_id: UUID, *, limit: int = 20) -> list[SearchResult]:
    stmt = (
        select(SearchResult)
        .where(SearchResult.job_id == job_id)
        .order_by(SearchResult.created_at.desc())
        .limit(limit)
    )
    return list(db.execute(stmt).scalars().all())


def list_for_query_candidate(db: Session, candidate_id: UUID, *, limit: int = 20) -> list[SearchResult]:
    stmt = (
        select(SearchResult)
        .where(SearchResult.candidate_id == candidate_id)
        .order_by(SearchResult.created_at.desc())
        .limit(limit)
    )
    return list(db.execute(stmt).scalars().all())


def list_containing_candidate(db: Session, candidate_id: UUID, *, limit: int = 5) -> list[SearchResult]:
    """Job-query runs whose matched ids include the candidate (newest first)."""
    needle = str(candidate_id)
    stmt = (
        select(SearchResult)
        .where(SearchResult.query_type == "job")
        .order_by(SearchResult.created_at.desc())
    )
    if db.get_bind().dialect.name == "postgresql":
        # jsonb @> uses the GIN-indexable containment operator
        stmt = stmt.where(type_coerce(SearchResult.matched_ids, JSONB).contains([needle])).limit(limit)
        return list(db.execute(stmt).scalars().all())

    # SQLite has no JSON containment operator
    out: list[SearchResult] = []
    for row in db.execute(stmt).scalars():
        if needle in (row.matched_ids or []):
            out.append(row)
            if len(out) >= limit:
                break
    return out
