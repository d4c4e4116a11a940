# talentmatch/services/match/results.py
"""
Persisted match runs.

Every call to `record_match` appends one immutable row. Re-running a match
produces a new row; existing rows are never updated.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence
from uuid import UUID

from sqlalchemy.orm import Session

from talentmatch.core.errors import EntityNotFound, InvariantViolation
from talentmatch.models.search_result import SearchResult
from talentmatch.repositories import search_result_repo

logger = logging.getLogger("match.results")

QUERY_KINDS = ("job", "candidate")


@dataclass(frozen=True)
class QueryRef:
    """The entity whose vector was the query: a job or a candidate."""
    kind: str
    id: UUID

    def __post_init__(self):
        if self.kind not in QUERY_KINDS:
            raise InvariantViolation(f"Unknown query kind {self.kind!r}", details={"kind": self.kind})


def validate_result(ids: Sequence[Any], scores: Sequence[float]) -> None:
    """Parallel sequences, finite scores, non-increasing order, unique ids."""
    if len(ids) != len(scores):
        raise InvariantViolation(
            f"ids and scores differ in length ({len(ids)} != {len(scores)})",
            details={"ids": len(ids), "scores": len(scores)},
        )
    seen = set()
    previous: Optional[float] = None
    for i, (entity_id, score) in enumerate(zip(ids, scores)):
        try:
            value = float(score)
        except (TypeError, ValueError):
            raise InvariantViolation(f"Score at position {i} is not a number", details={"index": i})
        if not math.isfinite(value):
            raise InvariantViolation(f"Score at position {i} is not finite", details={"index": i})
        if previous is not None and value > previous:
            raise InvariantViolation(
                f"Scores must be sorted descending (position {i}: {value} > {previous})",
                details={"index": i},
            )
        key = str(entity_id)
        if key in seen:
            raise InvariantViolation(f"Duplicate id {key} in match result", details={"id": key})
        seen.add(key)
        previous = value


def record_match(
    db: Session,
    query: QueryRef,
    ids: Sequence[Any],
    scores: Sequence[float],
    creator_id: Optional[str] = None,
    *,
    threshold: Optional[float] = None,
    limit: Optional[int] = None,
) -> SearchResult:
    validate_result(ids, scores)
    row = search_result_repo.insert(
        db,
        query_type=query.kind,
        query_id=query.id,
        matched_ids=[str(i) for i in ids],
        scores=[float(s) for s in scores],
        threshold=threshold,
        result_limit=limit,
        created_by=creator_id,
    )
    logger.info("Recorded %s match run %s (%d results)", query.kind, row.id, len(ids))
    return row


def get_result(db: Session, result_id: UUID) -> SearchResult:
    row = search_result_repo.get(db, result_id)
    if row is None:
        raise EntityNotFound("match result", result_id)
    return row


def list_results_for_job(db: Session, job_id: UUID, *, limit: int = 20) -> List[SearchResult]:
    return search_result_repo.list_for_job(db, job_id, limit=limit)


def list_results_for_candidate(db: Session, candidate_id: UUID, *, limit: int = 20) -> List[SearchResult]:
    """Runs queried by the candidate plus job runs in which the candidate was matched, newest first."""
    own = search_result_repo.list_for_query_candidate(db, candidate_id, limit=limit)
    appeared = search_result_repo.list_containing_candidate(db, candidate_id, limit=limit)
    merged = {r.id: r for r in own + appeared}
    rows = sorted(merged.values(), key=lambda r: r.created_at, reverse=True)
    return rows[:limit]
