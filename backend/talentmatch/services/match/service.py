# talentmatch/services/match/service.py
"""
Matching use cases: candidates for a job, candidates for free text, jobs for a candidate,
and published-job recommendations.

Vectors are bulk-fetched and ranked in-process (engine.rank); the opposite entity's
display fields are joined onto each hit after ranking.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy.orm import Session

from talentmatch.core.errors import EntityNotFound, MissingEmbedding
from talentmatch.models.candidate import Candidate
from talentmatch.models.job import Job
from talentmatch.repositories import candidate_repo, job_repo
from talentmatch.services.embedding_service import EmbeddingGenerator, get_embedding_generator
from talentmatch.services.match.config import CFG, MatchConfig
from talentmatch.services.match.engine import MatchHit, PoolMember, rank
from talentmatch.services.match.results import QueryRef, record_match

logger = logging.getLogger("match.service")


@dataclass
class MatchRun:
    """Outcome of one matching call. `result_id` is set when the run was persisted."""
    query_type: str
    query_id: Optional[UUID]
    threshold: float
    limit: int
    hits: List[MatchHit] = field(default_factory=list)
    result_id: Optional[UUID] = None

    @property
    def ids(self) -> List[str]:
        return [str(h.entity_id) for h in self.hits]

    @property
    def scores(self) -> List[float]:
        return [h.score for h in self.hits]


def candidate_display(c: Candidate) -> Dict[str, Any]:
    return {
        "full_name": c.full_name,
        "email": c.email,
        "skills": list(c.skills or []),
        "pipeline_stage": c.pipeline_stage,
        "status": c.status,
    }


def job_display(j: Job) -> Dict[str, Any]:
    return {
        "title": j.title,
        "location": j.location,
        "job_type": j.job_type,
        "status": j.status,
        "requirements": list(j.requirements or []),
    }


def recommendation_reason(candidate: Candidate, job: Job, score: float) -> str:
    """Short human-readable explanation: overlapping skills when any, else the similarity."""
    skills = [s for s in (candidate.skills or []) if isinstance(s, str) and s.strip()]
    haystack = " ".join(
        [job.title or "", job.description or ""] + [str(r) for r in (job.requirements or [])]
    ).lower()
    overlap = [s for s in skills if s.strip().lower() in haystack]
    pct = round(score * 100)
    if overlap:
        return f"{pct}% match; your skills in {', '.join(overlap[:3])} fit this role"
    return f"{pct}% match with your profile and experience"


class MatchService:
    def __init__(self, embedding_generator: Optional[EmbeddingGenerator] = None, config: MatchConfig = CFG):
        self._embedding_generator = embedding_generator
        self.config = config

    @property
    def embedding_generator(self) -> EmbeddingGenerator:
        if self._embedding_generator is None:
            self._embedding_generator = get_embedding_generator()
        return self._embedding_generator

    # ---- ranking ----

    def _candidate_rows(
        self,
        db: Session,
        statuses: Optional[Sequence[str]],
        exclude_assigned_to_client: Optional[str] = None,
    ) -> List[Candidate]:
        rows = candidate_repo.list_embedded(db, statuses=statuses or self.config.searchable_candidate_statuses)
        if exclude_assigned_to_client:
            rows = [c for c in rows if exclude_assigned_to_client not in (c.assigned_to_clients or [])]
        return rows

    @staticmethod
    def _rank_rows(query_vector, rows: Sequence[Any], display, *, threshold: float, limit: int) -> List[MatchHit]:
        """Rank rows (in creation order), then join display fields onto the surviving hits."""
        pool = [PoolMember(entity_id=r.id, vector=r.embedding) for r in rows]
        hits = rank(query_vector, pool, threshold=threshold, limit=limit)
        by_id = {r.id: r for r in rows}
        for hit in hits:
            hit.payload = display(by_id[hit.entity_id])
        return hits

    def _persist(self, db: Session, run: MatchRun, creator_id: Optional[str]) -> MatchRun:
        row = record_match(
            db,
            QueryRef(run.query_type, run.query_id),
            run.ids,
            run.scores,
            creator_id,
            threshold=run.threshold,
            limit=run.limit,
        )
        run.result_id = row.id
        return run

    # ---- use cases ----

    def search_candidates_for_job(
        self,
        db: Session,
        job_id: UUID,
        *,
        threshold: Optional[float] = None,
        limit: Optional[int] = None,
        persist: bool = True,
        creator_id: Optional[str] = None,
        statuses: Optional[Sequence[str]] = None,
        exclude_assigned_to_client: Optional[str] = None,
    ) -> MatchRun:
        threshold = self.config.candidate_search_threshold if threshold is None else threshold
        limit = self.config.candidate_search_limit if limit is None else limit

        job = job_repo.get(db, job_id)
        if job is None:
            raise EntityNotFound("job", job_id)
        if job.embedding is None:
            raise MissingEmbedding("job", job_id)

        rows = self._candidate_rows(db, statuses, exclude_assigned_to_client)
        hits = self._rank_rows(job.embedding, rows, candidate_display, threshold=threshold, limit=limit)
        run = MatchRun("job", job.id, threshold, limit, hits)
        logger.info("Job %s: %d candidate matches from pool of %d", job.id, len(hits), len(rows))
        return self._persist(db, run, creator_id) if persist else run

    def search_candidates_by_text(
        self,
        db: Session,
        description: str,
        *,
        job_id: Optional[UUID] = None,
        threshold: Optional[float] = None,
        limit: Optional[int] = None,
        creator_id: Optional[str] = None,
        statuses: Optional[Sequence[str]] = None,
        timeout: Optional[float] = None,
    ) -> MatchRun:
        """
        Embed a free-text job description and rank candidates against it.
        With `job_id`, the vector is stored on that job and the run is persisted.
        """
        threshold = self.config.candidate_search_threshold if threshold is None else threshold
        limit = self.config.candidate_search_limit if limit is None else limit

        job = None
        if job_id is not None:
            job = job_repo.get(db, job_id)
            if job is None:
                raise EntityNotFound("job", job_id)

        gen = self.embedding_generator
        vector = gen.embed_with_retry(description, timeout=timeout)
        if job is not None:
            job_repo.attach_embedding(db, job, embedding=vector, model=gen.model, text_hash=None)

        rows = self._candidate_rows(db, statuses)
        hits = self._rank_rows(vector, rows, candidate_display, threshold=threshold, limit=limit)
        run = MatchRun("job", job.id if job is not None else None, threshold, limit, hits)
        logger.info("Text search: %d candidate matches from pool of %d", len(hits), len(rows))
        return self._persist(db, run, creator_id) if job is not None else run

    def match_jobs_for_candidate(
        self,
        db: Session,
        candidate_id: UUID,
        *,
        threshold: Optional[float] = None,
        limit: Optional[int] = None,
        persist: bool = False,
        creator_id: Optional[str] = None,
        statuses: Optional[Sequence[str]] = None,
    ) -> MatchRun:
        threshold = self.config.job_match_threshold if threshold is None else threshold
        limit = self.config.job_match_limit if limit is None else limit

        candidate = self._query_candidate(db, candidate_id)
        rows = job_repo.list_embedded(db, statuses=statuses)
        hits = self._rank_rows(candidate.embedding, rows, job_display, threshold=threshold, limit=limit)
        run = MatchRun("candidate", candidate.id, threshold, limit, hits)
        logger.info("Candidate %s: %d job matches from pool of %d", candidate.id, len(hits), len(rows))
        return self._persist(db, run, creator_id) if persist else run

    def recommend_jobs_for_candidate(
        self,
        db: Session,
        candidate_id: UUID,
        *,
        threshold: Optional[float] = None,
        limit: Optional[int] = None,
        persist: bool = False,
        creator_id: Optional[str] = None,
    ) -> MatchRun:
        """Published jobs only, each hit carrying a `reason`."""
        threshold = self.config.recommendation_threshold if threshold is None else threshold
        limit = self.config.recommendation_limit if limit is None else limit

        candidate = self._query_candidate(db, candidate_id)
        rows = job_repo.list_embedded(db, statuses=["published"])
        by_id = {j.id: j for j in rows}
        hits = self._rank_rows(candidate.embedding, rows, job_display, threshold=threshold, limit=limit)
        for hit in hits:
            hit.payload = {**hit.payload, "reason": recommendation_reason(candidate, by_id[hit.entity_id], hit.score)}
        run = MatchRun("candidate", candidate.id, threshold, limit, hits)
        logger.info("Candidate %s: %d job recommendations", candidate.id, len(hits))
        return self._persist(db, run, creator_id) if persist else run

    def _query_candidate(self, db: Session, candidate_id: UUID) -> Candidate:
        candidate = candidate_repo.get(db, candidate_id)
        if candidate is None:
            raise EntityNotFound("candidate", candidate_id)
        if candidate.embedding is None:
            raise MissingEmbedding("candidate", candidate_id)
        return candidate
