from __future__ import annotations

import uuid
from sqlalchemy import Column, String, DateTime, Float, Integer, ForeignKey, CheckConstraint, Index, Uuid
from sqlalchemy.sql import func

from talentmatch.db.base import Base, JSONType
from talentmatch.models.candidate import _utcnow


class SearchResult(Base):
    """
    One persisted match run. Append-only: a re-run inserts a new row.

    Exactly one of `job_id` / `candidate_id` references the query entity.
    `matched_ids[i]` scored `scores[i]`; scores are non-increasing and ids unique.
    """
    __tablename__ = "search_results"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    query_type = Column(String(16), nullable=False)  # "job" | "candidate"
    job_id = Column(Uuid, ForeignKey("jobs.id"), nullable=True)
    candidate_id = Column(Uuid, ForeignKey("candidates.id"), nullable=True)

    matched_ids = Column(JSONType, nullable=False, default=list)
    scores = Column(JSONType, nullable=False, default=list)

    # Run parameters, kept so the ranking can be reconstructed
    threshold = Column(Float, nullable=True)
    result_limit = Column(Integer, nullable=True)

    created_by = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint(
            "(job_id IS NOT NULL AND candidate_id IS NULL) OR (job_id IS NULL AND candidate_id IS NOT NULL)",
            name="ck_search_results_single_query_ref",
        ),
        Index("ix_search_results_matched_ids", "matched_ids", postgresql_using="gin"),
    )
