# talentmatch/models/job.py
# Purpose: Job postings with a coarse job-level embedding used for matching.
# Notes:
# - Keep EMBED_DIM consistent across the whole project (candidates share it).

from __future__ import annotations

import uuid
from sqlalchemy import BigInteger, Column, DateTime, Identity, String, Text, Uuid
from sqlalchemy.sql import func
from pgvector.sqlalchemy import Vector

from talentmatch.db.base import Base, JSONType  # IMPORTANT: Base must be imported
from talentmatch.models.candidate import EMBED_DIM, _utcnow


class Job(Base):
    """
    Top-level job row.
    - `requirements` / `responsibilities`: ordered lists of strings.
    - `embedding`: computed from title + description + requirements + responsibilities.
    - `status`: draft -> published -> archived/closed/halted.
    """
    __tablename__ = "jobs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    created_seq = Column(BigInteger, Identity(), nullable=False, unique=True)
    title = Column(String(300), nullable=False)
    description = Column(Text, nullable=False, default="")
    requirements = Column(JSONType, nullable=False, default=list)
    responsibilities = Column(JSONType, nullable=False, default=list)

    location = Column(Text, nullable=True)
    salary_range = Column(Text, nullable=True)
    job_type = Column(String(32), nullable=True)
    status = Column(String(32), nullable=False, default="draft")
    client_id = Column(String(64), nullable=True)

    # Vector embedding (coarse job-level)
    embedding = Column(Vector(EMBED_DIM), nullable=True)
    embedding_model = Column(String(64), nullable=True)
    embedding_hash = Column(String(64), nullable=True)
    embedded_at = Column(DateTime(timezone=True), nullable=True)

    created_by = Column(String(64), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), onupdate=_utcnow, nullable=False)
