# Purpose: Candidate profile rows built from parsed resumes, with a profile-level embedding for matching.
from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import BigInteger, Column, DateTime, Identity, String, Text, Uuid
from sqlalchemy.sql import func
from pgvector.sqlalchemy import Vector

from talentmatch.core.config import settings
from talentmatch.db.base import Base, JSONType

EMBED_DIM = settings.EMBEDDING_DIM


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Candidate(Base):
    """
    One parsed resume.
    - Structured sub-records (education, experience, projects, publications) are
      validated at extraction time and stored as JSON lists of objects.
    - `embedding` is attached after the row exists and may be absent.
    - `embedding_hash` is the sha256 of the text that produced `embedding`.
    - Rows are never hard-deleted by the matching flow; `status` models removal.
    """
    __tablename__ = "candidates"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    # Insertion counter: breaks created_at ties in ranking pools
    created_seq = Column(BigInteger, Identity(), nullable=False, unique=True)

    # Scalar profile fields (all optional: extraction may not find them)
    full_name = Column(Text, nullable=True)
    email = Column(Text, nullable=True)
    phone = Column(Text, nullable=True)
    linkedin_url = Column(Text, nullable=True)
    resume_summary = Column(Text, nullable=True)
    objective = Column(Text, nullable=True)

    # Collections
    skills = Column(JSONType, nullable=False, default=list)
    languages = Column(JSONType, nullable=False, default=list)
    other_links = Column(JSONType, nullable=False, default=list)
    social_media = Column(JSONType, nullable=False, default=dict)

    # Structured sub-records
    education = Column(JSONType, nullable=False, default=list)
    experience = Column(JSONType, nullable=False, default=list)
    projects = Column(JSONType, nullable=False, default=list)
    publications = Column(JSONType, nullable=False, default=list)

    # Resume file reference (object-store key + public URL)
    resume_key = Column(Text, nullable=True)
    resume_url = Column(Text, nullable=True)
    resume_filename = Column(Text, nullable=True)

    # Lifecycle
    pipeline_stage = Column(String(32), nullable=False, default="new_candidate")
    status = Column(String(32), nullable=False, default="active")

    # Denormalized client context (read-only for matching)
    assigned_to_clients = Column(JSONType, nullable=False, default=list)
    liked_by_clients = Column(JSONType, nullable=False, default=list)

    # Profile-level embedding
    embedding = Column(Vector(EMBED_DIM), nullable=True)
    embedding_model = Column(String(64), nullable=True)
    embedding_hash = Column(String(64), nullable=True)
    embedded_at = Column(DateTime(timezone=True), nullable=True)

    created_by = Column(String(64), nullable=True)
    modified_by = Column(String(64), nullable=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), onupdate=_utcnow, nullable=False)
