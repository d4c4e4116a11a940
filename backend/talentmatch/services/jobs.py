"""Job postings: creation (structured or from raw text), edits, and the embedding they carry."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from talentmatch.core.errors import EntityNotFound, InvariantViolation
from talentmatch.models.job import Job
from talentmatch.repositories import job_repo
from talentmatch.schemas.profile import JobProfile, validate_job_status
from talentmatch.services.embedding_service import EmbeddingGenerator, get_embedding_generator, job_embedding_text
from talentmatch.services.extraction.profile_extractor import ProfileExtractor, get_profile_extractor

logger = logging.getLogger("jobs.service")

_DESCRIPTIVE_FIELDS = ("title", "description", "requirements", "responsibilities")


def _row_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    fields = JobProfile.model_validate(data).to_row_fields()
    fields = {k: v for k, v in fields.items() if k in data}
    if "status" in data:
        fields["status"] = validate_job_status(data["status"]).value
    if "description" in fields and fields["description"] is None:
        fields["description"] = ""
    if "client_id" in data:
        fields["client_id"] = data["client_id"]
    return fields


class JobService:
    def __init__(
        self,
        embedding_generator: Optional[EmbeddingGenerator] = None,
        profile_extractor: Optional[ProfileExtractor] = None,
    ):
        self._embedding_generator = embedding_generator
        self._profile_extractor = profile_extractor

    @property
    def embedding_generator(self) -> EmbeddingGenerator:
        if self._embedding_generator is None:
            self._embedding_generator = get_embedding_generator()
        return self._embedding_generator

    @property
    def profile_extractor(self) -> ProfileExtractor:
        if self._profile_extractor is None:
            self._profile_extractor = get_profile_extractor()
        return self._profile_extractor

    def get(self, db: Session, job_id: UUID) -> Job:
        job = job_repo.get(db, job_id)
        if job is None:
            raise EntityNotFound("job", job_id)
        return job

    def create(self, db: Session, data: Dict[str, Any], *, created_by: Optional[str] = None) -> Tuple[Job, bool]:
        fields = _row_fields(data)
        if not fields.get("title"):
            raise InvariantViolation("A job needs a title")
        fields.setdefault("description", "")
        fields.setdefault("status", "draft")
        job = job_repo.create(db, fields=fields, created_by=created_by)
        logger.info("Created job %s (%s)", job.id, job.title)
        embedded = self.embedding_generator.try_embed_job(db, job)
        return job, embedded

    def create_from_text(
        self,
        db: Session,
        text: str,
        *,
        created_by: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> Tuple[Job, bool]:
        """Parse a raw posting with the job prompt, then create it as a draft."""
        profile = self.profile_extractor.parse_profile(text, is_job=True, model=model, timeout=timeout)
        data = profile.to_row_fields()
        if not data.get("title"):
            raise InvariantViolation("Could not find a job title in the posting text")
        return self.create(db, data, created_by=created_by)

    def update(self, db: Session, job_id: UUID, changes: Dict[str, Any]) -> Tuple[Job, Optional[bool]]:
        """Returns (job, embedded); `embedded` is None when no descriptive field changed."""
        job = self.get(db, job_id)
        before = job_embedding_text(job)
        fields = _row_fields(changes)
        if "title" in fields and not fields["title"]:
            raise InvariantViolation("A job needs a title")
        job = job_repo.update(db, job, **fields)
        logger.info("Updated job %s (%s)", job.id, ", ".join(sorted(fields)))

        if not any(k in fields for k in _DESCRIPTIVE_FIELDS) or job_embedding_text(job) == before:
            return job, None
        embedded = self.embedding_generator.try_embed_job(db, job)
        return job, embedded

    def refresh_embedding(self, db: Session, job_id: UUID, *, force: bool = False) -> Job:
        job = self.get(db, job_id)
        return self.embedding_generator.embed_job(db, job, force=force)
