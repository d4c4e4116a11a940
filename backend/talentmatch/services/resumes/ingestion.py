"""Single-resume ingestion: extract text, parse a structured profile, store the original file,
save the candidate, then attach an embedding as a best-effort trailing step."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from talentmatch.core.errors import ProviderTransientError
from talentmatch.models.candidate import Candidate
from talentmatch.repositories import candidate_repo
from talentmatch.schemas.profile import CandidateProfile, CandidateStatus
from talentmatch.services.common.object_store import LocalObjectStore, ObjectStore, build_resume_key
from talentmatch.services.embedding_service import EmbeddingGenerator, get_embedding_generator
from talentmatch.services.extraction.document_extractor import DocumentExtractor, default_extractor, detect_mime
from talentmatch.services.extraction.profile_extractor import ProfileExtractor, get_profile_extractor

logger = logging.getLogger("ingest.resume")


@dataclass
class UploadedFile:
    """An uploaded resume: original filename, raw bytes and the declared MIME type (if any)."""
    filename: str
    content: bytes
    mime_type: Optional[str] = None

    @classmethod
    def from_path(cls, path: Path | str, mime_type: Optional[str] = None) -> "UploadedFile":
        p = Path(path)
        return cls(filename=p.name, content=p.read_bytes(), mime_type=mime_type)


@dataclass
class IngestionOutcome:
    candidate: Candidate
    candidate_id: UUID
    resume_url: Optional[str]
    embedded: bool


class ResumeIngestionService:
    def __init__(
        self,
        extractor: Optional[DocumentExtractor] = None,
        profile_extractor: Optional[ProfileExtractor] = None,
        embedding_generator: Optional[EmbeddingGenerator] = None,
        object_store: Optional[ObjectStore] = None,
        *,
        timeout: Optional[float] = None,
    ):
        self.extractor = extractor or default_extractor
        self.profile_extractor = profile_extractor or get_profile_extractor()
        self.embedding_generator = embedding_generator or get_embedding_generator()
        self.object_store = object_store or LocalObjectStore()
        self.timeout = timeout

    def _parse(self, text: str, model: Optional[str]) -> CandidateProfile:
        try:
            return self.profile_extractor.parse_profile(text, is_job=False, model=model, timeout=self.timeout)
        except ProviderTransientError as e:
            logger.warning("Transient provider error while parsing, retrying once: %s", e.message)
            return self.profile_extractor.parse_profile(text, is_job=False, model=model, timeout=self.timeout)

    def ingest(self, db: Session, upload: UploadedFile, creator_id: Optional[str], *, model: Optional[str] = None) -> IngestionOutcome:
        """
        extract -> parse -> store file -> insert candidate -> embed (best effort).
        Any failure before the insert raises; an embedding failure only sets `embedded=False`.
        """
        mime = detect_mime(upload.filename, upload.mime_type)
        text = self.extractor.extract(upload.content, mime)
        profile = self._parse(text, model)

        key = build_resume_key(creator_id or "anonymous", upload.filename)
        resume_url = self.object_store.put(key, upload.content)

        fields = profile.to_row_fields()
        fields.update(
            status=CandidateStatus.ACTIVE.value,
            resume_key=key,
            resume_url=resume_url,
            resume_filename=upload.filename,
        )
        try:
            candidate = candidate_repo.create(db, fields=fields, created_by=creator_id)
        except Exception:
            db.rollback()
            self.object_store.delete(key)
            logger.warning("Candidate insert failed for %s; removed stored file %s", upload.filename, key)
            raise
        # the embedding step may roll back, which expires `candidate`
        candidate_id = candidate.id
        logger.info("Saved candidate %s from %s", candidate_id, upload.filename)

        embedded = self.embedding_generator.try_embed_candidate(db, candidate, timeout=self.timeout)
        return IngestionOutcome(candidate=candidate, candidate_id=candidate_id, resume_url=resume_url, embedded=embedded)
