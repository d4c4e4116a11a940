# talentmatch/services/embedding_service.py
"""
Embedding generation for candidates and jobs.

- The embedding input is a fixed concatenation of each entity's salient text fields.
- Vectors are stored on the owning row and overwritten in place (one vector per entity).
- `embedding_hash` records which text produced the stored vector, so re-embedding
  unchanged text skips the provider entirely.
"""
from __future__ import annotations

import hashlib
import logging
from typing import Any, Iterable, List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from talentmatch.core.config import settings
from talentmatch.core.errors import EmbeddingError, ProviderError, ProviderTransientError
from talentmatch.models.candidate import Candidate
from talentmatch.models.job import Job
from talentmatch.repositories import candidate_repo, job_repo
from talentmatch.services.common.embedding_client import get_embedding_client

logger = logging.getLogger("ai.embed")


def _field(obj: Any, name: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def _strings(values: Optional[Iterable[Any]]) -> List[str]:
    return [str(v).strip() for v in (values or []) if v is not None and str(v).strip()]


def candidate_embedding_text(candidate: Any) -> str:
    """Full name, summary, skills, then title / company / responsibilities of each role."""
    parts: List[str] = []
    for name in ("full_name", "resume_summary"):
        value = _field(candidate, name)
        if value and str(value).strip():
            parts.append(str(value).strip())
    skills = _strings(_field(candidate, "skills"))
    if skills:
        parts.append(" ".join(skills))
    for exp in _field(candidate, "experience") or []:
        line = " ".join(
            _strings([_field(exp, "title"), _field(exp, "company")])
            + _strings(_field(exp, "responsibilities"))
        )
        if line:
            parts.append(line)
    return "\n".join(parts)


def job_embedding_text(job: Any) -> str:
    """Title, description, requirements, responsibilities."""
    parts: List[str] = []
    for name in ("title", "description"):
        value = _field(job, name)
        if value and str(value).strip():
            parts.append(str(value).strip())
    for name in ("requirements", "responsibilities"):
        items = _strings(_field(job, name))
        if items:
            parts.append(" ".join(items))
    return "\n".join(parts)


class EmbeddingGenerator:
    """
    `embed(text)` -> fixed-length vector, or EmbeddingError.
    No internal retry: callers use `embed_with_retry` for their single transient retry.
    """

    def __init__(
        self,
        client=None,
        *,
        dim: Optional[int] = None,
        max_chars: Optional[int] = None,
    ):
        self.client = client or get_embedding_client()
        self.dim = dim or settings.EMBEDDING_DIM
        self.max_chars = max_chars or settings.EMBEDDING_MAX_CHARS

    @property
    def model(self) -> Optional[str]:
        return getattr(self.client, "model", None)

    def prepare(self, text: str) -> str:
        return (text or "").strip()[: self.max_chars]

    def text_hash(self, text: str) -> str:
        payload = f"{self.model or ''}\n{self.prepare(text)}"
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()

    def embed(self, text: str, *, timeout: Optional[float] = None) -> List[float]:
        content = self.prepare(text)
        if not content:
            raise EmbeddingError("Cannot embed empty text")
        try:
            vector = self.client.embed(content, timeout=timeout)
        except ProviderError as e:
            raise EmbeddingError(
                f"Embedding provider failed: {e.message}",
                transient=isinstance(e, ProviderTransientError),
                cause=e,
            ) from e
        vector = [float(x) for x in (vector or [])]
        if len(vector) != self.dim:
            raise EmbeddingError(
                f"Embedding has dimension {len(vector)}, expected {self.dim}",
                details={"dim": len(vector), "expected": self.dim},
            )
        return vector

    def embed_with_retry(self, text: str, *, timeout: Optional[float] = None) -> List[float]:
        """One retry, and only when the first failure was transient."""
        try:
            return self.embed(text, timeout=timeout)
        except EmbeddingError as e:
            if not e.transient:
                raise
            logger.warning("Transient embedding failure, retrying once: %s", e.message)
            return self.embed(text, timeout=timeout)

    def embed_many(self, texts: Sequence[str], *, timeout: Optional[float] = None) -> List[List[float]]:
        """Vectors for non-empty texts in one provider round trip per batch, in input order."""
        prepared = [self.prepare(t) for t in texts]
        if not all(prepared):
            raise EmbeddingError("Cannot embed empty text")
        try:
            vectors = self.client.embed_many(prepared, timeout=timeout)
        except ProviderError as e:
            raise EmbeddingError(
                f"Embedding provider failed: {e.message}",
                transient=isinstance(e, ProviderTransientError),
                cause=e,
            ) from e
        if len(vectors) != len(prepared):
            raise EmbeddingError(f"Provider returned {len(vectors)} vectors for {len(prepared)} texts")
        out = [[float(x) for x in v] for v in vectors]
        for v in out:
            if len(v) != self.dim:
                raise EmbeddingError(f"Embedding has dimension {len(v)}, expected {self.dim}")
        return out

    def backfill(self, db: Session, kind: str, *, batch_size: int = 64, timeout: Optional[float] = None) -> int:
        """
        Embed every candidate or job ("candidates" / "jobs") that has no vector yet.
        Rows with no embeddable text are skipped. Returns how many rows got a vector;
        a provider failure stops the run and keeps the batches already stored.
        """
        if kind == "candidates":
            rows, text_of, repo = candidate_repo.list_unembedded(db), candidate_embedding_text, candidate_repo
        elif kind == "jobs":
            rows, text_of, repo = job_repo.list_unembedded(db), job_embedding_text, job_repo
        else:
            raise ValueError(f"Unknown entity kind: {kind!r}")

        todo = [(row, text) for row, text in ((r, text_of(r)) for r in rows) if self.prepare(text)]
        if len(todo) < len(rows):
            logger.info("Backfill %s: %d rows have no embeddable text", kind, len(rows) - len(todo))

        done = 0
        for start in range(0, len(todo), max(1, batch_size)):
            chunk = todo[start : start + max(1, batch_size)]
            vectors = self.embed_many([text for _, text in chunk], timeout=timeout)
            for (row, text), vector in zip(chunk, vectors):
                repo.attach_embedding(db, row, embedding=vector, model=self.model, text_hash=self.text_hash(text))
            done += len(chunk)
            logger.info("Backfill %s: %d/%d embedded", kind, done, len(todo))
        return done

    # ---- entity embedding ----

    def embed_candidate(self, db: Session, candidate: Candidate, *, force: bool = False, timeout: Optional[float] = None) -> Candidate:
        text = candidate_embedding_text(candidate)
        digest = self.text_hash(text)
        if not force and candidate.embedding is not None and candidate.embedding_hash == digest:
            logger.debug("Candidate %s embedding up to date; provider skipped", candidate.id)
            return candidate
        vector = self.embed_with_retry(text, timeout=timeout)
        candidate = candidate_repo.attach_embedding(db, candidate, embedding=vector, model=self.model, text_hash=digest)
        logger.info("Embedded candidate %s (dim=%d)", candidate.id, len(vector))
        return candidate

    def embed_job(self, db: Session, job: Job, *, force: bool = False, timeout: Optional[float] = None) -> Job:
        text = job_embedding_text(job)
        digest = self.text_hash(text)
        if not force and job.embedding is not None and job.embedding_hash == digest:
            logger.debug("Job %s embedding up to date; provider skipped", job.id)
            return job
        vector = self.embed_with_retry(text, timeout=timeout)
        job = job_repo.attach_embedding(db, job, embedding=vector, model=self.model, text_hash=digest)
        logger.info("Embedded job %s (dim=%d)", job.id, len(vector))
        return job

    def try_embed_candidate(self, db: Session, candidate: Candidate, *, force: bool = False, timeout: Optional[float] = None) -> bool:
        """Best-effort: the candidate stays saved (just not searchable) when this fails."""
        candidate_id = candidate.id
        try:
            self.embed_candidate(db, candidate, force=force, timeout=timeout)
            return True
        except EmbeddingError as e:
            db.rollback()
            logger.warning("Embedding failed for candidate %s: %s", candidate_id, e.message)
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning("Storing embedding failed for candidate %s: %s", candidate_id, e)
        return False

    def try_embed_job(self, db: Session, job: Job, *, force: bool = False, timeout: Optional[float] = None) -> bool:
        job_id = job.id
        try:
            self.embed_job(db, job, force=force, timeout=timeout)
            return True
        except EmbeddingError as e:
            db.rollback()
            logger.warning("Embedding failed for job %s: %s", job_id, e.message)
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning("Storing embedding failed for job %s: %s", job_id, e)
        return False


_default: Optional[EmbeddingGenerator] = None


def get_embedding_generator() -> EmbeddingGenerator:
    global _default
    if _default is None:
        _default = EmbeddingGenerator()
    return _default
