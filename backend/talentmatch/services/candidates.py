"""Candidate maintenance: staff edits and the embedding refresh they trigger."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from talentmatch.core.errors import EntityNotFound
from talentmatch.models.candidate import Candidate
from talentmatch.repositories import candidate_repo
from talentmatch.schemas.profile import CandidateProfile, validate_candidate_status, validate_pipeline_stage
from talentmatch.services.embedding_service import EmbeddingGenerator, candidate_embedding_text, get_embedding_generator

logger = logging.getLogger("candidates.service")

_PROFILE_FIELDS = set(CandidateProfile.model_fields) - {"pipeline_stage"}


class CandidateService:
    def __init__(self, embedding_generator: Optional[EmbeddingGenerator] = None):
        self._embedding_generator = embedding_generator

    @property
    def embedding_generator(self) -> EmbeddingGenerator:
        if self._embedding_generator is None:
            self._embedding_generator = get_embedding_generator()
        return self._embedding_generator

    def get(self, db: Session, candidate_id: UUID) -> Candidate:
        candidate = candidate_repo.get(db, candidate_id)
        if candidate is None:
            raise EntityNotFound("candidate", candidate_id)
        return candidate

    def update(
        self,
        db: Session,
        candidate_id: UUID,
        changes: Dict[str, Any],
        *,
        modified_by: Optional[str] = None,
    ) -> Tuple[Candidate, Optional[bool]]:
        """
        Apply an edit. Profile fields go through the same validation as extracted records;
        stage and status are defaulted leniently. Returns (candidate, embedded) where
        `embedded` is None when the embedding text did not change.
        """
        candidate = self.get(db, candidate_id)
        before = candidate_embedding_text(candidate)

        fields: Dict[str, Any] = {}
        profile_changes = {k: v for k, v in changes.items() if k in _PROFILE_FIELDS}
        if profile_changes:
            validated = CandidateProfile.model_validate(profile_changes).to_row_fields()
            fields.update({k: validated[k] for k in profile_changes})
        if "pipeline_stage" in changes:
            fields["pipeline_stage"] = validate_pipeline_stage(changes["pipeline_stage"]).value
        if "status" in changes:
            fields["status"] = validate_candidate_status(changes["status"]).value
        for key in ("assigned_to_clients", "liked_by_clients"):
            if key in changes:
                fields[key] = [str(v) for v in (changes[key] or [])]
        fields["modified_by"] = modified_by

        candidate = candidate_repo.update(db, candidate, **fields)
        logger.info("Updated candidate %s (%s)", candidate.id, ", ".join(sorted(fields)))

        if candidate_embedding_text(candidate) == before:
            return candidate, None
        embedded = self.embedding_generator.try_embed_candidate(db, candidate)
        return candidate, embedded

    def refresh_embedding(self, db: Session, candidate_id: UUID, *, force: bool = False) -> Candidate:
        """Explicit (re)embed; errors propagate to the caller."""
        candidate = self.get(db, candidate_id)
        return self.embedding_generator.embed_candidate(db, candidate, force=force)
