from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from talentmatch.api.deps import get_candidate_service, require
from talentmatch.db.base import get_db
from talentmatch.schemas.candidate import CandidateOut, CandidateUpdate
from talentmatch.services.candidates import CandidateService

router = APIRouter(prefix="/candidates", tags=["candidates"])


@router.get("/{candidate_id}", response_model=CandidateOut)
def get_candidate(
    candidate_id: UUID,
    db: Session = Depends(get_db),
    service: CandidateService = Depends(get_candidate_service),
):
    return CandidateOut.model_validate(service.get(db, candidate_id))


@router.patch("/{candidate_id}", response_model=CandidateOut)
def update_candidate(
    candidate_id: UUID,
    payload: CandidateUpdate,
    db: Session = Depends(get_db),
    user_id: Optional[str] = Depends(require("candidates:update")),
    service: CandidateService = Depends(get_candidate_service),
):
    candidate, embedded = service.update(db, candidate_id, payload.model_dump(exclude_unset=True), modified_by=user_id)
    out = CandidateOut.model_validate(candidate)
    out.embedded = embedded
    return out


@router.post("/{candidate_id}/embedding", response_model=CandidateOut)
def embed_candidate(
    candidate_id: UUID,
    force: bool = Query(False),
    db: Session = Depends(get_db),
    user_id: Optional[str] = Depends(require("candidates:update")),
    service: CandidateService = Depends(get_candidate_service),
):
    """(Re)generate the candidate's embedding. Unchanged text is a no-op unless `force`."""
    out = CandidateOut.model_validate(service.refresh_embedding(db, candidate_id, force=force))
    out.embedded = True
    return out
