# talentmatch/api/routers/match.py
from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from talentmatch.api.deps import get_match_service, require
from talentmatch.db.base import get_db
from talentmatch.schemas.match import MatchRequest, MatchRunOut, SearchResultOut, TextSearchRequest
from talentmatch.services.match import results
from talentmatch.services.match.service import MatchService

router = APIRouter(prefix="/match", tags=["match"])


@router.post("/jobs/{job_id}/candidates", response_model=MatchRunOut)
def candidates_for_job(
    job_id: UUID,
    payload: Optional[MatchRequest] = None,
    db: Session = Depends(get_db),
    user_id: Optional[str] = Depends(require("match:run")),
    service: MatchService = Depends(get_match_service),
):
    payload = payload or MatchRequest()
    run = service.search_candidates_for_job(
        db,
        job_id,
        threshold=payload.threshold,
        limit=payload.limit,
        persist=payload.persist,
        creator_id=user_id,
        statuses=payload.statuses,
        exclude_assigned_to_client=payload.exclude_assigned_to_client,
    )
    return MatchRunOut.from_run(run)


@router.post("/candidates/search", response_model=MatchRunOut)
def candidates_for_text(
    payload: TextSearchRequest,
    db: Session = Depends(get_db),
    user_id: Optional[str] = Depends(require("match:run")),
    service: MatchService = Depends(get_match_service),
):
    run = service.search_candidates_by_text(
        db,
        payload.description,
        job_id=payload.job_id,
        threshold=payload.threshold,
        limit=payload.limit,
        creator_id=user_id,
    )
    return MatchRunOut.from_run(run)


@router.get("/candidates/{candidate_id}/jobs", response_model=MatchRunOut)
def jobs_for_candidate(
    candidate_id: UUID,
    threshold: Optional[float] = Query(None, ge=0.0, le=1.0),
    limit: Optional[int] = Query(None, ge=1, le=200),
    db: Session = Depends(get_db),
    service: MatchService = Depends(get_match_service),
):
    run = service.match_jobs_for_candidate(db, candidate_id, threshold=threshold, limit=limit)
    return MatchRunOut.from_run(run)


@router.get("/candidates/{candidate_id}/recommendations", response_model=MatchRunOut)
def recommendations_for_candidate(
    candidate_id: UUID,
    threshold: Optional[float] = Query(None, ge=0.0, le=1.0),
    limit: Optional[int] = Query(None, ge=1, le=50),
    db: Session = Depends(get_db),
    service: MatchService = Depends(get_match_service),
):
    run = service.recommend_jobs_for_candidate(db, candidate_id, threshold=threshold, limit=limit)
    return MatchRunOut.from_run(run)


@router.get("/results/{result_id}", response_model=SearchResultOut)
def get_result(result_id: UUID, db: Session = Depends(get_db)):
    return results.get_result(db, result_id)


@router.get("/results", response_model=List[SearchResultOut])
def list_results(
    job_id: Optional[UUID] = Query(None),
    candidate_id: Optional[UUID] = Query(None),
    limit: int = Query(20, ge=1, le=200),
    db: Session = Depends(get_db),
):
    if (job_id is None) == (candidate_id is None):
        raise HTTPException(status_code=400, detail="Pass exactly one of job_id or candidate_id")
    if job_id is not None:
        return results.list_results_for_job(db, job_id, limit=limit)
    return results.list_results_for_candidate(db, candidate_id, limit=limit)
