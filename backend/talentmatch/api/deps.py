"""Request-scoped dependencies: caller identity, capability checks and service instances."""
from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, HTTPException

from talentmatch.services.candidates import CandidateService
from talentmatch.services.jobs import JobService
from talentmatch.services.match.service import MatchService
from talentmatch.services.resumes.batch import BatchOrchestrator


class CapabilityChecker:
    """
    Yes/no answer from the external role service. The default allows everything;
    deployments override `get_capability_checker` with a real implementation.
    """

    def allows(self, user_id: Optional[str], capability: str) -> bool:
        return True


def get_capability_checker() -> CapabilityChecker:
    return CapabilityChecker()


def get_current_user_id(x_user_id: Optional[str] = Header(default=None)) -> Optional[str]:
    return x_user_id.strip() if x_user_id and x_user_id.strip() else None


def require(capability: str):
    """Dependency factory: 403 unless the caller holds `capability`; yields the caller id."""

    def _check(
        user_id: Optional[str] = Depends(get_current_user_id),
        checker: CapabilityChecker = Depends(get_capability_checker),
    ) -> Optional[str]:
        if not checker.allows(user_id, capability):
            raise HTTPException(status_code=403, detail=f"Not allowed: {capability}")
        return user_id

    return _check


def get_match_service() -> MatchService:
    return MatchService()


def get_candidate_service() -> CandidateService:
    return CandidateService()


def get_job_service() -> JobService:
    return JobService()


def get_batch_orchestrator() -> BatchOrchestrator:
    return BatchOrchestrator()
