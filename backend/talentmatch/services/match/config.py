# talentmatch/services/match/config.py
"""
Match Configuration - Defines thresholds and result caps for each matching use case.
"""
from dataclasses import dataclass


@dataclass(frozen=True)
class MatchConfig:
    """Configuration for matching algorithm."""

    # Candidates for a job (by job vector or by free-text description)
    candidate_search_threshold: float = 0.5
    candidate_search_limit: int = 20

    # Jobs for a candidate (all statuses)
    job_match_threshold: float = 0.5
    job_match_limit: int = 20

    # Published-job recommendations for a candidate: tighter precision, shorter list
    recommendation_threshold: float = 0.6
    recommendation_limit: int = 10

    # Candidate statuses that take part in searches; the others model removal
    searchable_candidate_statuses: tuple = ("active",)


CFG = MatchConfig()
