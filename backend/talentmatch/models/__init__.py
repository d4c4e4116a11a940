# backend/talentmatch/models/__init__.py
from talentmatch.models.candidate import Candidate
from talentmatch.models.job import Job
from talentmatch.models.search_result import SearchResult

__all__ = [
    "Candidate",
    "Job",
    "SearchResult",
]
