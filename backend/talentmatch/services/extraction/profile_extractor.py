# talentmatch/services/extraction/profile_extractor.py
"""
Structured profile extraction: normalized resume / job text -> validated CandidateProfile / JobProfile.

One fixed prompt per entity type. The model's JSON is validated at this boundary;
fields it leaves out stay null/empty, lifecycle enums fall back to their first state.
"""
from __future__ import annotations

import logging
from typing import Callable, Optional

from pydantic import ValidationError

from talentmatch.core.config import settings
from talentmatch.core.errors import EmptyInputError, ParseError
from talentmatch.schemas.profile import CandidateProfile, JobProfile, StructuredRecord
from talentmatch.services.common.llm_client import get_llm_client, load_prompt

logger = logging.getLogger("extract.profile")

CANDIDATE_PROFILE_PROMPT = load_prompt("resumes/candidate_profile.prompt.txt")
JOB_PROFILE_PROMPT = load_prompt("jobs/job_profile.prompt.txt")


class ProfileExtractor:
    """
    `llm_client_factory(model)` returns an object with `complete_structured(...)`.
    The model (tier name or literal id) is picked by the caller per call, else `default_model`.
    """

    def __init__(
        self,
        llm_client_factory: Callable[[Optional[str]], object] = get_llm_client,
        min_length: Optional[int] = None,
        default_model: Optional[str] = None,
    ):
        self.llm_client_factory = llm_client_factory
        self.min_length = settings.MIN_PROFILE_TEXT_LENGTH if min_length is None else min_length
        self.default_model = default_model

    def parse_profile(
        self,
        text: str,
        is_job: bool = False,
        *,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> StructuredRecord:
        content = (text or "").strip()
        if len(content) < self.min_length:
            raise EmptyInputError(
                f"Text too short to parse ({len(content)} chars, minimum {self.min_length})",
                details={"length": len(content), "min_length": self.min_length},
            )

        kind = "job" if is_job else "candidate"
        prompt = JOB_PROFILE_PROMPT if is_job else CANDIDATE_PROFILE_PROMPT
        record_cls = JobProfile if is_job else CandidateProfile

        client = self.llm_client_factory(model or self.default_model)
        data = client.complete_structured(prompt, content, timeout=timeout)

        if not isinstance(data, dict):
            raise ParseError(f"Expected a JSON object for {kind} profile, got {type(data).__name__}")
        try:
            record = record_cls.model_validate(data)
        except ValidationError as e:
            logger.error("Model output failed %s schema validation: %s", kind, e.error_count())
            raise ParseError(
                f"Model output does not match the {kind} schema",
                details={"errors": e.errors(include_url=False, include_context=False, include_input=False)},
                cause=e,
            ) from e

        logger.info("Parsed %s profile (%d input chars, %d keys returned)", kind, len(content), len(data))
        return record


_default: Optional[ProfileExtractor] = None


def get_profile_extractor() -> ProfileExtractor:
    global _default
    if _default is None:
        _default = ProfileExtractor()
    return _default
