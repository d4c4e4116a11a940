from unittest.mock import patch

import pytest
from pydantic import ValidationError

from talentmatch.core.errors import EmptyInputError, ParseError, ProviderTransientError
from talentmatch.schemas.profile import CandidateProfile, JobProfile, JobStatus, PipelineStage
from talentmatch.services.extraction.profile_extractor import (
    CANDIDATE_PROFILE_PROMPT,
    JOB_PROFILE_PROMPT,
    ProfileExtractor,
)

from conftest import FakeLLMClient

RESUME_TEXT = "Jane Doe\nPython, SQL\nSenior engineer at Acme since 2019"


def extractor_for(responder, **kwargs):
    client = FakeLLMClient(responder)
    models = []

    def factory(model):
        models.append(model)
        return client

    return ProfileExtractor(llm_client_factory=factory, min_length=10, **kwargs), client, models


class TestCandidateProfiles:
    def test_parses_and_validates(self):
        extractor, client, _ = extractor_for(lambda s, u: {
            "full_name": "  Jane Doe ",
            "email": "",
            "skills": ["Python", "", "SQL", None],
            "education": [{"institution": "MIT", "degree": "BSc"}, "not an object"],
            "experience": {"company": "Acme", "title": "Engineer", "current": "present"},
            "unknown_field": "dropped",
        })
        profile = extractor.parse_profile(RESUME_TEXT)

        assert isinstance(profile, CandidateProfile)
        assert profile.full_name == "Jane Doe"
        assert profile.email is None
        assert profile.skills == ["Python", "SQL"]
        assert [e.institution for e in profile.education] == ["MIT"]
        assert profile.experience[0].current is True
        assert client.calls[0]["system_prompt"] == CANDIDATE_PROFILE_PROMPT
        assert client.calls[0]["user_text"] == RESUME_TEXT

    def test_missing_fields_stay_empty(self):
        extractor, _, _ = extractor_for(lambda s, u: {})
        profile = extractor.parse_profile(RESUME_TEXT)
        assert profile.full_name is None
        assert profile.skills == []
        assert profile.projects == []
        assert profile.pipeline_stage == PipelineStage.NEW_CANDIDATE

    def test_invalid_stage_falls_back_to_first_state(self):
        extractor, _, _ = extractor_for(lambda s, u: {"pipeline_stage": "sent to moon"})
        assert extractor.parse_profile(RESUME_TEXT).pipeline_stage == PipelineStage.NEW_CANDIDATE

    def test_known_stage_kept(self):
        extractor, _, _ = extractor_for(lambda s, u: {"pipeline_stage": "Interview"})
        assert extractor.parse_profile(RESUME_TEXT).pipeline_stage == PipelineStage.INTERVIEW


class TestJobProfiles:
    def test_uses_job_prompt(self):
        extractor, client, _ = extractor_for(lambda s, u: {
            "title": "Backend Engineer",
            "requirements": "Python",
            "job_type": "Full Time",
            "status": "whatever",
        })
        profile = extractor.parse_profile("Backend Engineer wanted, Python required", is_job=True)

        assert isinstance(profile, JobProfile)
        assert client.calls[0]["system_prompt"] == JOB_PROFILE_PROMPT
        assert profile.requirements == ["Python"]
        assert profile.job_type.value == "full-time"
        assert profile.status == JobStatus.DRAFT


class TestFailures:
    def test_short_text_never_reaches_provider(self):
        extractor, client, _ = extractor_for(lambda s, u: {})
        with pytest.raises(EmptyInputError):
            extractor.parse_profile("  hi  ")
        assert client.calls == []

    def test_non_object_output(self):
        extractor, _, _ = extractor_for(lambda s, u: ["a", "list"])
        with pytest.raises(ParseError):
            extractor.parse_profile(RESUME_TEXT)

    def test_schema_violation_is_parse_error(self):
        error = ValidationError.from_exception_data(
            "CandidateProfile", [{"type": "missing", "loc": ("full_name",), "input": {}}]
        )
        extractor, _, _ = extractor_for(lambda s, u: {"full_name": "Jane"})
        with patch("talentmatch.services.extraction.profile_extractor.CandidateProfile") as record_cls:
            record_cls.model_validate.side_effect = error
            with pytest.raises(ParseError) as exc_info:
                extractor.parse_profile(RESUME_TEXT)
        assert exc_info.value.details["errors"][0]["loc"] == ("full_name",)

    def test_provider_errors_propagate(self):
        extractor, _, _ = extractor_for(lambda s, u: ProviderTransientError("timed out"))
        with pytest.raises(ProviderTransientError):
            extractor.parse_profile(RESUME_TEXT)


class TestModelSelection:
    def test_per_call_model_wins(self):
        extractor, _, models = extractor_for(lambda s, u: {}, default_model="fast")
        extractor.parse_profile(RESUME_TEXT, model="capable")
        extractor.parse_profile(RESUME_TEXT)
        assert models == ["capable", "fast"]

    def test_timeout_forwarded(self):
        extractor, client, _ = extractor_for(lambda s, u: {})
        extractor.parse_profile(RESUME_TEXT, timeout=3.5)
        assert client.calls[0]["timeout"] == 3.5
