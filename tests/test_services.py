import uuid
from datetime import datetime, timezone

import pytest

from talentmatch.core.errors import EmptyInputError, EntityNotFound, InvariantViolation
from talentmatch.models import Candidate, Job
from talentmatch.repositories import candidate_repo, job_repo
from talentmatch.services.candidates import CandidateService
from talentmatch.services.common.object_store import LocalObjectStore, build_resume_key
from talentmatch.services.extraction.profile_extractor import ProfileExtractor
from talentmatch.services.jobs import JobService

from conftest import BASE_TIME, FakeLLMClient, vec


class TestCandidateService:
    def test_profile_edit_reembeds(self, db, generator, fake_embed, make_candidate):
        candidate = make_candidate(full_name="Jane Doe")
        service = CandidateService(generator)

        candidate, embedded = service.update(db, candidate.id, {"skills": ["Go"]}, modified_by="recruiter-2")
        assert embedded is True
        assert candidate.skills == ["Go"]
        assert candidate.modified_by == "recruiter-2"
        assert fake_embed.calls == ["Jane Doe\nGo"]

    def test_lifecycle_edit_keeps_embedding(self, db, generator, fake_embed, make_candidate):
        candidate = make_candidate(full_name="Jane Doe")
        candidate, embedded = CandidateService(generator).update(
            db, candidate.id, {"status": "nonsense", "assigned_to_clients": ["client-1"]}
        )
        assert embedded is None
        assert candidate.status == "active"
        assert candidate.assigned_to_clients == ["client-1"]
        assert fake_embed.calls == []

    def test_refresh_embedding(self, db, generator, make_candidate):
        candidate = CandidateService(generator).refresh_embedding(db, make_candidate(full_name="Jane").id)
        assert candidate.embedding is not None

    def test_unknown_candidate(self, db, generator):
        with pytest.raises(EntityNotFound):
            CandidateService(generator).get(db, uuid.uuid4())


class TestJobService:
    def test_create_requires_title(self, db, generator):
        with pytest.raises(InvariantViolation):
            JobService(generator).create(db, {"title": "   "})

    def test_create_defaults(self, db, generator):
        job, embedded = JobService(generator).create(db, {"title": "QA Engineer", "description": None}, created_by="r")
        assert embedded is True
        assert job.status == "draft"
        assert job.description == ""
        assert job.created_by == "r"

    def test_create_from_text(self, db, generator):
        llm = FakeLLMClient(lambda s, u: {"title": "Site Reliability Engineer", "job_type": "contract"})
        service = JobService(generator, ProfileExtractor(llm_client_factory=lambda model: llm))
        job, _ = service.create_from_text(db, "SRE wanted for a six month contract")
        assert job.title == "Site Reliability Engineer"
        assert job.job_type == "contract"

    def test_create_from_text_without_title(self, db, generator):
        llm = FakeLLMClient(lambda s, u: {"description": "No title here"})
        service = JobService(generator, ProfileExtractor(llm_client_factory=lambda model: llm))
        with pytest.raises(InvariantViolation):
            service.create_from_text(db, "Some posting without a clear title")

    def test_create_from_short_text(self, db, generator):
        service = JobService(generator, ProfileExtractor(llm_client_factory=lambda model: FakeLLMClient()))
        with pytest.raises(EmptyInputError):
            service.create_from_text(db, "SRE")


class TestObjectStore:
    def test_put_and_read(self, tmp_path):
        store = LocalObjectStore(tmp_path, "http://files.test/")
        url = store.put("r_1_abc.pdf", b"%PDF")
        assert url == "http://files.test/r_1_abc.pdf"
        assert store.read("r_1_abc.pdf") == b"%PDF"

    @pytest.mark.parametrize("key", ["../escape.pdf", "/etc/passwd", ""])
    def test_rejects_unsafe_keys(self, tmp_path, key):
        with pytest.raises(ValueError):
            LocalObjectStore(tmp_path, "http://files.test").put(key, b"x")

    def test_key_timestamp(self):
        now = datetime(2024, 1, 1, tzinfo=timezone.utc)
        key = build_resume_key("alice", "cv.docx", now=now)
        assert key.startswith(f"alice_{int(now.timestamp() * 1000)}_")
        assert key.endswith(".docx")

    def test_delete(self, tmp_path):
        store = LocalObjectStore(tmp_path, "http://files.test")
        store.put("r_1_abc.pdf", b"%PDF")
        store.delete("r_1_abc.pdf")
        store.delete("r_1_abc.pdf")
        assert not (tmp_path / "r_1_abc.pdf").exists()


class TestCreationOrder:
    def test_equal_timestamps_list_in_insertion_order(self, db):
        ids = [uuid.UUID(int=n) for n in (3, 1, 2)]
        for candidate_id in ids:
            db.add(Candidate(id=candidate_id, full_name="Same", embedding=vec(1), created_at=BASE_TIME))
            db.commit()
        assert [c.id for c in candidate_repo.list_embedded(db)] == ids

    def test_rows_added_together_are_numbered_in_order(self, db):
        jobs = [Job(id=uuid.UUID(int=n), title=f"Job {n}", created_at=BASE_TIME) for n in (9, 4, 7)]
        db.add_all(jobs)
        db.commit()
        listed = job_repo.list_unembedded(db)
        assert [j.id for j in listed] == [j.id for j in jobs]
        assert [j.created_seq for j in listed] == [1, 2, 3]
