import uuid

import pytest

from talentmatch.core.errors import EmbeddingError, EntityNotFound, MissingEmbedding, ProviderFatalError
from talentmatch.models import SearchResult
from talentmatch.services.embedding_service import EmbeddingGenerator
from talentmatch.services.match.config import MatchConfig
from talentmatch.services.match.results import get_result
from talentmatch.services.match.service import MatchService, recommendation_reason

from conftest import FakeEmbeddingClient, vec


@pytest.fixture
def service(generator):
    return MatchService(embedding_generator=generator)


class TestCandidatesForJob:
    def test_ranks_and_persists(self, db, service, make_job, make_candidate):
        job = make_job(embedding=vec(1, 0))
        weak = make_candidate(embedding=vec(1, 1), full_name="Weak")
        strong = make_candidate(embedding=vec(1, 0), full_name="Strong", skills=["Python"])
        make_candidate(embedding=vec(0, 1), full_name="Unrelated")
        make_candidate(embedding=None, full_name="Not embedded")

        run = service.search_candidates_for_job(db, job.id, creator_id="recruiter-1")

        assert run.ids == [str(strong.id), str(weak.id)]
        assert run.scores[0] == pytest.approx(1.0)
        assert run.hits[0].payload["full_name"] == "Strong"
        assert run.hits[0].payload["skills"] == ["Python"]

        stored = get_result(db, run.result_id)
        assert stored.job_id == job.id
        assert stored.matched_ids == run.ids
        assert stored.scores == pytest.approx(run.scores)
        assert stored.threshold == 0.5
        assert stored.result_limit == 20
        assert stored.created_by == "recruiter-1"

    def test_default_pool_is_active_candidates(self, db, service, make_job, make_candidate):
        job = make_job(embedding=vec(1))
        active = make_candidate(embedding=vec(1))
        make_candidate(embedding=vec(1), status="blocked")
        make_candidate(embedding=vec(1), status="inactive")

        assert service.search_candidates_for_job(db, job.id, persist=False).ids == [str(active.id)]

        wider = service.search_candidates_for_job(db, job.id, persist=False, statuses=["active", "inactive"])
        assert len(wider.ids) == 2

    def test_equal_scores_in_creation_order(self, db, service, make_job, make_candidate):
        job = make_job(embedding=vec(1))
        first, second, third = (make_candidate(embedding=vec(2, 1)) for _ in range(3))
        run = service.search_candidates_for_job(db, job.id, persist=False)
        assert run.ids == [str(first.id), str(second.id), str(third.id)]

    def test_limit_and_threshold_overrides(self, db, service, make_job, make_candidate):
        job = make_job(embedding=vec(1, 0))
        for i in range(30):
            make_candidate(embedding=vec(1, i / 100))
        assert len(service.search_candidates_for_job(db, job.id, persist=False).ids) == 20
        assert len(service.search_candidates_for_job(db, job.id, persist=False, limit=5).ids) == 5
        assert service.search_candidates_for_job(db, job.id, persist=False, threshold=1.0).ids != []

    def test_exclude_assigned_to_client(self, db, service, make_job, make_candidate):
        job = make_job(embedding=vec(1))
        free = make_candidate(embedding=vec(1))
        make_candidate(embedding=vec(1), assigned_to_clients=["client-9"])
        run = service.search_candidates_for_job(db, job.id, persist=False, exclude_assigned_to_client="client-9")
        assert run.ids == [str(free.id)]

    def test_empty_result_still_persisted(self, db, service, make_job):
        job = make_job(embedding=vec(1))
        run = service.search_candidates_for_job(db, job.id)
        assert run.ids == []
        assert get_result(db, run.result_id).matched_ids == []

    def test_job_without_embedding(self, db, service, make_job):
        job = make_job(embedding=None)
        with pytest.raises(MissingEmbedding) as exc_info:
            service.search_candidates_for_job(db, job.id)
        assert exc_info.value.entity_type == "job"
        assert db.query(SearchResult).count() == 0

    def test_unknown_job(self, db, service):
        with pytest.raises(EntityNotFound):
            service.search_candidates_for_job(db, uuid.uuid4())


class TestCandidatesByText:
    def test_ad_hoc_search_is_not_persisted(self, db, make_candidate):
        service = MatchService(EmbeddingGenerator(FakeEmbeddingClient(vectors={"python backend": vec(1)})))
        hit = make_candidate(embedding=vec(1))
        make_candidate(embedding=vec(0, 1))

        run = service.search_candidates_by_text(db, "  python backend ")
        assert run.ids == [str(hit.id)]
        assert run.result_id is None
        assert db.query(SearchResult).count() == 0

    def test_with_job_stores_vector_and_persists(self, db, make_job, make_candidate):
        service = MatchService(EmbeddingGenerator(FakeEmbeddingClient(vectors={"python backend": vec(1)})))
        job = make_job(embedding=None)
        hit = make_candidate(embedding=vec(1))

        run = service.search_candidates_by_text(db, "python backend", job_id=job.id)

        db.refresh(job)
        assert job.embedding is not None
        assert run.query_id == job.id
        assert get_result(db, run.result_id).matched_ids == [str(hit.id)]

    def test_embedding_failure_propagates(self, db, make_candidate):
        service = MatchService(EmbeddingGenerator(FakeEmbeddingClient(errors=[ProviderFatalError("quota")])))
        with pytest.raises(EmbeddingError):
            service.search_candidates_by_text(db, "python backend")


class TestJobsForCandidate:
    def test_matches_all_job_statuses(self, db, service, make_candidate, make_job):
        candidate = make_candidate(embedding=vec(1, 0))
        draft = make_job(embedding=vec(1, 0.1), status="draft")
        published = make_job(embedding=vec(1, 0.2), status="published")
        make_job(embedding=vec(0, 1))

        run = service.match_jobs_for_candidate(db, candidate.id)
        assert run.ids == [str(draft.id), str(published.id)]
        assert run.result_id is None
        assert run.hits[0].payload["title"] == draft.title

    def test_persist_on_request(self, db, service, make_candidate, make_job):
        candidate = make_candidate(embedding=vec(1))
        make_job(embedding=vec(1))
        run = service.match_jobs_for_candidate(db, candidate.id, persist=True)
        stored = get_result(db, run.result_id)
        assert stored.query_type == "candidate"
        assert stored.candidate_id == candidate.id

    def test_candidate_without_embedding(self, db, service, make_candidate):
        candidate = make_candidate(embedding=None)
        with pytest.raises(MissingEmbedding):
            service.match_jobs_for_candidate(db, candidate.id)


class TestRecommendations:
    def test_published_only_with_reason(self, db, service, make_candidate, make_job):
        candidate = make_candidate(embedding=vec(1), skills=["Python", "Go"])
        make_job(embedding=vec(1), status="draft")
        make_job(embedding=vec(1), status="closed")
        job = make_job(embedding=vec(1), status="published", title="Python Engineer")

        run = service.recommend_jobs_for_candidate(db, candidate.id)
        assert run.ids == [str(job.id)]
        assert run.hits[0].payload["reason"] == "100% match; your skills in Python fit this role"

    def test_tighter_threshold(self, db, service, make_candidate, make_job):
        candidate = make_candidate(embedding=vec(1, 0))
        # cos 0.5547: enough for job matching, not for recommendations
        make_job(embedding=vec(2, 3))
        assert service.recommend_jobs_for_candidate(db, candidate.id).ids == []
        assert len(service.match_jobs_for_candidate(db, candidate.id).ids) == 1

    def test_custom_config(self, db, generator, make_candidate, make_job):
        service = MatchService(generator, config=MatchConfig(recommendation_limit=1))
        candidate = make_candidate(embedding=vec(1))
        make_job(embedding=vec(1))
        make_job(embedding=vec(1))
        assert len(service.recommend_jobs_for_candidate(db, candidate.id).ids) == 1


def test_reason_without_overlap(make_candidate, make_job):
    candidate = make_candidate(skills=["Cobol"])
    job = make_job(title="Data Scientist", requirements=["Statistics"])
    assert recommendation_reason(candidate, job, 0.734) == "73% match with your profile and experience"
