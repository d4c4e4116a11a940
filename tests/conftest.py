import hashlib
import os
from datetime import datetime, timedelta, timezone

# Settings are read at import time; keep tests off any real database or provider.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LLM_PROVIDER", "openai")

import numpy as np
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from talentmatch.core.config import settings
from talentmatch.db.base import Base
from talentmatch import models  # noqa: F401  (register tables)
from talentmatch.models import Candidate, Job
from talentmatch.services.common.object_store import LocalObjectStore
from talentmatch.services.embedding_service import EmbeddingGenerator
from talentmatch.services.extraction.document_extractor import DocumentExtractor
from talentmatch.services.extraction.profile_extractor import ProfileExtractor
from talentmatch.services.resumes.ingestion import ResumeIngestionService

DIM = settings.EMBEDDING_DIM
BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


def vec(*head):
    """A DIM-length vector whose first components are `head`, the rest zeros."""
    v = [0.0] * DIM
    for i, x in enumerate(head):
        v[i] = float(x)
    return v


def text_vector(text):
    seed = int(hashlib.sha256(text.encode("utf-8")).hexdigest()[:8], 16)
    return np.random.RandomState(seed).normal(size=DIM).tolist()


class FakeLLMClient:
    """Scripted structured-completion client that records every call."""

    def __init__(self, responder=None):
        self.responder = responder or (lambda system_prompt, user_text: {})
        self.calls = []

    def complete_structured(self, system_prompt, user_text, schema_hint=None, *, timeout=None):
        self.calls.append({"system_prompt": system_prompt, "user_text": user_text, "timeout": timeout})
        result = self.responder(system_prompt, user_text)
        if isinstance(result, Exception):
            raise result
        return result


class FakeEmbeddingClient:
    """Deterministic embeddings: fixed vectors for known texts, seeded noise otherwise."""

    def __init__(self, vectors=None, errors=None, model="fake-embed"):
        self.vectors = dict(vectors or {})
        self.errors = list(errors or [])
        self.model = model
        self.calls = []
        self.batches = []

    def embed(self, text, *, timeout=None):
        self.calls.append(text)
        if self.errors:
            raise self.errors.pop(0)
        if text in self.vectors:
            return list(self.vectors[text])
        return text_vector(text)

    def embed_many(self, texts, *, timeout=None):
        self.batches.append(list(texts))
        return [self.embed(t, timeout=timeout) for t in texts]


def resume_responder(system_prompt, user_text):
    lines = [l for l in user_text.splitlines() if l.strip()]
    return {
        "full_name": lines[0],
        "email": None,
        "skills": lines[1].split(", ") if len(lines) > 1 else [],
        "experience": [{"company": "Acme", "title": "Engineer", "responsibilities": ["Built APIs"]}],
        "pipeline_stage": "not-a-stage",
    }


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    Base.metadata.drop_all(bind=eng)
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def fake_llm():
    return FakeLLMClient(resume_responder)


@pytest.fixture
def fake_embed():
    return FakeEmbeddingClient()


@pytest.fixture
def generator(fake_embed):
    return EmbeddingGenerator(fake_embed)


@pytest.fixture
def object_store(tmp_path):
    return LocalObjectStore(tmp_path / "files", "http://files.test")


@pytest.fixture
def ingestion(fake_llm, generator, object_store):
    return ResumeIngestionService(
        extractor=DocumentExtractor(),
        profile_extractor=ProfileExtractor(llm_client_factory=lambda model: fake_llm),
        embedding_generator=generator,
        object_store=object_store,
    )


@pytest.fixture
def make_candidate(db):
    counter = {"n": 0}

    def _make(embedding=None, status="active", **fields):
        counter["n"] += 1
        c = Candidate(
            full_name=fields.pop("full_name", f"Candidate {counter['n']}"),
            status=status,
            embedding=embedding,
            created_at=BASE_TIME + timedelta(minutes=counter["n"]),
            **fields,
        )
        db.add(c)
        db.commit()
        db.refresh(c)
        return c

    return _make


@pytest.fixture
def make_job(db):
    counter = {"n": 0}

    def _make(embedding=None, status="published", **fields):
        counter["n"] += 1
        j = Job(
            title=fields.pop("title", f"Job {counter['n']}"),
            description=fields.pop("description", ""),
            status=status,
            embedding=embedding,
            created_at=BASE_TIME + timedelta(minutes=counter["n"]),
            **fields,
        )
        db.add(j)
        db.commit()
        db.refresh(j)
        return j

    return _make
