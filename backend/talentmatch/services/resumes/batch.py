# talentmatch/services/resumes/batch.py
"""
Batch resume processing with per-file error isolation.

Each file runs extract -> parse -> save -> embed as one unit of work in its own
session. A failing file becomes a `failed` entry and never stops the batch;
`processed` and `failed` keep submission order, so
len(processed) + len(failed) == len(files) always holds.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass, field
from typing import Callable, List, Optional, Sequence, Union

from sqlalchemy.orm import Session

from talentmatch.core.config import settings
from talentmatch.core.errors import PipelineError
from talentmatch.db.base import SessionLocal
from talentmatch.services.resumes.ingestion import ResumeIngestionService, UploadedFile

logger = logging.getLogger("ingest.batch")


@dataclass
class ProcessedItem:
    filename: str
    candidate_id: str
    resume_url: Optional[str]
    embedded: bool


@dataclass
class FailedItem:
    filename: str
    error: str
    error_type: str


@dataclass
class BatchReport:
    processed: List[ProcessedItem] = field(default_factory=list)
    failed: List[FailedItem] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.processed) + len(self.failed)

    def to_dict(self) -> dict:
        return {
            "processed": [asdict(p) for p in self.processed],
            "failed": [asdict(f) for f in self.failed],
            "total": self.total,
        }


class BatchOrchestrator:
    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        ingestion: Optional[ResumeIngestionService] = None,
        max_workers: Optional[int] = None,
    ):
        self.session_factory = session_factory
        self.ingestion = ingestion or ResumeIngestionService()
        self.max_workers = max(1, max_workers or settings.BATCH_MAX_WORKERS)

    def _process_one(self, upload: UploadedFile, creator_id: Optional[str], model: Optional[str]) -> Union[ProcessedItem, FailedItem]:
        db = self.session_factory()
        try:
            outcome = self.ingestion.ingest(db, upload, creator_id, model=model)
            return ProcessedItem(
                filename=upload.filename,
                candidate_id=str(outcome.candidate_id),
                resume_url=outcome.resume_url,
                embedded=outcome.embedded,
            )
        except PipelineError as e:
            db.rollback()
            logger.error("Failed to process %s: %s (%s)", upload.filename, e.message, e.__class__.__name__)
            return FailedItem(filename=upload.filename, error=e.message, error_type=e.__class__.__name__)
        except Exception as e:
            db.rollback()
            logger.exception("Unexpected error processing %s", upload.filename)
            return FailedItem(filename=upload.filename, error=str(e) or e.__class__.__name__, error_type=e.__class__.__name__)
        finally:
            db.close()

    def process_batch(self, files: Sequence[UploadedFile], creator_id: Optional[str], *, model: Optional[str] = None) -> BatchReport:
        logger.info("Processing batch of %d files (workers=%d)", len(files), self.max_workers)
        if self.max_workers == 1 or len(files) <= 1:
            results = [self._process_one(f, creator_id, model) for f in files]
        else:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                # map() yields in submission order regardless of completion order
                results = list(pool.map(lambda f: self._process_one(f, creator_id, model), files))

        report = BatchReport()
        for item in results:
            if isinstance(item, ProcessedItem):
                report.processed.append(item)
            else:
                report.failed.append(item)
        logger.info("Batch done: %d processed, %d failed", len(report.processed), len(report.failed))
        return report
