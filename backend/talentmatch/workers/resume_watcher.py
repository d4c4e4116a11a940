# talentmatch/workers/resume_watcher.py
"""
Resume File Watcher - Monitors the resume drop folder and ingests new files.
Each file goes through the batch orchestrator as a one-file batch, so a bad file
is logged and skipped without stopping the watcher.
"""
from __future__ import annotations

import logging
import threading
import time
from pathlib import Path
from typing import Dict, List, Optional, Set

from watchdog.events import FileCreatedEvent, FileModifiedEvent, FileSystemEventHandler
from watchdog.observers.polling import PollingObserver as Observer

from talentmatch.core.config import settings
from talentmatch.core.logging_config import configure_logging
from talentmatch.db.base import SessionLocal, init_db
from talentmatch.repositories import candidate_repo
from talentmatch.services.resumes.batch import BatchOrchestrator
from talentmatch.services.resumes.ingestion import UploadedFile

logger = logging.getLogger("watcher")

IGNORED_PREFIXES = ("~$", ".")
IGNORED_SUFFIXES = (".tmp", ".part", ".crdownload", ".download", ".swp")


def is_ignorable(path: Path) -> bool:
    name = path.name.lower()
    return name.startswith(IGNORED_PREFIXES) or name.endswith(IGNORED_SUFFIXES)


class ResumeEventHandler(FileSystemEventHandler):
    """
    Debounced handler: ignores temp/partial files, skips a path seen within the
    cooldown window, and never ingests the same filename twice.
    """

    def __init__(
        self,
        orchestrator: BatchOrchestrator,
        creator_id: str,
        known_filenames: Optional[Set[str]] = None,
        cooldown_sec: float = 1.0,
    ):
        super().__init__()
        self.orchestrator = orchestrator
        self.creator_id = creator_id
        self.known_filenames: Set[str] = set(known_filenames or ())
        self.cooldown_sec = cooldown_sec
        self._last_seen: Dict[str, float] = {}
        self._lock = threading.Lock()

    def on_created(self, event):
        if isinstance(event, FileCreatedEvent) and not event.is_directory:
            self.process(Path(event.src_path))

    def on_modified(self, event):
        # Late writes (copy still finishing) arrive as modifications
        if isinstance(event, FileModifiedEvent) and not event.is_directory:
            self.process(Path(event.src_path))

    def _debounced(self, key: str) -> bool:
        now = time.monotonic()
        with self._lock:
            last = self._last_seen.get(key)
            self._last_seen[key] = now
        return last is not None and now - last < self.cooldown_sec

    def process(self, path: Path) -> bool:
        """Ingest `path` if it is new and readable. Returns True when a batch ran."""
        if is_ignorable(path) or not path.is_file():
            return False
        if path.name in self.known_filenames or self._debounced(str(path)):
            return False

        try:
            upload = UploadedFile.from_path(path)
        except OSError as e:
            # Writer still holds the file; the next modification event retries
            logger.debug("Cannot read %s yet: %s", path.name, e)
            return False

        report = self.orchestrator.process_batch([upload], self.creator_id)
        self.known_filenames.add(path.name)
        for item in report.processed:
            logger.info("Ingested %s -> candidate %s (embedded=%s)", item.filename, item.candidate_id, item.embedded)
        for item in report.failed:
            logger.error("Failed %s: %s (%s)", item.filename, item.error, item.error_type)
        return True


def load_known_filenames() -> Set[str]:
    db = SessionLocal()
    try:
        return candidate_repo.known_resume_filenames(db)
    finally:
        db.close()


def scan_existing(handler: ResumeEventHandler, directory: Path) -> int:
    """Process files already in the folder that the database has not seen."""
    new_files: List[Path] = sorted(
        p for p in directory.iterdir()
        if p.is_file() and not is_ignorable(p) and p.name not in handler.known_filenames
    )
    logger.info("Startup scan: %d new files in %s", len(new_files), directory)
    for i, path in enumerate(new_files, 1):
        handler.process(path)
        if i % 10 == 0:
            logger.info("Startup scan progress: %d/%d", i, len(new_files))
    return len(new_files)


def main(directory: Optional[Path] = None):
    configure_logging()
    init_db()
    watch_dir = Path(directory or settings.WATCH_DIR).resolve()
    watch_dir.mkdir(parents=True, exist_ok=True)
    logger.info("Starting resume watcher on %s", watch_dir)

    handler = ResumeEventHandler(
        BatchOrchestrator(max_workers=1),
        creator_id=settings.WATCH_CREATOR_ID,
        known_filenames=load_known_filenames(),
    )
    logger.info("Database knows %d resume files", len(handler.known_filenames))
    scan_existing(handler, watch_dir)

    observer = Observer(timeout=1.0)
    observer.schedule(handler, str(watch_dir), recursive=False)
    observer.start()
    logger.info("Listening for new files...")
    try:
        while True:
            time.sleep(1.0)
    except KeyboardInterrupt:
        observer.stop()
    observer.join()


if __name__ == "__main__":
    main()
