"""Command-line entry point: batch resume ingestion, embedding backfill and table bootstrap.

    talentmatch ingest resumes/*.pdf --creator alice --workers 4 --model fast
    talentmatch embed-missing --only jobs
    talentmatch init-db
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from talentmatch.core.config import settings
from talentmatch.core.logging_config import configure_logging

logger = logging.getLogger("ingest.batch")


def _expand(paths: List[str]) -> List[Path]:
    files: List[Path] = []
    for raw in paths:
        p = Path(raw)
        if p.is_dir():
            files.extend(sorted(c for c in p.iterdir() if c.is_file()))
        else:
            files.append(p)
    return files


def cmd_ingest(args: argparse.Namespace) -> int:
    from talentmatch.db.base import init_db
    from talentmatch.services.resumes.batch import BatchOrchestrator
    from talentmatch.services.resumes.ingestion import UploadedFile

    init_db()
    uploads = []
    missing = []
    for path in _expand(args.paths):
        try:
            uploads.append(UploadedFile.from_path(path))
        except OSError as e:
            missing.append({"filename": path.name, "error": str(e), "error_type": e.__class__.__name__})

    report = BatchOrchestrator(max_workers=args.workers).process_batch(uploads, args.creator, model=args.model)
    out = report.to_dict()
    out["failed"].extend(missing)
    out["total"] += len(missing)
    print(json.dumps(out, indent=2, ensure_ascii=False))
    return 1 if out["failed"] else 0


def cmd_embed_missing(args: argparse.Namespace) -> int:
    from talentmatch.core.errors import EmbeddingError
    from talentmatch.db.base import SessionLocal, init_db
    from talentmatch.services.embedding_service import get_embedding_generator

    init_db()
    generator = get_embedding_generator()
    kinds = ["candidates", "jobs"] if args.only is None else [args.only]
    counts = {}
    db = SessionLocal()
    try:
        for kind in kinds:
            counts[kind] = generator.backfill(db, kind, batch_size=args.batch_size)
    except EmbeddingError as e:
        logger.error("Backfill stopped: %s", e.message)
        print(json.dumps({"embedded": counts, "error": e.message}, indent=2))
        return 1
    finally:
        db.close()
    print(json.dumps({"embedded": counts}, indent=2))
    return 0


def cmd_init_db(args: argparse.Namespace) -> int:
    from talentmatch.db.base import init_db

    init_db()
    logger.info("Tables created")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="talentmatch", description="Resume ingestion and matching tools")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    ingest = sub.add_parser("ingest", help="parse resumes into candidate profiles")
    ingest.add_argument("paths", nargs="+", help="files or directories")
    ingest.add_argument("--creator", required=True, help="creator id stored on each candidate")
    ingest.add_argument("--workers", type=int, default=settings.BATCH_MAX_WORKERS, help="parallel files (1 = sequential)")
    ingest.add_argument("--model", default=None, help="'fast', 'capable' or a literal model name")
    ingest.set_defaults(func=cmd_ingest)

    embed = sub.add_parser("embed-missing", help="embed candidates and jobs that have no vector yet")
    embed.add_argument("--only", choices=["candidates", "jobs"], default=None, help="limit to one entity kind")
    embed.add_argument("--batch-size", type=int, default=64, help="texts per provider call")
    embed.set_defaults(func=cmd_embed_missing)

    init = sub.add_parser("init-db", help="create database tables")
    init.set_defaults(func=cmd_init_db)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    # stdout carries the JSON report
    configure_logging(logging.DEBUG if args.verbose else logging.INFO, stream=sys.stderr)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
