"""Process-wide logging setup shared by the API server, the CLI and the folder watcher."""
import logging
import sys

LOG_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s | %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

_COMPONENT_LOGGERS = (
    "ai.llm",
    "ai.embed",
    "extract.document",
    "extract.profile",
    "match.engine",
    "match.service",
    "match.results",
    "ingest.resume",
    "ingest.batch",
    "candidates.service",
    "jobs.service",
    "watcher",
    "api.errors",
)

_NOISY_LOGGERS = (
    "httpx",
    "httpcore",
    "openai",
    "sqlalchemy.engine",
    "watchdog",
    "multipart",
)


def configure_logging(level: int = logging.INFO, stream=None) -> None:
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        handlers=[
            logging.StreamHandler(stream or sys.stdout)
        ]
    )

    for name in _COMPONENT_LOGGERS:
        logging.getLogger(name).setLevel(level)

    # Reduce noise from external libraries
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
