# path: backend/talentmatch/db/base.py
# Purpose: SQLAlchemy engine, session factory, and declarative base. Single source of DB truth.
from sqlalchemy import JSON, create_engine, event, func, select
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Session, sessionmaker, DeclarativeBase
from talentmatch.core.config import settings


class Base(DeclarativeBase):
    pass


# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests and local runs)
JSONType = JSON().with_variant(JSONB(), "postgresql")


engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,  # proactively validate connections
)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


@event.listens_for(Session, "before_flush")
def _number_new_rows(session, flush_context, instances):
    """
    `created_seq` is an identity column on PostgreSQL. SQLite has no identity
    columns, so new rows are numbered here, in the order they were added.
    """
    pending = [obj for obj in session.new if "created_seq" in obj.__table__.c and obj.created_seq is None]
    if not pending or session.get_bind().dialect.name != "sqlite":
        return
    by_model: dict = {}
    for obj in pending:
        by_model.setdefault(type(obj), []).append(obj)
    for model, rows in by_model.items():
        last = session.execute(select(func.coalesce(func.max(model.created_seq), 0))).scalar_one()
        for offset, obj in enumerate(rows, start=1):
            obj.created_seq = last + offset


def get_db():
    """Yield a database session; close it when done."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind=None) -> None:
    """Create all tables. Bootstrap only; schema evolution is handled outside this package."""
    from talentmatch import models  # noqa: F401  (register mappers)

    Base.metadata.create_all(bind=bind or engine)
