# learnshop/database.py
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine, Session

from learnshop.core.config import get_settings

settings = get_settings()

# ---------------------------------------------------------
# Engine options depend on the backend:
#
# - SQLite            : check_same_thread=False because FastAPI runs sync
#                       endpoints in a threadpool; in-memory databases use
#                       a StaticPool so every session sees the same data.
# - Postgres & others : pool_pre_ping=True to validate pooled connections,
#                       small pool to stay under managed-DB client limits.
# ---------------------------------------------------------


def build_engine(db_url: str, echo: bool = False):
    if db_url.startswith("sqlite"):
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if db_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(db_url, echo=echo, **kwargs)

    return create_engine(
        db_url,
        echo=echo,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=0,
    )


engine = build_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)


def create_db_and_tables() -> None:
    """
    Create all tables defined in SQLModel metadata if they do not exist.

    This is called once on application startup.
    """
    SQLModel.metadata.create_all(engine)


def get_session():
    """One session per request; services decide where to commit."""
    with Session(engine) as session:
        yield session
