from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from stravach.config import settings


def _connect_args(database_url: str) -> dict:
    # SQLite connections are shared between the worker thread and request threads
    if database_url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(settings.database_url, connect_args=_connect_args(settings.database_url))
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)

Base = declarative_base()


def init_db() -> None:
    """Create tables that do not exist yet."""
    import stravach.models  # noqa: F401

    Base.metadata.create_all(bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
