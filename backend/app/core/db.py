from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, sessionmaker, declarative_base
from typing import Iterator
from .config import get_settings

settings = get_settings()


def _engine_kwargs(url: str) -> dict:
    kwargs = {"pool_pre_ping": True}
    if make_url(url).get_backend_name() == "sqlite":
        # Request sessions may be used from FastAPI's threadpool
        kwargs["connect_args"] = {"check_same_thread": False}
    return kwargs


engine = create_engine(settings.DATABASE_URL, **_engine_kwargs(settings.DATABASE_URL))
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
Base = declarative_base()

def get_db() -> Iterator[Session]:
    """One session per request; closed when the response is done."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
