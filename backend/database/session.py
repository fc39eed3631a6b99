# backend/database/session.py
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from config.settings import DATABASE_URL, SQL_ECHO

Base = declarative_base()


def make_engine(url: str = DATABASE_URL, echo: bool = SQL_ECHO):
    kwargs = {"pool_pre_ping": True, "future": True, "echo": echo}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
    return create_engine(url, **kwargs)


engine = make_engine()

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


def init_db(bind=None) -> None:
    """Create all tables on the given engine (defaults to the app engine)."""
    import models  # noqa: F401  registers every table on Base.metadata

    Base.metadata.create_all(bind=bind or engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
