"""Database dependencies for FastAPI endpoints."""

from collections.abc import Callable, Generator

from sqlalchemy.orm import Session

from pmreport.db.session import SessionLocal


def get_db_session() -> Generator[Session, None, None]:
    """Yield a transactional SQLAlchemy session."""

    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def get_session_factory() -> Callable[[], Session]:
    """Session factory used by concurrent report fetches (one session per fetch)."""

    return SessionLocal
