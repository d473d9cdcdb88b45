from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from pmreport.core.config import get_settings


settings = get_settings()

# Reports fan out one connection per concurrent fetch; size the pool for it.
engine = create_engine(
    settings.database_url,
    future=True,
    pool_pre_ping=True,
    pool_size=settings.reporting_fetch_workers + 1,
    max_overflow=settings.reporting_fetch_workers,
    pool_recycle=300,
)

SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
    expire_on_commit=False,
)
