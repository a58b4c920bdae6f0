"""Database engine and session management."""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from config import settings


# SQLAlchemy requires postgresql:// instead of postgres://
db_url = settings.DATABASE_URL
if db_url.startswith("postgres://"):
    db_url = db_url.replace("postgres://", "postgresql://", 1)

if db_url.startswith("sqlite"):
    engine_options = {"connect_args": {"check_same_thread": False}}
else:
    # Test pooled connections before handing them out
    engine_options = {"pool_pre_ping": True, "pool_recycle": 300}

engine = create_engine(db_url, echo=False, **engine_options)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    """Base class for all ORM models."""
    pass


def get_db():
    """Dependency that provides a database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Create all tables."""
    import models.models  # noqa: F401  registers the mappers on Base

    Base.metadata.create_all(bind=engine)
