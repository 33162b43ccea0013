from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from core.settings import Settings
from db.models import Base

# Global engine singleton
_engine = None


def reset_engine():
    """Reset global engine singleton. Used for testing."""
    global _engine
    if _engine:
        _engine.dispose()
        _engine = None


def get_engine(settings: Settings):
    """Get or create SQLAlchemy engine for the sales database."""
    global _engine
    if _engine is None:
        if settings.DATABASE_URL.startswith("sqlite"):
            # Share one connection so in-memory databases survive across sessions
            _engine = create_engine(
                settings.DATABASE_URL,
                future=True,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            _engine = create_engine(
                settings.DATABASE_URL, future=True, pool_pre_ping=True
            )
    return _engine


SessionLocal = sessionmaker(autocommit=False, autoflush=False)


def init_db(settings: Settings) -> None:
    """Create the sales tables."""
    Base.metadata.create_all(get_engine(settings))


@contextmanager
def session_scope(settings: Settings) -> Generator[Session, None, None]:
    """Context manager for manual session management."""
    SessionLocal.configure(bind=get_engine(settings))
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
