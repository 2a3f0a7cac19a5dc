from collections.abc import Generator
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from app.core.config import settings


def _engine_options(dsn: str) -> dict[str, Any]:
    if dsn.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    # Row locks (SELECT ... FOR UPDATE) need a live connection per ledger transaction
    return {"pool_pre_ping": True}


engine = create_engine(settings.APP_DATABASE_DSN, **_engine_options(settings.APP_DATABASE_DSN))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base: Any = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """Yield one session per request; ledger services commit through it."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Create all ledger tables on the current engine."""
    import app.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
