from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from infraflow.config import DATABASE_URL


def _connect_args(url: str) -> dict:
    # sqlite connections are used from FastAPI's threadpool
    return {"check_same_thread": False} if url.startswith("sqlite") else {}


engine = create_engine(DATABASE_URL, connect_args=_connect_args(DATABASE_URL), pool_pre_ping=True)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


def get_db():
    """FastAPI dependency yielding one session per request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
