from pathlib import Path
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool
from fastapi import Request
from fastapi.templating import Jinja2Templates

from casedesk.config import settings


def make_engine(url: str):
    """Create an engine; sqlite gets thread sharing, in-memory sqlite a single shared connection"""
    if not url.startswith("sqlite"):
        return create_engine(url, pool_pre_ping=True)

    kwargs = {"connect_args": {"check_same_thread": False}}
    if url in ("sqlite://", "sqlite:///:memory:"):
        kwargs["poolclass"] = StaticPool
    return create_engine(url, **kwargs)


engine = make_engine(settings.database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

# Templates configuration
TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"
templates = Jinja2Templates(directory=str(TEMPLATE_DIR))


# Dependency for FastAPI routes
def get_db(request: Request):
    """Database session dependency for FastAPI, bound to the app's database"""
    factory = getattr(request.app.state, "session_factory", SessionLocal)
    db = factory()
    try:
        yield db
    finally:
        db.close()
