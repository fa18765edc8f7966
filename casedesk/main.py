from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, FastAPI
from sqlalchemy import text
from sqlalchemy.orm import Session, sessionmaker

from casedesk.config import Settings, settings as default_settings
from casedesk.database import Base, SessionLocal, engine, get_db, make_engine
from casedesk.logging_config import configure_logging
from casedesk.routes import case_routes, document_routes, toast_routes
from casedesk.services.entity_store import EntityStore
from casedesk.services.status_service import StatusControlRegistry
from casedesk.services.storage_service import FileStorage
from casedesk.services.toast_service import ToastChannel

logger = logging.getLogger("casedesk")


def create_app(
    config: Optional[Settings] = None,
    *,
    entity_store: Optional[EntityStore] = None,
    binary_store: Optional[FileStorage] = None,
    create_tables: bool = True,
) -> FastAPI:
    """
    Build the application.

    The database and storage root come from ``config``; tests pass their own
    stores. The toast channel and status controls are scoped to the app.
    """
    config = config or default_settings
    configure_logging(config)

    if config.database_url == default_settings.database_url:
        db_engine, session_factory = engine, SessionLocal
    else:
        db_engine = make_engine(config.database_url)
        session_factory = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)

    app = FastAPI(title=config.app_name)

    app.state.settings = config
    app.state.session_factory = session_factory
    app.state.entity_store = entity_store or EntityStore(session_factory)
    app.state.binary_store = binary_store or FileStorage(
        config.storage_root, config.secret_key, buckets=[config.documents_bucket]
    )
    app.state.toasts = ToastChannel(history_size=config.toast_history_size)
    app.state.status_controls = StatusControlRegistry(app.state.entity_store, app.state.toasts)

    app.include_router(case_routes.router)
    app.include_router(case_routes.parties_router)
    app.include_router(document_routes.router)
    app.include_router(toast_routes.router)

    if create_tables:
        @app.on_event("startup")
        def ensure_tables():
            Base.metadata.create_all(bind=db_engine)
            logger.info(f"Database tables ensured ({db_engine.url.render_as_string(hide_password=True)})")

    @app.get("/health")
    def health(db: Session = Depends(get_db)):
        db.execute(text("SELECT 1"))
        return {"status": "ok", "app": config.app_name}

    logger.info(f"{config.app_name} ready (storage root: {app.state.binary_store.root})")
    return app


app = create_app()
