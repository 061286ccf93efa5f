"""Main FastAPI application.

Everything the routes need is built once in ``create_app`` and stored on
``app.state``: settings, engine, session factory, clock and id factory.
Run with ``uvicorn scriptdesk.main:create_app --factory`` or ``scriptdesk-api``.
"""

import logging
import time
from typing import Optional

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import func, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from . import __version__
from .api import folders_router, projects_router, scripts_router, versions_router
from .core.config import ConfigurationError, Settings, get_settings
from .core.identity import new_id, utc_now
from .core.logging_config import mask_url, setup_logging
from .database import build_engine, build_session_factory, get_db, init_db
from .exceptions import ScriptDeskException
from .middleware.exception_handler import scriptdesk_exception_handler
from .middleware.request_context import RequestContextMiddleware
from .models import StoredDocument
from .repositories import ProjectRepository, ScriptRepository

logger = logging.getLogger(__name__)


def _validate_database_connection(engine: Engine, settings: Settings) -> None:
    """Test that the database is reachable. Exits with a clear message on failure."""
    masked = mask_url(settings.database_url)
    logger.info(f"Connecting to database: {masked}")
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception as e:
        hint = (
            "Check that the directory exists and is writable."
            if settings.is_sqlite()
            else "Verify the server is running and DATABASE_URL is correct."
        )
        logger.critical(
            "Database connection failed.\n"
            f"  DATABASE_URL: {masked}\n"
            f"  {hint}\n"
            f"  Error: {e}"
        )
        raise SystemExit(1) from e
    logger.info("Database connection verified")


def _declare_indexes(session_factory) -> None:
    db = session_factory()
    try:
        created = sum(repo(db).ensure_indexes() for repo in (ProjectRepository, ScriptRepository))
        db.commit()
    finally:
        db.close()
    if created:
        logger.info(f"Declared {created} store index(es)")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application with explicitly constructed dependencies."""
    settings = settings or get_settings()
    setup_logging(log_level=settings.log_level, log_format=settings.log_format)

    logger.info(f"Environment: {settings.environment.value}")
    try:
        settings.validate_production_config()
    except ConfigurationError as e:
        logger.critical(f"STARTUP BLOCKED: {e}")
        raise SystemExit(1) from e

    engine = build_engine(settings)
    _validate_database_connection(engine, settings)
    init_db(engine)
    session_factory = build_session_factory(engine)
    _declare_indexes(session_factory)

    app = FastAPI(
        title="ScriptDesk API",
        description=(
            "Storage API for short-form content scripts. Projects hold a folder "
            "hierarchy; scripts live in folders and keep an append-only version history."
        ),
        version=__version__,
    )
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.clock = utc_now
    app.state.id_factory = new_id
    app.state.started_at = time.monotonic()

    # Middleware stack (outermost first: CORS wraps request context).
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_cors_origins(),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Content-Type", "X-Request-ID"],
    )
    app.add_middleware(RequestContextMiddleware)

    app.add_exception_handler(ScriptDeskException, scriptdesk_exception_handler)

    app.include_router(projects_router)
    app.include_router(folders_router)
    app.include_router(scripts_router)
    app.include_router(versions_router)

    @app.get("/")
    def root():
        """Root endpoint."""
        return {"name": "ScriptDesk API", "version": __version__, "status": "running"}

    @app.get("/health")
    def health_check(db: Session = Depends(get_db)):
        """Database status, uptime and document counts.

        Never raises: a failing database reports ``degraded`` so probes
        still get a 200.
        """
        db_status = "ok"
        counts = {"projects": 0, "scripts": 0}
        try:
            rows = (
                db.query(StoredDocument.collection, func.count(StoredDocument.id))
                .group_by(StoredDocument.collection)
                .all()
            )
            for collection, n in rows:
                if collection in counts:
                    counts[collection] = n
        except Exception:
            logger.exception("Health check query failed")
            db_status = "error"

        return {
            "status": "healthy" if db_status == "ok" else "degraded",
            "db": db_status,
            "uptime_seconds": round(time.monotonic() - app.state.started_at),
            "version": __version__,
            "project_count": counts["projects"],
            "script_count": counts["scripts"],
        }

    logger.info(
        "ScriptDesk API ready | env=%s | db=%s | cors=%s",
        settings.environment.value,
        "SQLite" if settings.is_sqlite() else engine.dialect.name,
        ",".join(settings.get_cors_origins()),
    )
    return app


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    uvicorn.run("scriptdesk.main:create_app", factory=True, host="0.0.0.0", port=8000)
