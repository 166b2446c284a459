import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

# Load .env before settings are read; tests configure settings explicitly
if "PYTEST_CURRENT_TEST" not in os.environ:
    load_dotenv()

from studyforge import __version__
from studyforge.api import health, notes, practice, summarize, users
from studyforge.core.config import Settings, settings, validate_config
from studyforge.core.database import create_all_tables, create_store_engine, get_database_url
from studyforge.core.errors import (
    AppError,
    app_error_handler,
    http_error_handler,
    request_validation_handler,
    unhandled_exception_handler,
)
from studyforge.core.identity import ClerkIdentityProvider, IdentityProvider
from studyforge.core.logging import configure_logging
from studyforge.core.middleware.request_id import RequestIdMiddleware
from studyforge.core.tracing import setup_tracing
from studyforge.core.validation import validate_env
from studyforge.features.degraded.policy import DegradedModePolicy
from studyforge.features.generation.provider import GroqProvider, TextGenerationProvider
from studyforge.features.store.service import RelationalStore, SqlStore

logger = logging.getLogger("studyforge")


def build_default_store(cfg: Settings) -> Optional[RelationalStore]:
    """SqlStore over the configured database, or None to run storeless."""
    url = cfg.DATABASE_URL or get_database_url()
    engine = create_store_engine(url)
    if engine is None:
        logger.warning("No DATABASE_URL configured; every request runs in demo mode")
        return None
    return SqlStore(engine)


def create_app(
    *,
    settings_obj: Optional[Settings] = None,
    store: Optional[RelationalStore] = None,
    provider: Optional[TextGenerationProvider] = None,
    identity: Optional[IdentityProvider] = None,
) -> FastAPI:
    """
    Build the application with its collaborators.

    Anything not passed is built from settings. A store is optional: without
    one the service keeps answering with generated content and 207.
    """
    cfg = settings_obj or settings

    configure_logging(cfg.ENV)
    validate_env(settings_obj=cfg)
    validate_config(strict=cfg.CONFIG_STRICT, settings_obj=cfg)
    setup_tracing(enabled=cfg.OTEL_ENABLED, exporter_name=cfg.OTEL_EXPORTER)

    if store is None:
        store = build_default_store(cfg)
    if provider is None:
        provider = GroqProvider(cfg.GROQ_API_KEY, timeout=cfg.GENERATION_TIMEOUT_SECONDS)
    if identity is None:
        identity = ClerkIdentityProvider(cfg)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting StudyForge backend...")
        engine = getattr(store, "engine", None)
        if engine is not None:
            # Best effort: an unreachable database must not stop startup
            try:
                create_all_tables(engine)
            except Exception as e:
                logger.warning(f"Could not create tables at startup: {e}")
        try:
            yield
        finally:
            logger.info("Stopping StudyForge backend...")

    app = FastAPI(title="StudyForge API", version=__version__, lifespan=lifespan)
    app.state.settings = cfg
    app.state.identity = identity
    app.state.policy = DegradedModePolicy.from_settings(cfg, store, provider)

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(notes.router)
    app.include_router(practice.router)
    app.include_router(summarize.router)
    app.include_router(users.router)
    app.include_router(health.router)
    app.include_router(health.root_router)

    return app


app = create_app()
