import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from petcare.concurrency import InFlightGate, KeyedLocks
from petcare.config import Settings
from petcare.dependencies import limiter
from petcare.exceptions import PetCareError, petcare_error_handler
from petcare.routers import health, logs, records, reports
from petcare.services.extraction import ExtractionPool
from petcare.services.firestore import FirestoreService
from petcare.services.report_client import ReportServiceClient

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    if settings is None:
        settings = Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
        # Only create real backends if not already set (tests inject fakes)
        if not hasattr(app.state, "firestore_service"):
            try:
                app.state.firestore_service = FirestoreService(
                    project_id=settings.gcp_project_id,
                    database=settings.firestore_database,
                )
            except Exception as exc:
                logger.warning("Firestore unavailable: %s", exc)
                app.state.firestore_service = None
        owns_report_client = not hasattr(app.state, "report_client")
        if owns_report_client:
            app.state.report_client = ReportServiceClient(
                settings.report_service_url,
                timeout=settings.report_timeout_seconds,
            )
        yield
        if owns_report_client:
            await app.state.report_client.aclose()

    application = FastAPI(
        title="Pet Medical Records API",
        description=(
            "Ingest pet medical documents, extract their text and generate "
            "AI health reports"
        ),
        version="0.1.0",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    application.state.settings = settings
    application.state.limiter = limiter
    application.state.extraction_pool = ExtractionPool(
        max_concurrency=settings.extraction_concurrency,
        ocr_language=settings.ocr_language,
    )
    application.state.upload_locks = KeyedLocks()
    application.state.report_gate = InFlightGate()
    application.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    application.add_exception_handler(PetCareError, petcare_error_handler)

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.include_router(health.router)
    application.include_router(records.router)
    application.include_router(logs.router)
    application.include_router(reports.router)

    return application


def _create_default_app() -> FastAPI:
    """Create app with settings from environment. Used by uvicorn."""
    try:
        return create_app()
    except Exception:
        # Without env vars Settings() fails; tests call create_app(settings=...)
        return FastAPI()


app = _create_default_app()
