"""
FastAPI Application Entry Point
"""
import os
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

from salescrm.api.v1.routes import api_router
from salescrm.core.config import ConfigManager, get_settings

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan - startup and shutdown events.

    Startup:
    - Validates configuration
    - Opens the database (or falls back to in-memory storage)
    - Decides the AI mode and builds the ContactService

    Shutdown:
    - Releases the AI provider and disposes the engine
    """
    # ========================
    # STARTUP
    # ========================
    logger.info("Starting Sales CRM...")

    strict_validation = settings.environment == "production"

    try:
        from salescrm.core.validation import validate_settings_on_startup
        validate_settings_on_startup(settings, strict=strict_validation)
    except RuntimeError as e:
        if strict_validation:
            logger.error(f"Startup failed: {e}")
            raise
        else:
            logger.warning(f"Configuration warnings (non-fatal in {settings.environment}): {e}")

    config = ConfigManager(env=settings.environment)

    from salescrm.domain.services.contact_scorer import ContactScorer
    from salescrm.domain.services.contact_validator import ContactValidator
    from salescrm.domain.services.quality_assessor import create_quality_assessor
    from salescrm.services.contact_service import ContactService

    engine = None
    if settings.database_url:
        from salescrm.infrastructure.storage.contact_repository import SQLAlchemyContactRepository
        from salescrm.infrastructure.storage.database import (
            create_engine_from_url,
            create_session_factory,
            init_models,
        )
        engine = create_engine_from_url(settings.database_url, echo=settings.debug and os.getenv("SQL_ECHO") == "1")
        await init_models(engine)
        repository = SQLAlchemyContactRepository(create_session_factory(engine))
        logger.info("Using SQL storage")
    else:
        from salescrm.infrastructure.storage.memory_repository import InMemoryContactRepository
        repository = InMemoryContactRepository()
        logger.warning("Using in-memory storage")

    scoring = config.get_scoring_config(default_phone_region=settings.default_phone_region)
    llm_config = config.get_llm_config(settings.llm_provider)
    llm_config.setdefault("model", settings.llm_model)

    assessor = await create_quality_assessor(
        settings.groq_api_key,
        provider_name=settings.llm_provider,
        provider_config=llm_config,
        timeout_seconds=settings.ai_timeout_seconds,
        suspicion_threshold=scoring.ai_suspicion_threshold,
    )
    scorer = ContactScorer(ContactValidator(default_region=scoring.default_phone_region), assessor, scoring)

    app.state.contact_service = ContactService(
        repository,
        scorer,
        phone_region=scoring.default_phone_region,
        default_max_contacts=settings.default_max_contacts,
    )
    app.state.ai_mode = assessor.mode
    app.state.storage = "sql" if engine is not None else "memory"

    logger.info(f"Sales CRM started successfully (AI mode: {assessor.mode.value})")

    yield  # Application is running

    # ========================
    # SHUTDOWN
    # ========================
    logger.info("Shutting down Sales CRM...")

    try:
        await assessor.cleanup()
        if engine is not None:
            await engine.dispose()
    except Exception as e:
        logger.error(f"Error during shutdown: {e}")

    logger.info("Sales CRM shutdown complete")


app = FastAPI(
    title="Sales CRM",
    description="Contact quality scoring and advisor distribution",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_router, prefix=settings.api_prefix)


@app.get("/")
async def root():
    return {"message": "Sales CRM API", "status": "running"}


@app.get("/health")
async def health_check():
    """
    Health check endpoint.

    Returns basic health status, storage backend and AI mode.
    """
    health = {"status": "healthy"}

    ai_mode = getattr(app.state, "ai_mode", None)
    health["ai_mode"] = ai_mode.value if ai_mode else "unknown"
    health["storage"] = getattr(app.state, "storage", "unknown")

    return health


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
