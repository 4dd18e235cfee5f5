from .gateway import APIGateway
from .routers import documents, rates
from .routers.dependencies import initialize_database, initialize_services, shutdown_services
from .core import config
from .core.logging_config import setup_logging, get_logger
import os

# Initialize logging
setup_logging()
logger = get_logger(__name__)

gateway = APIGateway(
    title="LedgerScan API",
    description="Financial document extraction with CHF reporting",
    version="1.0.0"
)
gateway.setup_middleware()
gateway.register_router(documents.router, tags=["Documents"])
gateway.register_router(rates.router, tags=["Rates"])
gateway.register_health_endpoints()

app = gateway.get_app()


def _configuration_report() -> dict:
    """Settings worth seeing in the startup log; secrets only as configured/not configured."""
    return {
        "Environment": os.getenv("ENVIRONMENT", "development"),
        "Docs": app.docs_url or "disabled",
        "Local store": f"{config.DATABASE_TYPE} ({config.DB_DIR / (config.STORAGE_KEY + '.json')})"
        if config.DATABASE_TYPE == "json" else config.DATABASE_TYPE,
        "Remote mirror": "supabase" if config.SUPABASE_URL and config.SUPABASE_USER_ID else "disabled",
        "Extraction provider": config.AI_PROVIDER,
        "Extraction timeout": f"{config.EXTRACTION_TIMEOUT_SECONDS:g}s",
        "OCR enhancement": "enabled" if config.OCR_API_KEY else "disabled",
        "Exchange rates": f"{config.EXCHANGE_RATE_URL} (ttl {config.EXCHANGE_RATE_TTL_SECONDS}s)",
        "Batch limits": f"{config.MAX_FILES_PER_BATCH} files, {config.MAX_FILE_SIZE_MB}MB each",
        "Rate limit": f"{config.RATE_LIMIT_PER_MINUTE}/minute" if config.RATE_LIMIT_ENABLED else "disabled",
        "CORS origins": ", ".join(config.CORS_ORIGINS),
    }


@app.on_event("startup")
async def startup_event():
    """Load the record store and build the services."""
    logger.info("=" * 60)
    logger.info(f"Starting {app.title} {app.version}")
    for key, value in _configuration_report().items():
        logger.info(f"  → {key}: {value}")

    await initialize_database()
    await initialize_services()

    logger.info(f"✅ {app.title} ready")
    logger.info("=" * 60)


@app.on_event("shutdown")
async def shutdown_event():
    """Finish the running batch and flush mirror writes."""
    logger.info(f"Shutting down {app.title}...")
    await shutdown_services()
    logger.info("Shutdown complete")
