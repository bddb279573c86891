"""
FastAPI application initialization
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from api.routes import health, runs, tracker
from core.config import settings
from core.exceptions import ETLException
from core.logging import setup_logging
import logging
from api.middleware import RequestContextMiddleware
from ingestion.scheduler import PipelineScheduler
from schemas.records import schema_as_dict

setup_logging()

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="XML Reader Ingestion API",
    description="Exactly-once ingestion of XML files with processed-file tracking",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(RequestContextMiddleware)

# Initialize Scheduler
scheduler = PipelineScheduler()


# Include routers
app.include_router(health.router)
app.include_router(runs.router)
app.include_router(tracker.router)


@app.exception_handler(ETLException)
async def etl_exception_handler(request: Request, exc: ETLException):
    logger.error(f"Request failed: {exc.message}", extra={"error_context": exc.to_dict()})
    return JSONResponse(
        status_code=500,
        content={"error": exc.__class__.__name__, "detail": exc.message, "context": exc.context}
    )


@app.on_event("startup")
async def startup_event():
    """Application startup event"""
    logger.info("Starting XML Reader Ingestion API")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Database: {settings.DATABASE_URL.split('@')[1] if '@' in settings.DATABASE_URL else 'configured'}")

    if settings.PIPELINE_CONFIG_FILE:
        scheduler.start()
    else:
        logger.warning("PIPELINE_CONFIG_FILE not set, scheduled runs disabled")


@app.on_event("shutdown")
async def shutdown_event():
    """Application shutdown event"""
    logger.info("Shutting down XML Reader Ingestion API")
    scheduler.stop()


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "XML Reader Ingestion API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            "runs": "/runs",
            "tracker": "/tracker/{table_name}"
        },
        "record_schema": schema_as_dict()
    }
