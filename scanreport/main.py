"""
ScanReport - FastAPI Application

Exports a medical scan and its analysis result as an annotated PNG
or a paginated PDF report.

IMPORTANT: This is NOT a diagnostic tool.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from scanreport.config import settings
from scanreport.api.routes import router
from scanreport.api.middleware import (
    RequestLoggingMiddleware,
    ErrorHandlingMiddleware,
    setup_error_handlers,
    setup_rate_limiting
)
from scanreport.utils.logger import get_logger, configure_logging

logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    logger.info(
        "Starting ScanReport",
        version=settings.app_version,
        debug=settings.debug
    )

    settings.output_path.mkdir(parents=True, exist_ok=True)

    configure_logging(
        log_level=settings.log_level,
        json_format=not settings.debug
    )

    logger.info("Application ready")

    yield

    logger.info("Shutting down ScanReport")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI instance
    """
    app = FastAPI(
        title=settings.app_name,
        description="""
## ScanReport - Annotated Scan Export

Turns a medical scan and its structured analysis result into:

- **Annotated PNG**: findings highlighted and labelled at the original resolution
- **PDF report**: title, annotated scan, summary, per-finding details, disclaimer

### ⚠️ Important Disclaimer

**This is NOT a diagnostic tool.** Findings come from an external analysis
service and must be reviewed by a qualified clinician.

### API Endpoints

| Endpoint | Method | Description |
|----------|--------|-------------|
| `/export/image` | POST | Download annotated PNG |
| `/export/document` | POST | Download PDF report |
| `/export/save` | POST | Save PNG or PDF to the output directory |
| `/health` | GET | Health check |
        """,
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc" if settings.debug else None,
    )

    # Setup middleware (order matters - first added is innermost)
    app.add_middleware(ErrorHandlingMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    setup_rate_limiting(app)
    setup_error_handlers(app)

    app.include_router(router, tags=["API"])

    return app


# Create app instance
app = create_app()


# Run with: uvicorn scanreport.main:app --reload
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "scanreport.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
