"""
Shiftbook - Main Application Entry Point
Shift and cash-drawer reconciliation service for POS terminals
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import structlog

from shiftbook import __version__
from shiftbook.core.config import get_settings
from shiftbook.core.database import init_db
from shiftbook.core.errors import ShiftbookError
from shiftbook.core.logging import configure_logging
from shiftbook.services.driver_transfer import DriverListCache
from shiftbook.api import expenses, reports, shifts

settings = get_settings()
configure_logging(settings)
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    # Startup
    logger.info("starting", app=settings.APP_NAME, environment=settings.ENVIRONMENT)
    init_db()

    yield

    # Shutdown
    logger.info("shutting_down", app=settings.APP_NAME)


# Create FastAPI application
app = FastAPI(
    title="Shiftbook API",
    description="Shift, cash drawer and end-of-day reconciliation for POS terminals",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Driver list cache is owned by the application and shared by requests
app.state.driver_cache = DriverListCache()


@app.exception_handler(ShiftbookError)
async def shiftbook_error_handler(request: Request, exc: ShiftbookError):
    logger.info(
        "request_rejected",
        path=request.url.path,
        code=exc.code,
        status_code=exc.status_code,
        detail=exc.message,
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Include routers
app.include_router(shifts.router, prefix=f"{settings.API_V1_PREFIX}/shifts", tags=["shifts"])
app.include_router(expenses.router, prefix=f"{settings.API_V1_PREFIX}/expenses", tags=["expenses"])
app.include_router(reports.router, prefix=f"{settings.API_V1_PREFIX}/reports", tags=["reports"])


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "shiftbook-api"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "shiftbook.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.ENVIRONMENT == "development",
        log_level="info",
    )
