"""BlindsCloud: FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from starlette.exceptions import HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import settings
from database import init_db
from routes.jobs import router as jobs_router
from routes.customers import router as customers_router
from routes.products import router as products_router
from routes.health import router as health_router
from workflow.errors import WorkflowError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-7s | %(name)-25s | %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown events."""
    logger.info("=" * 60)
    logger.info("BlindsCloud Backend starting up")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info("=" * 60)
    init_db()
    logger.info("Database initialized")
    yield
    logger.info("BlindsCloud Backend shutting down")


app = FastAPI(
    title="BlindsCloud",
    description="Field-service management for blinds measurement and installation businesses",
    version="1.3.0",
    lifespan=lifespan,
)

# CORS: allow the frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(WorkflowError)
async def workflow_error_handler(request: Request, exc: WorkflowError):
    logger.warning(f"{request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(HTTPException)
async def http_error_handler(request: Request, exc: HTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.error(f"Server error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "message": str(exc) if settings.is_development else "Something went wrong",
        },
    )


# Register routes
app.include_router(health_router)
app.include_router(jobs_router)
app.include_router(customers_router)
app.include_router(products_router)


@app.get("/")
def root():
    """Root endpoint."""
    return {
        "service": "BlindsCloud",
        "version": "1.3.0",
        "docs": "/docs",
        "health": "/api/health",
    }
