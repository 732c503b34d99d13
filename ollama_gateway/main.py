"""
Ollama Gateway Application Entry Point

FastAPI application main entry, including router registration and application configuration.
"""

import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.routing import APIRouter

from ollama_gateway.api.admin import api_keys_router, logs_router, models_router, stats_router
from ollama_gateway.api.auth import router as auth_router
from ollama_gateway.api.proxy import anthropic_router, openai_router
from ollama_gateway.api.proxy.utils import anthropic_headers, dialect_for_path
from ollama_gateway.common.errors import AppError, Dialect
from ollama_gateway.config import get_settings
from ollama_gateway.db.session import init_db
from ollama_gateway.logging_config import setup_logging
from ollama_gateway.scheduler import shutdown_scheduler, start_scheduler

logger = logging.getLogger(__name__)

# Initialize logging configuration
setup_logging()


# Application Lifecycle Management
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application Lifecycle Management

    Create tables and start the scheduler on startup, stop it on shutdown.
    """
    await init_db()
    start_scheduler()
    logger.info("Ollama backend: %s", get_settings().OLLAMA_URL)
    yield
    shutdown_scheduler()


settings = get_settings()

app = FastAPI(
    title=settings.APP_NAME,
    description="OpenAI / Anthropic compatible gateway in front of Ollama",
    version="0.1.0",
    lifespan=lifespan,
)

# Configure CORS from the comma-separated ALLOWED_ORIGINS
allowed_origins_str = settings.ALLOWED_ORIGINS.strip()
if allowed_origins_str:
    allowed_origins = [origin.strip() for origin in allowed_origins_str.split(",") if origin.strip()]
elif settings.DEBUG:
    allowed_origins = ["http://localhost:3000", "http://127.0.0.1:3000"]
else:
    allowed_origins = []

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Global Exception Handler
@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    """
    Handle application custom exceptions

    Covers errors raised from dependencies (e.g. API Key authentication),
    rendered in the envelope of the dialect the path belongs to.
    """
    dialect = dialect_for_path(request.url.path)
    headers = anthropic_headers(request) if dialect == Dialect.ANTHROPIC else None
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(dialect, include_details=get_settings().DEBUG),
        headers=headers,
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """
    Handle uncaught exceptions

    Stack traces are logged, and returned to clients only in DEBUG mode.
    """
    logger.error(
        "Uncaught exception: %s\nPath: %s\nTraceback:\n%s",
        str(exc),
        request.url.path,
        traceback.format_exc(),
    )

    dialect = dialect_for_path(request.url.path)
    headers = anthropic_headers(request) if dialect == Dialect.ANTHROPIC else None
    error = AppError(message="Internal server error")
    content = error.to_dict(dialect)
    if get_settings().DEBUG:
        content["error"]["message"] = str(exc)
        content["error"]["traceback"] = traceback.format_exc().split("\n")
    return JSONResponse(status_code=500, content=content, headers=headers)


# Health Check Endpoint
@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health Check

    Used for service liveness probe.
    """
    return {"status": "healthy"}


@app.get("/", tags=["Health"])
async def root():
    return {
        "name": settings.APP_NAME,
        "version": "0.1.0",
        "description": "Ollama Gateway - OpenAI / Anthropic protocol translation",
        "backend": settings.OLLAMA_URL,
    }


# Register Proxy Routers
app.include_router(openai_router)
app.include_router(anthropic_router)

# Admin/Auth API (prefixed), proxy endpoints keep their public paths
api_router = APIRouter(prefix="/api")
api_router.include_router(auth_router)
api_router.include_router(api_keys_router)
api_router.include_router(models_router)
api_router.include_router(logs_router)
api_router.include_router(stats_router)
app.include_router(api_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "ollama_gateway.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
    )
