import logging
from contextlib import asynccontextmanager
from datetime import datetime
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from app.core.config import settings
from app.core.database import init_db
from app.core.exceptions import SimsarError, ValidationError
from app.core.logging import setup_logging
from app.routers import admin, admin_auth, agencies, analytics, auth, messages, properties, simsars

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)
    init_db()
    logger.info("%s started", settings.APP_NAME)
    yield


app = FastAPI(
    title=settings.APP_NAME,
    description="Verified real-estate broker (simsar) marketplace",
    version="1.0.0",
    lifespan=lifespan,
)


@app.exception_handler(SimsarError)
async def simsar_error_handler(request: Request, exc: SimsarError):
    content = {"detail": exc.message}
    if isinstance(exc, ValidationError) and exc.fields:
        content["fields"] = exc.fields
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=content)


# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth.router, prefix="/api/v1")
app.include_router(simsars.router, prefix="/api/v1")
app.include_router(properties.router, prefix="/api/v1")
app.include_router(agencies.router, prefix="/api/v1")
app.include_router(messages.router, prefix="/api/v1")
app.include_router(analytics.router, prefix="/api/v1")
app.include_router(admin.router, prefix="/api/v1")
app.include_router(admin_auth.router, prefix="/api/v1/admin")

@app.get("/")
def root():
    return {
        "message": "Simsar Marketplace API",
        "version": "1.0.0",
        "status": "active",
        "documentation": "/docs"
    }

@app.get("/health")
def health_check():
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "timestamp": datetime.utcnow()
    }
