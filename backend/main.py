"""FastAPI application entry point and configuration."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from backend.api.auth_router import router as auth_router
from backend.api.content_router import router as content_router
from backend.api.study_router import router as study_router
from backend.api.users_router import router as users_router
from backend.config import settings
from backend.database import async_session, engine, init_db
from backend.errors import FlashdeckError
from backend.study.store import SessionStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Initialize database on startup and cleanup on shutdown."""
    await init_db()
    yield
    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    description="Exam flashcard study service",
    version="0.1.0",
    lifespan=lifespan,
)
app.state.study_sessions = SessionStore()

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:3000"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(FlashdeckError)
async def flashdeck_error_handler(request: Request, exc: FlashdeckError) -> JSONResponse:
    """Report a failed action verbatim; the client decides whether to retry."""
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


app.include_router(auth_router)
app.include_router(content_router)
app.include_router(study_router)
app.include_router(users_router)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Check database connectivity and return status."""
    async with async_session() as session:
        await session.execute(text("SELECT 1"))
    return {"status": "ok"}
