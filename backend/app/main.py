"""
MindfulMate API
===============
FastAPI application entry point. Mount routers here.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import get_settings
from app.db.base import StorageFailure
from app.routers import chats, insights, moods, session

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="MindfulMate API",
    description="Student mental health companion: chat and mood history backend",
    version="0.1.0",
    docs_url="/api/docs" if settings.environment != "production" else None,
    redoc_url="/api/redoc" if settings.environment != "production" else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(chats.router)
app.include_router(moods.router)
app.include_router(session.router)
app.include_router(insights.router)


@app.exception_handler(StorageFailure)
async def storage_failure_handler(request: Request, exc: StorageFailure) -> JSONResponse:
    logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=503,
        content={
            "detail": {
                "message": "Your data could not be saved or loaded right now. Please try again.",
                "code": "storage_unavailable",
            }
        },
    )


@app.get("/api/health")
async def health_check() -> dict:
    return {"status": "ok", "service": "mindfulmate-api"}
