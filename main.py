"""
Wedding Planner Core - FastAPI Backend
Main application entry point
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from app.core.config import settings
from app.core.db import engine, Base
from app.core.exceptions import PersistenceFailure, PlannerError
from app.api import routes_checklist, routes_public, routes_seating
from app.utils.responses import planner_error_response

# Configure logging
logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management"""
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created")
    yield
    logger.info("Application shutdown")

app = FastAPI(
    title="Wedding Planner Core",
    description="Checklist import/export and seating allocation for wedding planners",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(PlannerError)
async def planner_error_handler(request: Request, exc: PlannerError):
    """Map service errors onto the standard error envelope"""
    if isinstance(exc, PersistenceFailure):
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return planner_error_response(exc)

app.include_router(routes_public.router, tags=["public"])
app.include_router(routes_checklist.router, prefix="/admin", tags=["checklist"])
app.include_router(routes_seating.router, prefix="/admin", tags=["seating"])

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="127.0.0.1",
        port=8000,
        reload=True
    )
