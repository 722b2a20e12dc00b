"""API router for v1 endpoints."""

from fastapi import APIRouter

from brd_engine.api import sessions

router = APIRouter()

router.include_router(sessions.router, prefix="/sessions", tags=["sessions"])
