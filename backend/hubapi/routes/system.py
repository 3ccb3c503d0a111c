from __future__ import annotations
from fastapi import APIRouter, Request
from hubapi.config import settings
from hubapi.services.clock import utcnow

router = APIRouter(tags=["system"])

@router.get("/health")
async def health(request: Request):
    return {
        "status": "ok",
        "env": settings.environment,
        "time": utcnow().isoformat(),
        "request_id": request.headers.get("x-request-id") or getattr(request.state, "request_id", None),
    }

@router.get("/version")
async def version():
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "git_sha": settings.git_sha,
        "build": settings.environment,
    }
