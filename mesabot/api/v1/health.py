from __future__ import annotations

from fastapi import APIRouter, Request


router = APIRouter()


@router.get("/health")
async def health(request: Request) -> dict:
    runtime = getattr(request.app.state, "runtime", None)
    return {
        "status": "ok",
        "version": "0.1.0",
        "pending_turns": runtime.serializer.pending if runtime is not None else 0,
    }
