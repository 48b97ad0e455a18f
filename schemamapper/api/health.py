"""Health check endpoint."""

from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """Report backend status and the number of open editor sessions."""
    registry = request.app.state.session_registry
    return {"status": "ok", "sessions": len(registry)}
