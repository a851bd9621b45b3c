"""Health route for the admin service."""

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

from codewith.constants import HEALTH_PATH

router = APIRouter(tags=["health"])


@router.get(HEALTH_PATH, response_class=PlainTextResponse)
async def health_check() -> str:
    """Liveness check; never requires credentials."""
    return "ok"
