from datetime import datetime, timezone

from fastapi import APIRouter

from market_chat.core.rate_limit import limiter

router = APIRouter(tags=["health"])


@router.get("/health")
@limiter.exempt
async def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}
