from datetime import datetime, timezone

from fastapi import APIRouter

from account_api.core.database import engine, ping

router = APIRouter(tags=["health"])


@router.get("/")
async def health():
    return {"status": "UP", "timestamp": datetime.now(timezone.utc).isoformat()}


@router.get("/ready")
async def ready():
    await ping(engine)
    return {"status": "ready"}
