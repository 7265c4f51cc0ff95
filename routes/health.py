from fastapi import APIRouter

from services.redis_client import ping
from utils.metrics import snapshot

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
def health():
    redis_state = ping()
    return {
        "status": "OK" if redis_state.get("ok") else "DEGRADED",
        "redis": redis_state,
        "metrics": snapshot(),
    }
