import logging
import time

import redis

import config

# ---------------------------------------------------------
# LOGGING
# ---------------------------------------------------------
logger = logging.getLogger("api.redis")

# ---------------------------------------------------------
# LAZY CLIENT
# ---------------------------------------------------------
_redis_client = None


def get_redis():
    global _redis_client
    if _redis_client is not None:
        return _redis_client

    logger.info("[REDIS] Initializing Redis client")
    _redis_client = redis.Redis.from_url(
        config.REDIS_URL,
        decode_responses=True,
        socket_keepalive=True,
        socket_connect_timeout=2,
        retry_on_timeout=True,
    )
    return _redis_client


# ---------------------------------------------------------
# CONNECTION DIAGNOSTICS
# ---------------------------------------------------------
def ping() -> dict:
    t0 = time.time()
    try:
        pong = get_redis().ping()
    except redis.RedisError as e:
        logger.error(f"[REDIS] ping failed: {e}")
        return {"ok": False, "error": e.__class__.__name__}
    ms = int((time.time() - t0) * 1000)
    return {"ok": bool(pong), "latency_ms": ms}
