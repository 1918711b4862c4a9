from fastapi import APIRouter
from fastapi.responses import JSONResponse
from typing import Any
from pairchat.ws import manager

router = APIRouter()


@router.get("/redis")
async def redis_health() -> Any:
    """Return Redis connection health. If `REDIS_URL` is not configured, returns status `not_configured`.

    Without Redis, broadcasts only reach sockets connected to this instance.
    """
    if not manager.redis:
        return JSONResponse({"status": "not_configured", "details": "REDIS_URL not set"}, status_code=200)

    if not manager.listening:
        return JSONResponse({"status": "error", "redis": "subscription_down"}, status_code=500)

    try:
        ok = await manager.redis.ping()
        if ok:
            return {"status": "ok", "redis": "connected"}
        else:
            return JSONResponse({"status": "error", "redis": "ping_failed"}, status_code=500)
    except Exception as e:
        return JSONResponse({"status": "error", "error": str(e)}, status_code=500)


@router.get("/realtime")
async def realtime_health() -> Any:
    return {
        "status": "ok",
        "instance": manager.instance_id,
        "connectedUsers": len(manager.active_connections),
        "rooms": len(manager.rooms),
    }
