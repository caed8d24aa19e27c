from fastapi import APIRouter, Depends

from housepoints.api.deps import get_broadcast_hub
from housepoints.core.config import get_settings
from housepoints.realtime.hub import BroadcastHub

router = APIRouter(tags=["system"])


@router.get("/health")
def health():
    settings = get_settings()
    return {"status": "ok", "version": settings.app_version}


@router.get("/system/info")
def system_info(hub: BroadcastHub = Depends(get_broadcast_hub)):
    settings = get_settings()
    return {
        "app_name": settings.app_name,
        "app_env": settings.app_env,
        "app_version": settings.app_version,
        "ws_path": settings.ws_path,
        "live_clients": hub.connection_count,
    }
