import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from sqlalchemy import select

from housepoints.api import realtime
from housepoints.api.router import api_router
from housepoints.core.config import get_settings
from housepoints.core.security import hash_password
from housepoints.db.session import session_scope
from housepoints.models.user import User
from housepoints.realtime.bus import EventBus
from housepoints.realtime.hub import BroadcastHub
from housepoints.services.seed import seed_school

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    settings = get_settings()
    logging.getLogger("housepoints").setLevel(settings.log_level)

    event_bus = EventBus()
    broadcast_hub = BroadcastHub(queue_size=settings.ws_queue_size)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        detach_hub = broadcast_hub.attach(event_bus)
        if settings.auto_create_admin:
            with session_scope() as db:
                existing = db.scalar(select(User).where(User.login == settings.bootstrap_admin_login))
                if not existing:
                    admin = User(
                        login=settings.bootstrap_admin_login,
                        password_hash=hash_password(settings.bootstrap_admin_password),
                        first_name="School",
                        last_name="Admin",
                        role="admin",
                    )
                    db.add(admin)
                    db.commit()
                    logger.info("Bootstrap admin %r created.", settings.bootstrap_admin_login)
        if settings.seed_demo_data:
            with session_scope() as db:
                seed_school(db)
        try:
            yield
        finally:
            broadcast_hub.close()
            detach_hub()

    app = FastAPI(title=settings.app_name, version=settings.app_version, lifespan=lifespan)
    app.state.event_bus = event_bus
    app.state.broadcast_hub = broadcast_hub

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    settings.media_path.mkdir(parents=True, exist_ok=True)
    app.mount("/media", StaticFiles(directory=str(settings.media_path)), name="media")
    app.include_router(api_router, prefix=settings.api_v1_prefix)
    app.include_router(realtime.create_router(settings.ws_path))

    return app


app = create_app()
