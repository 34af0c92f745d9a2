import logging
from contextlib import asynccontextmanager

import socketio
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from familybank import config
from familybank.database.connection import close_mongo_connection, connect_to_mongo, get_database
from familybank.repositories.message_repository import MessageRepository
from familybank.routers.auth import router as auth_router
from familybank.routers.chat import router as chat_router
from familybank.routers.devices import router as devices_router
from familybank.routers.family import router as family_router
from familybank.routers.goals import router as goals_router
from familybank.routers.realtime import register_socket_handlers
from familybank.routers.transactions import router as transactions_router
from familybank.utils.realtime_bus import RealtimeBus, create_bus


logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


@asynccontextmanager
async def lifespan(app: FastAPI):

    await connect_to_mongo()
    await MessageRepository(get_database()).ensure_indexes()
    try:
        yield
    finally:
        await close_mongo_connection()


def create_app(bus: RealtimeBus | None = None) -> FastAPI:
    app = FastAPI(title="FamilyBank API", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.allowed_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.bus = bus or create_bus(config.REDIS_URL, config.allowed_origins())

    app.include_router(auth_router)
    app.include_router(chat_router)
    app.include_router(transactions_router)
    app.include_router(goals_router)
    app.include_router(family_router)
    app.include_router(devices_router)

    @app.get("/")
    async def root():
        return {"message": "FamilyBank API", "realtime": app.state.bus.redis_enabled}

    return app


app = create_app()
register_socket_handlers(app.state.bus, get_database)

# uvicorn familybank.main:asgi_app
asgi_app = socketio.ASGIApp(app.state.bus.sio, other_asgi_app=app)
