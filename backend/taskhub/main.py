import socketio
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from taskhub.api import notifications
from taskhub.core.config import settings
from taskhub.db.database import create_tables
from taskhub.realtime.socket import sio


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    await create_tables()
    yield


app = FastAPI(
    title="TaskHub Notifications API",
    description="Notification delivery for the TaskHub task management application",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(notifications.router, prefix="/api/notifications", tags=["Notifications"])


@app.get("/health")
async def health_check():
    return {"status": "ok", "service": "TaskHub API"}


# ASGI entrypoint: Socket.IO on /socket.io, everything else goes to FastAPI
asgi_app = socketio.ASGIApp(sio, other_asgi_app=app, socketio_path="socket.io")
