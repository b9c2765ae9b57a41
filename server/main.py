"""FastAPI WebSocket server for the Big Two card table."""

import json
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from config import config
from handlers import HANDLERS, ConnectionContext, broadcast_roster
from logging_config import connection_id_var, get_logger, setup_logging, username_var
from room import Room
from routers.auth import router as auth_router
from routers.health import router as health_router, set_health_dependencies

# Configure logging based on environment
setup_logging(
    level=config.LOG_LEVEL,
    environment=config.ENVIRONMENT,
)
logger = get_logger(__name__)


# The server hosts exactly one table
room = Room()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    set_health_dependencies(room=room)
    logger.info(f"Big Two server started (environment={config.ENVIRONMENT})")

    yield

    logger.info("Shutdown initiated...")
    room.game.turn_lock.cancel()
    await _close_all_websockets()
    logger.info("Shutdown complete")


async def _close_all_websockets():
    """Close all active WebSocket connections gracefully."""
    for seat in room.seats:
        if seat.websocket:
            try:
                await seat.websocket.close(code=1001, reason="Server shutting down")
            except RuntimeError as e:
                logger.debug(f"Socket for {seat.username} already closed: {e}")
    logger.info("All WebSocket connections closed")


app = FastAPI(
    title="Big Two",
    debug=config.DEBUG,
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_origin_regex=config.CORS_ORIGIN_REGEX or None,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)
app.include_router(health_router)


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    await websocket.accept()

    connection_id = str(uuid.uuid4())
    logger.with_context(connection_id=connection_id).debug("WebSocket connected")

    ctx = ConnectionContext(websocket=websocket, connection_id=connection_id)

    # Shared dependencies passed to every handler
    handler_deps = dict(room=room)

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break

            connection_id_var.set(ctx.connection_id)
            username_var.set(ctx.username)

            raw = message.get("text")
            if raw is None:
                logger.debug("Ignoring binary frame")
                continue

            try:
                data = json.loads(raw)
            except ValueError:
                logger.debug("Ignoring frame that is not JSON")
                continue

            if not isinstance(data, dict):
                logger.debug("Ignoring non-object frame")
                continue

            handler = HANDLERS.get(data.get("type"))
            if handler:
                await handler(data, ctx, **handler_deps)
            else:
                logger.debug(f"Ignoring unknown message type {data.get('type')!r}")
    except WebSocketDisconnect:
        logger.debug("WebSocket closed while sending")
    finally:
        await handle_disconnect(websocket)


async def handle_disconnect(websocket: WebSocket) -> None:
    """Release or keep the seat bound to a dropped connection."""
    async with room.game_lock:
        seat = room.disconnect(websocket)
        if seat is None:
            return
        logger.with_context(username=seat.username).info("WebSocket disconnected")
        if not room.game.is_dealt():
            await broadcast_roster(room)


def run():
    """Run the server using uvicorn."""
    import uvicorn

    logger.info(f"Starting Big Two server on {config.HOST}:{config.PORT}")
    logger.info(f"Debug mode: {config.DEBUG}")

    uvicorn.run(
        "main:app",
        host=config.HOST,
        port=config.PORT,
        reload=config.DEBUG,
        log_level=config.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    run()
