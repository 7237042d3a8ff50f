import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from constants import CORS_ORIGINS, MAX_ROOM_SIZE
from coordinator import Coordinator
from logging_config import get_logger, setup_logging
from routers.rooms import rooms_router

# Setup logging
log_level = os.getenv("LOG_LEVEL", "INFO")
log_file = os.getenv("LOG_FILE", None)
setup_logging(log_level=log_level, log_file=log_file)
logger = get_logger(__name__)


def create_app(max_room_size: int = MAX_ROOM_SIZE) -> FastAPI:
    # Each app owns its own room table so tests never share state
    coordinator = Coordinator(max_room_size=max_room_size)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await coordinator.connections.close()

    app = FastAPI(lifespan=lifespan)
    app.state.coordinator = coordinator

    # Configure CORS from CORS_ORIGIN
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    app.include_router(rooms_router)

    @app.get("/healthz", response_class=PlainTextResponse)
    async def healthz():
        return "ok"

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        """One session per websocket; the session ends when the socket closes."""
        coordinator: Coordinator = websocket.app.state.coordinator
        await websocket.accept()
        session_id = coordinator.connect(websocket)

        try:
            message_count = 0
            while True:
                data = await websocket.receive_text()
                message_count += 1
                logger.debug(f"Received message #{message_count} from session {session_id}")
                await coordinator.handle_message(session_id, data)
        except WebSocketDisconnect:
            logger.info(f"WebSocket disconnected normally for session {session_id}")
        except Exception as e:
            logger.error(f"WebSocket error for session {session_id}: {e}", exc_info=True)
        finally:
            # Removes the session from every room it joined or waited in
            await coordinator.disconnect(session_id)

    logger.info(f"FastAPI application initialized (max room size {max_room_size}, origins {CORS_ORIGINS})")
    return app


app = create_app()
