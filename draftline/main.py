"""FastAPI application entry point."""

import json
import logging
import traceback
from contextlib import asynccontextmanager
from uuid import UUID

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import TimeoutError as SQLAlchemyTimeoutError

from . import __version__
from .config import settings
from .database import async_session_maker, warmup_connection_pool
from .models.project import Project
from .routers import documents_router, projects_router, versions_router
from .services.redis_service import redis_service
from .services.snapshot_service import VersionIntegrityError
from .websocket import get_project_room, manager

logging.basicConfig(level=settings.log_level.upper())
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown tasks."""
    logger.info("Warming up database connection pool...")
    await warmup_connection_pool()
    logger.info("Database connection pool ready")

    logger.info("Connecting to Redis...")
    try:
        await redis_service.connect()
        await manager.initialize_redis()
        await redis_service.start_listening()
        logger.info("Redis pub/sub listener started")
    except Exception as e:
        if settings.redis_required:
            logger.error(f"Redis connection failed and REDIS_REQUIRED=true: {e}")
            raise RuntimeError(
                f"Redis is required for multi-worker deployment but connection failed: {e}"
            )
        logger.warning(f"Redis connection failed, running in single-worker mode: {e}")

    yield

    logger.info("Disconnecting from Redis...")
    await redis_service.disconnect()


app = FastAPI(
    title="Draftline API",
    description="Snapshots, branches and restore for composite documents",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Desktop editors call the API from a local origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Database pool exhaustion handler - return 503 so clients can retry
@app.exception_handler(SQLAlchemyTimeoutError)
async def db_pool_exhausted_handler(request: Request, exc: SQLAlchemyTimeoutError):
    """Handle database connection pool exhaustion with 503 Service Unavailable."""
    logger.warning(f"Database pool exhausted on {request.method} {request.url}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "detail": "Service temporarily unavailable. Please retry.",
            "retry_after": 5,
        },
        headers={"Retry-After": "5"},
    )


@app.exception_handler(VersionIntegrityError)
async def version_integrity_handler(request: Request, exc: VersionIntegrityError):
    """Cross-project branch or snapshot references are client errors."""
    logger.warning(f"Version integrity error on {request.method} {request.url}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"detail": str(exc)},
    )


# Global exception handler to log errors
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Log all unhandled exceptions with full traceback."""
    logger.error(f"Unhandled exception on {request.method} {request.url}:")
    logger.error(f"Exception type: {type(exc).__name__}")
    logger.error(f"Exception message: {str(exc)}")
    logger.error(f"Traceback:\n{traceback.format_exc()}")
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


app.include_router(projects_router)
app.include_router(documents_router)
app.include_router(versions_router)


@app.get("/")
async def root():
    """Root endpoint - health check."""
    return {
        "status": "healthy",
        "service": "Draftline API",
        "version": __version__,
    }


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring."""
    return {
        "status": "healthy",
        "redis": await redis_service.health_check(),
        "websocket": {
            "connections": manager.total_connections,
            "rooms": manager.total_rooms,
        },
    }


@app.websocket("/ws/projects/{project_id}")
async def project_websocket(websocket: WebSocket, project_id: UUID):
    """
    Live updates for one project.

    Clients receive document_restored, snapshot_created, branch_created and
    related events for the project, and may send {"type": "ping"}.
    """
    async with async_session_maker() as session:
        project = await session.get(Project, project_id)
    if project is None:
        await websocket.close(code=4004, reason="Project not found")
        return

    connection = await manager.connect(websocket, get_project_room(project_id))
    if connection is None:
        return

    try:
        while True:
            raw_message = await websocket.receive_text()

            if len(raw_message) > settings.ws_max_message_size:
                logger.warning(
                    f"Message too large on project {project_id}: "
                    f"{len(raw_message)} bytes (max: {settings.ws_max_message_size})"
                )
                await websocket.send_json({
                    "type": "error",
                    "data": {"error": "MESSAGE_TOO_LARGE"},
                })
                continue

            try:
                data = json.loads(raw_message)
            except json.JSONDecodeError:
                await websocket.send_json({
                    "type": "error",
                    "data": {"error": "INVALID_JSON", "message": "Invalid JSON format"},
                })
                continue

            await manager.handle_message(websocket, data)
    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnect on project {project_id}")
    except Exception as e:
        logger.error(f"WebSocket exception on project {project_id}: {e}")
    finally:
        await manager.disconnect(websocket)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("draftline.main:app", host=settings.host, port=settings.port)
