from fastapi import FastAPI, WebSocket, WebSocketDisconnect, Query, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from typing import Dict, List, Any, Optional
from jose import JWTError
import json
import logging
from datetime import datetime, timezone

from bettersafe.config import settings
from bettersafe.database import create_db_and_tables
from bettersafe.api import (
    auth, incidents, emergency, friends, location, campus,
    campus_info, digital_id, feedback, admin
)
from bettersafe.api.auth import decode_access_token
from bettersafe.core.health import run_health_checks

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

# Lifespan manager for startup/shutdown events
@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    await create_db_and_tables()
    logger.info("Database tables created")
    logger.info("Application starting up")
    yield
    # Shutdown
    logger.info("Application shutting down")

app = FastAPI(
    title="Better Safe API",
    description="Campus safety for Howard University: incident reports, emergency alerts and friend location sharing",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
app.include_router(incidents.router, prefix="/api/incidents", tags=["Incidents"])
app.include_router(emergency.router, prefix="/api/emergency", tags=["Emergency"])
app.include_router(friends.router, prefix="/api/friends", tags=["Friends"])
app.include_router(location.router, prefix="/api/location", tags=["Location"])
app.include_router(campus.router, prefix="/api/campus", tags=["Campus"])
app.include_router(campus_info.router, prefix="/api")
app.include_router(digital_id.router, prefix="/api/digital-id", tags=["Digital ID"])
app.include_router(feedback.router, prefix="/api")
app.include_router(admin.router, prefix="/api/admin", tags=["Admin"])

# WebSocket connection manager, keyed by user id (a user may have several devices)
class ConnectionManager:
    def __init__(self):
        self.active_connections: Dict[str, List[WebSocket]] = {}

    async def connect(self, websocket: WebSocket, user_id: str):
        await websocket.accept()
        self.active_connections.setdefault(user_id, []).append(websocket)
        logger.info(f"WebSocket connected: {user_id}")

    def disconnect(self, user_id: str, websocket: Optional[WebSocket] = None):
        sockets = self.active_connections.get(user_id)
        if not sockets:
            return
        if websocket is not None and websocket in sockets:
            sockets.remove(websocket)
        if websocket is None or not sockets:
            del self.active_connections[user_id]
            logger.info(f"WebSocket disconnected: {user_id}")

    @property
    def connection_count(self) -> int:
        return sum(len(sockets) for sockets in self.active_connections.values())

    async def _send(self, user_id: str, websocket: WebSocket, message: str) -> bool:
        try:
            await websocket.send_text(message)
            return True
        except Exception as e:
            logger.warning(f"Error sending to {user_id}: {e}")
            return False

    async def broadcast(self, data: dict[str, Any]):
        message = json.dumps(data, default=str)
        disconnected = []
        for user_id, sockets in list(self.active_connections.items()):
            for websocket in list(sockets):
                if not await self._send(user_id, websocket, message):
                    disconnected.append((user_id, websocket))

        # Clean up disconnected clients
        for user_id, websocket in disconnected:
            self.disconnect(user_id, websocket)

    async def send_to_user(self, user_id: str, data: dict[str, Any]):
        message = json.dumps(data, default=str)
        for websocket in list(self.active_connections.get(user_id, [])):
            if not await self._send(user_id, websocket, message):
                self.disconnect(user_id, websocket)

manager = ConnectionManager()

@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket, token: str = Query("")):
    try:
        payload = decode_access_token(token)
    except (JWTError, ValueError):
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    user_id = str(payload["sub"])
    await manager.connect(websocket, user_id)
    try:
        while True:
            # Any client message is treated as a heartbeat ping
            await websocket.receive_text()
            await websocket.send_text(json.dumps({
                "type": "heartbeat",
                "timestamp": datetime.now(timezone.utc).isoformat()
            }))
    except WebSocketDisconnect:
        manager.disconnect(user_id, websocket)
    except Exception as e:
        logger.error(f"WebSocket error for {user_id}: {e}")
        manager.disconnect(user_id, websocket)

@app.get("/")
async def root():
    return {
        "message": "Better Safe API",
        "status": "active",
        "campus": "Howard University",
        "version": "1.0.0",
        "timestamp": datetime.now(timezone.utc).isoformat()
    }

# Health check endpoint
@app.get("/health")
async def health_check():
    report = await run_health_checks()
    report["active_connections"] = manager.connection_count
    status_code = 200 if report["status"] == "healthy" else 503
    return JSONResponse(status_code=status_code, content=report)

# Make manager available to other modules
app.state.websocket_manager = manager
