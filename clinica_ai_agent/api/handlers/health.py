"""
Health check handler.
"""

from datetime import datetime
from typing import Any, Dict

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ...config import get_settings


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str
    timestamp: str
    version: str
    uptime: float


class HealthHandler:
    """Handler for health check endpoints."""

    def __init__(self):
        self.settings = get_settings()
        self.start_time = datetime.now()
        self.router = APIRouter()
        self._setup_routes()

    def _setup_routes(self):
        """Setup health check routes."""

        @self.router.get("/", response_model=HealthResponse)
        async def health_check():
            """Basic health check endpoint."""
            uptime = (datetime.now() - self.start_time).total_seconds()
            return HealthResponse(
                status="healthy",
                timestamp=datetime.now().isoformat(),
                version=self.settings.app_version,
                uptime=uptime
            )

        @self.router.get("/ready")
        async def readiness_check(request: Request):
            """Readiness check: services built and their dependencies answering."""
            services = getattr(request.app.state, "services", None)
            if services is None:
                return JSONResponse({"status": "starting"}, status_code=503)

            checks: Dict[str, Any] = await services.conversation.health_check()
            return {"status": "ready" if checks["overall"] else "degraded", "checks": checks}

        @self.router.get("/live")
        async def liveness_check():
            """Liveness check for container orchestration."""
            return {"status": "alive"}
