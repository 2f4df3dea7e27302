from __future__ import annotations

from app.api.routes.health import router as health_router
from app.api.routes.restore import router as restore_router

__all__ = ["health_router", "restore_router"]
