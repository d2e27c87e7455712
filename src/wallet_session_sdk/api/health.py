from __future__ import annotations

from fastapi import Request
from fastapi.responses import JSONResponse


async def sdk_health(request: Request) -> JSONResponse:
    manager = request.app.state.manager
    sessions = {name: manager.get_state(name).status.value for name in manager.registry.names()}
    return JSONResponse(
        {"status": "ready", "active_provider": manager.active_provider, "sessions": sessions}
    )
