from __future__ import annotations

import base64
import binascii
import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from ..errors import SessionNotEstablished, UnknownProvider
from ..providers import ProviderConfig
from ..session.manager import WalletSessionManager
from .health import sdk_health

logger = logging.getLogger(__name__)


def _require_provider(manager: WalletSessionManager, provider: str) -> ProviderConfig:
    try:
        return manager.registry.get(provider)
    except UnknownProvider:
        raise HTTPException(status_code=404, detail=f"unknown provider '{provider}'") from None


def _callback_handler(manager: WalletSessionManager, provider: ProviderConfig):
    async def handle_redirect(request: Request) -> JSONResponse:
        """Receive a wallet redirect and feed the full URL to the session."""
        url = str(request.url)
        changed = manager.handle_callback_url(url)
        state = manager.get_state(provider.name)
        logger.debug(f"Redirect for {provider.name} handled (changed={changed is not None})")
        return JSONResponse(state.to_dict())

    return handle_redirect


def create_app(manager: WalletSessionManager) -> FastAPI:
    """Build the callback receiver for redirects delivered over HTTP.

    One GET route per provider redirect path plus session control routes.
    """
    app = FastAPI(title="wallet-session-sdk")
    app.state.manager = manager

    app.add_api_route("/health", sdk_health, methods=["GET"])

    for provider in manager.registry:
        app.add_api_route(
            f"/{provider.redirect_route}",
            _callback_handler(manager, provider),
            methods=["GET"],
            name=f"{provider.name}_redirect",
        )

    @app.get("/sessions/{provider}")
    async def get_session(provider: str) -> JSONResponse:
        _require_provider(manager, provider)
        return JSONResponse(manager.get_state(provider).to_dict())

    @app.post("/sessions/{provider}/connect")
    async def connect(provider: str) -> JSONResponse:
        _require_provider(manager, provider)
        state = await manager.connect(provider)
        return JSONResponse(state.to_dict())

    @app.post("/sessions/{provider}/sign")
    async def sign(provider: str, request: Request) -> JSONResponse:
        _require_provider(manager, provider)
        try:
            body = await request.json()
        except ValueError as err:
            raise HTTPException(status_code=400, detail="body must be JSON") from err
        tx_b64 = body.get("transaction") if isinstance(body, dict) else None
        if not tx_b64:
            raise HTTPException(status_code=400, detail="missing transaction")
        if not isinstance(tx_b64, str):
            raise HTTPException(status_code=400, detail="transaction must be base64")
        try:
            raw = base64.b64decode(tx_b64, validate=True)
        except (binascii.Error, ValueError) as err:
            raise HTTPException(status_code=400, detail="transaction must be base64") from err
        try:
            state = await manager.request_signature(provider, raw)
        except SessionNotEstablished as err:
            raise HTTPException(status_code=409, detail=err.message) from err
        return JSONResponse(state.to_dict())

    @app.post("/sessions/{provider}/disconnect")
    async def disconnect(provider: str) -> JSONResponse:
        _require_provider(manager, provider)
        return JSONResponse(manager.disconnect(provider).to_dict())

    return app
