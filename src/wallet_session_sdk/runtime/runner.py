from __future__ import annotations

import asyncio
import logging

from ..config import Settings
from ..session.manager import WalletSessionManager


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


async def _run_async_server(settings: Settings) -> None:
    """Serve the redirect receiver until interrupted."""
    from ..api.server import create_app

    logger = logging.getLogger(__name__)
    manager = WalletSessionManager(settings)
    app = create_app(manager)

    import uvicorn

    logger.info(
        f"Wallet callback receiver on {settings.host}:{settings.port} "
        f"(cluster={settings.cluster}, providers={', '.join(manager.registry.names())})"
    )
    config = uvicorn.Config(
        app, host=settings.host, port=settings.port, log_level=settings.log_level.lower()
    )
    server = uvicorn.Server(config)
    try:
        await server.serve()
    finally:
        manager.close()


def run() -> None:
    """Main entry point: settings from the environment, then serve."""
    settings = Settings.from_env()
    _configure_logging(settings.log_level)
    asyncio.run(_run_async_server(settings))
