from __future__ import annotations

import asyncio
import logging
import webbrowser

from ..errors import DispatchFailed

logger = logging.getLogger(__name__)


async def open_in_browser(url: str) -> None:
    """Default dispatcher: hand the universal link to the platform's URL handler.

    webbrowser.open may block (console browsers), so it runs in a worker thread.
    """
    if not await asyncio.to_thread(webbrowser.open, url):
        raise DispatchFailed("No handler available to open the wallet link")
    logger.debug("Handed wallet link to the system browser")
