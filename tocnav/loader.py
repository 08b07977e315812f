"""Force a virtualized view to materialise its trailing content."""

from __future__ import annotations

import asyncio
import logging

from .tree import ScrollRegion

logger = logging.getLogger(__name__)


async def ensure_loaded(region: ScrollRegion | None, settle_delay: float) -> None:
    """Drive *region* to its end, let content settle, then scroll back.

    The original offset is restored even if the wait is cancelled. Without a
    region there is nothing to drive and the call only waits.
    """

    if region is None:
        logger.debug("No scrollable region; waiting %.2fs for content", settle_delay)
        await asyncio.sleep(settle_delay)
        return

    original = region.scroll_top
    logger.debug(
        "Forcing content load: %.1f -> %.1f, settling %.2fs",
        original,
        region.max_scroll_top,
        settle_delay,
    )
    region.scroll_to(region.max_scroll_top, behavior="instant")
    try:
        await asyncio.sleep(settle_delay)
    finally:
        region.scroll_to(original, behavior="instant")
