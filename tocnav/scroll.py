"""Bring a resolved node into view."""

from __future__ import annotations

import logging
import math

from .config import VISIBILITY_MARGIN
from .errors import ScrollTargetUnreachable
from .tree import Element, ScrollRegion

logger = logging.getLogger(__name__)


def target_offset(node: Element, region: ScrollRegion, margin: float = VISIBILITY_MARGIN) -> float:
    """Return the region offset that puts *node* ``margin`` below its top edge.

    Raises
    ------
    ScrollTargetUnreachable
        When the region has no visible height or its geometry is not finite.
    """

    if region.client_height <= 0:
        raise ScrollTargetUnreachable("scrollable region has no visible height")
    offset = region.scroll_top + (node.bounding_top - region.viewport_top) - margin
    if not math.isfinite(offset):
        raise ScrollTargetUnreachable(f"non-finite scroll target {offset!r}")
    return offset


def scroll_to(node: Element, region: ScrollRegion | None, margin: float = VISIBILITY_MARGIN) -> None:
    """Scroll so *node* is visible; never raises.

    Prefers animating the document's own scrollable region and falls back to
    asking the node to scroll itself into view.
    """

    if region is not None:
        try:
            region.scroll_to(target_offset(node, region, margin), behavior="smooth")
            return
        except ScrollTargetUnreachable as exc:
            logger.debug("Falling back to scroll_into_view: %s", exc)
        except Exception as exc:
            logger.debug("Scrollable region rejected the target: %s", exc)

    try:
        node.scroll_into_view(behavior="smooth", block="start")
    except Exception as exc:
        # Best-effort only.
        logger.debug("scroll_into_view failed for %r: %s", node, exc)
