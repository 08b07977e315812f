"""Tunables and class-name conventions shared by the navigation components."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from .tree import Element

# Class names used by the bundled views for their mounted content.
ROOT_CLASS = "Viewer-Root"
CONTAINER_CLASS = "Viewer-Container"
VIEWPORT_CLASS = "Viewer-Viewport"
PAGE_CLASS = "Viewer-Page"
TEXT_CLASS = "Viewer-Text"

# Encapsulated sub-tree discovery: 100 ms interval, give up after ~5 s.
DISCOVERY_INTERVAL = 0.1
DISCOVERY_ATTEMPTS = 50

# Wait after forcing the viewport to its end before restoring it.
SETTLE_DELAY = 0.5

# Keep resolved targets this far below the viewport's top edge.
VISIBILITY_MARGIN = 20.0

DEFAULT_VIEWPORT_HEIGHT = 900.0
DEFAULT_PAGE_GAP = 16.0
DEFAULT_OVERSCAN = 1
DEFAULT_PAGE_CACHE = 8


@dataclass
class NavigatorConfig:
    """Settings for one mounted document view.

    Parameters
    ----------
    text_class :
        Class carried by elements that hold rendered text.
    container_class :
        Class of the host element whose encapsulated scope holds the content.
        ``None`` accepts any host with an attached scope.
    viewport_class :
        Class of the scrollable region, used when the view does not hand one
        out directly.
    policy :
        Name of the :class:`~tocnav.resolver.DisambiguationPolicy` applied when
        a tier yields several candidates.
    headings_only :
        Only consider section headings as link targets.
    rank_partial_matches :
        Rank partial-word candidates by shared-word count before applying
        ``policy``.
    """

    text_class: str = TEXT_CLASS
    container_class: str | None = CONTAINER_CLASS
    viewport_class: str = VIEWPORT_CLASS
    discovery_interval: float = DISCOVERY_INTERVAL
    discovery_attempts: int = DISCOVERY_ATTEMPTS
    settle_delay: float = SETTLE_DELAY
    margin: float = VISIBILITY_MARGIN
    policy: str = "second"
    headings_only: bool = False
    rank_partial_matches: bool = False

    def is_text(self, element: "Element") -> bool:
        return element.has_class(self.text_class)

    def is_container(self, element: "Element") -> bool:
        if self.container_class is None:
            return True
        return element.has_class(self.container_class)

    def is_viewport(self, element: "Element") -> bool:
        return element.has_class(self.viewport_class)
