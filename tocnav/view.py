"""Boundary with the document-rendering collaborator."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from .config import ROOT_CLASS
from .tree import Element, ScrollRegion

logger = logging.getLogger(__name__)

LinkListener = Callable[["LinkActivation"], None]
ClickListener = Callable[[Element], None]


@dataclass
class LinkActivation:
    """A user activation of an internal link.

    Listeners call :meth:`prevent_default` to stop the view from running its
    own handling after dispatch.
    """

    label: str
    origin_page_index: int
    target_page_index: int | None = None
    default_prevented: bool = False

    def prevent_default(self) -> None:
        self.default_prevented = True


class DocumentView:
    """A mounted document as seen by the navigation core.

    Parameters
    ----------
    root :
        Nominal mount point. A bare root element is created when omitted.
    scrollable_region :
        The document's own scrollable region, when the view exposes one.
    """

    def __init__(
        self,
        root: Element | None = None,
        scrollable_region: ScrollRegion | None = None,
    ) -> None:
        self.root = root if root is not None else Element(classes=[ROOT_CLASS])
        self.scrollable_region = scrollable_region
        self._link_listeners: list[LinkListener] = []
        self._click_listeners: list[ClickListener] = []

    def get_root_element(self) -> Element:
        return self.root

    def get_scrollable_region(self) -> ScrollRegion | None:
        return self.scrollable_region

    def add_link_listener(self, listener: LinkListener) -> Callable[[], None]:
        self._link_listeners.append(listener)
        return lambda: _discard(self._link_listeners, listener)

    def add_click_listener(self, listener: ClickListener) -> Callable[[], None]:
        self._click_listeners.append(listener)
        return lambda: _discard(self._click_listeners, listener)

    def activate_link(
        self,
        label: str,
        origin_page_index: int = 0,
        target_page_index: int | None = None,
    ) -> LinkActivation:
        """Dispatch a link activation and run default handling unless suppressed."""

        event = LinkActivation(
            label=label,
            origin_page_index=origin_page_index,
            target_page_index=target_page_index,
        )
        for listener in list(self._link_listeners):
            listener(event)
        if not event.default_prevented:
            self.handle_link_default(event)
        return event

    def handle_link_default(self, event: LinkActivation) -> None:
        logger.debug("No default link handling for %r", event.label)

    def click(self, element: Element) -> None:
        for listener in list(self._click_listeners):
            listener(element)


def _discard(listeners: list, listener: object) -> None:
    if listener in listeners:
        listeners.remove(listener)
