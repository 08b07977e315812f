"""Navigation requests and the per-view context that owns them.

A :class:`NavigationContext` is created for one mounted document view and
disposed when the view goes away. It owns the content index, the index's
single subscription (consumed by a feed task) and the listeners that turn
link activations into navigation requests.

One request walks this state machine::

    IDLE -> NORMALIZING -> RESOLVING -> FOUND -> SCROLLING -> IDLE
                                    \\-> NOT_FOUND -> LOADING -> RESOLVING
                                           -> FOUND -> SCROLLING -> IDLE
                                           -> NOT_FOUND -> FAILED

Requests are neither queued nor coalesced; each activation starts its own.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from .config import NavigatorConfig
from .content_index import ContentIndex, Subscription
from .errors import NoMatchFound
from .headings import HeadingLocator
from .loader import ensure_loaded
from .normalizer import normalize_label
from .report import show_notice
from .resolver import CandidateResolver, MatchKind
from .scroll import scroll_to
from .tree import Element, ScrollRegion
from .view import DocumentView, LinkActivation

logger = logging.getLogger(__name__)


class NavigationState(Enum):
    IDLE = "idle"
    NORMALIZING = "normalizing"
    RESOLVING = "resolving"
    FOUND = "found"
    NOT_FOUND = "not_found"
    LOADING = "loading"
    SCROLLING = "scrolling"
    FAILED = "failed"


@dataclass
class NavigationResult:
    """Outcome of one navigation request."""

    raw_label: str
    label: str = ""
    transitions: list[tuple[NavigationState, float]] = field(default_factory=list)
    node: Element | None = None
    match_kind: MatchKind | None = None
    target_text: str | None = None
    target_top: float | None = None
    target_page: int | None = None
    section: str | None = None
    retried: bool = False
    aborted: bool = False

    def advance(self, state: NavigationState) -> None:
        self.transitions.append((state, time.perf_counter()))

    @property
    def states(self) -> list[NavigationState]:
        return [state for state, _ in self.transitions]

    @property
    def state(self) -> NavigationState:
        return self.transitions[-1][0] if self.transitions else NavigationState.IDLE

    @property
    def succeeded(self) -> bool:
        return self.state is NavigationState.IDLE and self.node is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "raw_label": self.raw_label,
            "label": self.label,
            "succeeded": self.succeeded,
            "states": [state.value for state in self.states],
            "match_kind": self.match_kind.value if self.match_kind else None,
            "target_text": self.target_text,
            "target_top": self.target_top,
            "target_page": self.target_page,
            "section": self.section,
            "retried": self.retried,
            "aborted": self.aborted,
        }


class Navigator:
    """Run navigation requests for a :class:`NavigationContext`."""

    def __init__(
        self,
        context: "NavigationContext",
        *,
        notice: Callable[[str], None] = show_notice,
    ) -> None:
        config = context.config
        self._context = context
        self._notice = notice
        self.resolver = CandidateResolver(
            context.index,
            policy=config.policy,
            headings_only=config.headings_only,
            rank_partial_matches=config.rank_partial_matches,
        )

    async def navigate(self, raw_label: str) -> NavigationResult:
        """Resolve *raw_label* and scroll to it. Never raises."""

        context = self._context
        result = NavigationResult(raw_label=raw_label)
        result.advance(NavigationState.IDLE)
        if not context.live:
            result.aborted = True
            result.advance(NavigationState.FAILED)
            return result

        result.advance(NavigationState.NORMALIZING)
        result.label = normalize_label(raw_label)
        logger.info("TOC link activated: %r -> %r", raw_label, result.label)

        result.advance(NavigationState.RESOLVING)
        if context.index.needs_discovery:
            await context.index.discover()
        candidate = self.resolver.resolve_candidate(result.label)

        if candidate is None and result.label:
            result.advance(NavigationState.NOT_FOUND)
            result.advance(NavigationState.LOADING)
            await context.load_content()
            if not context.live:
                logger.debug("View disposed while loading content for %r", result.label)
                result.aborted = True
                result.advance(NavigationState.FAILED)
                return result
            result.retried = True
            result.advance(NavigationState.RESOLVING)
            candidate = self.resolver.resolve_candidate(result.label)

        if candidate is None:
            result.advance(NavigationState.NOT_FOUND)
            result.advance(NavigationState.FAILED)
            error = NoMatchFound(result.label or raw_label.strip())
            logger.info("%s", error)
            self._notice(str(error))
            return result

        node = candidate.node
        result.advance(NavigationState.FOUND)
        result.node = node
        result.match_kind = candidate.match_kind
        result.target_text = node.text_content.strip()
        result.target_top = candidate.top
        result.target_page = page_index_of(node)
        result.section = context.locator.section_for(node)

        result.advance(NavigationState.SCROLLING)
        scroll_to(node, context.scrollable_region, context.config.margin)
        logger.info("Navigated to %r (%s match)", result.target_text, candidate.match_kind.value)
        result.advance(NavigationState.IDLE)
        return result


def page_index_of(node: Element) -> int | None:
    page = node.closest(lambda el: "page_index" in el.data)
    return page.data["page_index"] if page is not None else None


class NavigationContext:
    """Per-view state with an explicit ``create``/``dispose`` lifecycle.

    Parameters
    ----------
    view :
        The mounted document view.
    config :
        Navigation settings; defaults to :class:`NavigatorConfig`.
    on_nodes_added :
        Called by the feed task for every text element the view mounts.
    notice :
        Receives the user-visible message of a failed navigation.
    """

    def __init__(
        self,
        view: DocumentView,
        config: NavigatorConfig | None = None,
        *,
        on_nodes_added: Callable[[Element], None] | None = None,
        notice: Callable[[str], None] = show_notice,
    ) -> None:
        self.view = view
        self.config = config or NavigatorConfig()
        self.index = ContentIndex(view, self.config)
        self.locator = HeadingLocator(self.index)
        self.navigator = Navigator(self, notice=notice)
        self.current_section: str | None = None
        self.mounted_text_nodes = 0
        self.live = False
        self._on_nodes_added = on_nodes_added
        self._subscription: Subscription | None = None
        self._feed_task: asyncio.Task[None] | None = None
        self._unlisten: list[Callable[[], None]] = []
        self._pending: set[asyncio.Task[NavigationResult]] = set()
        self._loading: asyncio.Task[None] | None = None

    @classmethod
    async def create(cls, view: DocumentView, config: NavigatorConfig | None = None, **kwargs: Any) -> "NavigationContext":
        context = cls(view, config, **kwargs)
        await context.index.discover()
        context._subscription = context.index.subscribe(context.config.is_text)
        context._feed_task = asyncio.create_task(context._consume_feed(context._subscription))
        context._unlisten = [
            view.add_link_listener(context._on_link),
            view.add_click_listener(context._on_click),
        ]
        context.live = True
        return context

    async def dispose(self) -> None:
        if not self.live:
            return
        self.live = False
        for unlisten in self._unlisten:
            unlisten()
        self._unlisten.clear()
        if self._subscription is not None:
            self._subscription.close()
        self.index.close()
        if self._feed_task is not None:
            await self._feed_task
            self._feed_task = None

    @property
    def scrollable_region(self) -> ScrollRegion | None:
        region = self.view.get_scrollable_region()
        if region is not None:
            return region
        found = self.index.query(self.config.is_viewport)
        return found if isinstance(found, ScrollRegion) else None

    async def _consume_feed(self, subscription: Subscription) -> None:
        async for element in subscription:
            self.mounted_text_nodes += 1
            if self._on_nodes_added is not None:
                self._on_nodes_added(element)
        logger.debug("Content feed closed after %d text nodes", self.mounted_text_nodes)

    async def navigate(self, label: str) -> NavigationResult:
        return await self.navigator.navigate(label)

    async def load_content(self) -> None:
        """Run a loading pass over the scrollable region.

        Requests arriving while a pass is in flight wait for that pass instead
        of starting their own, so only the first one records and restores the
        scroll offset.
        """

        task = self._loading
        if task is None or task.done():
            task = asyncio.get_running_loop().create_task(
                ensure_loaded(self.scrollable_region, self.config.settle_delay)
            )
            self._loading = task
        else:
            logger.debug("Joining the loading pass already in flight")
        await asyncio.shield(task)

    def _on_link(self, event: LinkActivation) -> None:
        if not self.live:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop; leaving link %r to the view", event.label)
            return
        event.prevent_default()
        task = loop.create_task(self.navigator.navigate(event.label))
        self._pending.add(task)
        task.add_done_callback(self._finish_link_task)

    def _finish_link_task(self, task: asyncio.Task[NavigationResult]) -> None:
        self._pending.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Navigation task failed", exc_info=task.exception())

    async def drain(self) -> list[NavigationResult]:
        """Wait for navigations started by link activations."""

        pending = list(self._pending)
        if not pending:
            return []
        return list(await asyncio.gather(*pending))

    def _on_click(self, element: Element) -> None:
        if not self.live:
            return
        text_node = element.closest(self.config.is_text) or element
        self.current_section = self.locator.section_for(text_node)
        if self.current_section:
            logger.info("Clicked in section: %s", self.current_section)
        else:
            logger.info("Could not determine section for click")
