"""Read-through view over the text currently mounted by a document view.

The rendering collaborator may place its content under the nominal root
directly or inside one or more encapsulated scopes that attach some time
after the host element appears. :class:`ContentIndex` polls for such a
scope with a bounded retry and falls back to the nominal root when none
shows up, so queries work with either strategy.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from .config import NavigatorConfig
from .errors import SubTreeUnavailable
from .tree import Element, MutationObserver, MutationRecord, Node, Predicate, ShadowRoot
from .utils import poll_until
from .view import DocumentView

logger = logging.getLogger(__name__)


class Subscription:
    """Stream of added elements matching a predicate, in occurrence order.

    Iterate with ``async for``; iteration ends once :meth:`close` is called.
    Mutations arriving after close are ignored.
    """

    def __init__(self, predicate: Predicate, on_close: Callable[["Subscription"], None] | None = None) -> None:
        self._predicate = predicate
        self._on_close = on_close
        self._queue: asyncio.Queue[Element | None] = asyncio.Queue()
        self._observer = MutationObserver(self._on_mutations)
        self.released = False

    def _attach(self, scope: Node) -> None:
        self._observer.observe(scope, child_list=True, subtree=True)

    def _on_mutations(self, records: list[MutationRecord], _observer: MutationObserver) -> None:
        if self.released:
            return
        for record in records:
            for added in record.added_nodes:
                if self._predicate(added):
                    self._queue.put_nowait(added)
                for element in added.iter_descendants():
                    if self._predicate(element):
                        self._queue.put_nowait(element)

    async def get(self) -> Element | None:
        """Wait for the next matching element; ``None`` once closed."""

        if self.released and self._queue.empty():
            return None
        item = await self._queue.get()
        if item is None:
            # Leave the sentinel for any other reader.
            self._queue.put_nowait(None)
        return item

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> Element:
        item = await self.get()
        if item is None:
            raise StopAsyncIteration
        return item

    def close(self) -> None:
        if self.released:
            return
        self.released = True
        self._observer.disconnect()
        self._queue.put_nowait(None)
        if self._on_close is not None:
            self._on_close(self)


class ContentIndex:
    """Query and observe the rendered content of one document view."""

    def __init__(self, view: DocumentView, config: NavigatorConfig | None = None) -> None:
        self.config = config or NavigatorConfig()
        self._root = view.get_root_element()
        self._scope: Node | None = None
        self._host: Element | None = None
        self._discovered = False
        self._subscription: Subscription | None = None
        self._root_observer = MutationObserver(self._on_root_mutations)
        self._root_observer.observe(self._root, child_list=True, subtree=True)

    @property
    def root(self) -> Element:
        return self._root

    @property
    def scope(self) -> Node:
        """The node queries run against: the discovered scope or the nominal root."""

        return self._scope if self._scope is not None else self._root

    @property
    def encapsulated(self) -> bool:
        return isinstance(self._scope, ShadowRoot)

    @property
    def needs_discovery(self) -> bool:
        return not self._discovered

    def _find_encapsulated_scope(self) -> tuple[Element, ShadowRoot] | None:
        """Return ``(outermost host, innermost scope)`` when a scope is attached."""

        found: tuple[Element, ShadowRoot] | None = None
        search: Node = self._root
        while True:
            host = search.query(
                lambda el: el.shadow_root is not None and self.config.is_container(el)
            )
            if host is None or host.shadow_root is None:
                return found
            outer = found[0] if found is not None else host
            found = (outer, host.shadow_root)
            search = host.shadow_root

    async def _wait_for_scope(self) -> tuple[Element, ShadowRoot]:
        found = await poll_until(
            self._find_encapsulated_scope,
            interval=self.config.discovery_interval,
            max_attempts=self.config.discovery_attempts,
        )
        if found is None:
            raise SubTreeUnavailable(self.config.discovery_attempts)
        return found

    async def discover(self) -> Node:
        """Locate the content scope, falling back to the nominal root.

        Returns the node subsequent queries and subscriptions use.
        """

        scope: Node
        try:
            self._host, scope = await self._wait_for_scope()
            logger.debug("Encapsulated content scope attached under %r", self._host)
        except SubTreeUnavailable as exc:
            logger.warning("%s; querying the nominal root instead", exc)
            scope = self._root
            self._host = None
        self._scope = scope
        self._discovered = True
        if self._subscription is not None and not self._subscription.released:
            self._subscription._observer.disconnect()
            self._subscription._attach(scope)
        return scope

    def _on_root_mutations(self, records: list[MutationRecord], _observer: MutationObserver) -> None:
        host = self._host
        if host is None:
            return
        for record in records:
            if any(removed.contains(host) for removed in record.removed_nodes):
                logger.info("Content host %r was unmounted; scope will be rediscovered", host)
                self._scope = None
                self._host = None
                self._discovered = False
                return

    def query_all(self, predicate: Predicate) -> list[Element]:
        """Return a snapshot of the currently mounted elements matching *predicate*."""

        return self.scope.query_all(predicate)

    def query(self, predicate: Predicate) -> Element | None:
        return self.scope.query(predicate)

    def text_nodes(self) -> list[Element]:
        return self.query_all(self.config.is_text)

    def subscribe(self, predicate: Predicate) -> Subscription:
        """Open the index's single subscription to added elements."""

        if self._subscription is not None and not self._subscription.released:
            raise RuntimeError("content index already has an active subscription")
        subscription = Subscription(predicate, on_close=self._release)
        subscription._attach(self.scope)
        self._subscription = subscription
        return subscription

    def _release(self, subscription: Subscription) -> None:
        if self._subscription is subscription:
            self._subscription = None

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.close()
        self._root_observer.disconnect()
