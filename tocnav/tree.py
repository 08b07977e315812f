"""A small live element tree standing in for rendered document content.

Document views mount their content into this tree and the navigation core
reads it back. The model keeps only what navigation relies on:

* elements with text, classes and a vertical offset inside their scroll
  region,
* encapsulated scopes (:class:`ShadowRoot`) that ordinary traversal from the
  host does not enter,
* mutation observers notified synchronously on child-list changes,
* scrollable regions that clamp their offset and notify scroll listeners.

Geometry is deliberately one-dimensional: ``offset_top`` is an element's
position in its scroll region's content and ``bounding_top`` its position in
the viewport.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Iterator

Predicate = Callable[["Element"], bool]
MutationCallback = Callable[[list["MutationRecord"], "MutationObserver"], None]
ScrollListener = Callable[["ScrollRegion"], None]


@dataclass
class MutationRecord:
    """One child-list change on *target*."""

    target: "Node"
    added_nodes: list["Element"] = field(default_factory=list)
    removed_nodes: list["Element"] = field(default_factory=list)


class MutationObserver:
    """Deliver child-list mutations of observed nodes to a callback."""

    def __init__(self, callback: MutationCallback) -> None:
        self._callback = callback
        self._targets: list[Node] = []

    def observe(self, target: "Node", *, child_list: bool = True, subtree: bool = False) -> None:
        if not child_list:
            raise ValueError("only child-list observation is supported")
        target._observers.append((self, subtree))
        self._targets.append(target)

    def disconnect(self) -> None:
        for target in self._targets:
            target._observers = [
                (observer, subtree)
                for observer, subtree in target._observers
                if observer is not self
            ]
        self._targets.clear()

    @property
    def active(self) -> bool:
        return bool(self._targets)

    def _deliver(self, record: MutationRecord) -> None:
        self._callback([record], self)


class Node:
    """Common child-list behaviour of elements and encapsulated scopes."""

    def __init__(self) -> None:
        self.parent: Node | None = None
        self.children: list[Element] = []
        self._observers: list[tuple[MutationObserver, bool]] = []

    def append_child(self, child: "Element") -> "Element":
        if child.parent is not None:
            child.parent.remove_child(child)
        child.parent = self
        self.children.append(child)
        self._notify(MutationRecord(target=self, added_nodes=[child]))
        return child

    def remove_child(self, child: "Element") -> "Element":
        self.children.remove(child)
        child.parent = None
        self._notify(MutationRecord(target=self, removed_nodes=[child]))
        return child

    def clear_children(self) -> None:
        for child in list(self.children):
            self.remove_child(child)

    def _notify(self, record: MutationRecord) -> None:
        # Walk up to the scope boundary; shadow roots have no parent.
        node: Node | None = self
        direct = True
        while node is not None:
            for observer, subtree in list(node._observers):
                if direct or subtree:
                    observer._deliver(record)
            direct = False
            node = node.parent

    def iter_descendants(self) -> Iterator["Element"]:
        """Yield descendants in document order without entering shadow scopes."""

        stack = list(reversed(self.children))
        while stack:
            element = stack.pop()
            yield element
            stack.extend(reversed(element.children))

    def query_all(self, predicate: Predicate) -> list["Element"]:
        return [element for element in self.iter_descendants() if predicate(element)]

    def query(self, predicate: Predicate) -> "Element | None":
        for element in self.iter_descendants():
            if predicate(element):
                return element
        return None

    @property
    def text_content(self) -> str:
        return "".join(child.text_content for child in self.children)

    def contains(self, other: "Node") -> bool:
        """Return ``True`` if *other* is this node or lies below it in the same scope."""

        node: Node | None = other
        while node is not None:
            if node is self:
                return True
            node = node.parent
        return False


class Element(Node):
    """A rendered element.

    Parameters
    ----------
    tag :
        Informational tag name.
    classes :
        Class names, matched with :meth:`has_class`.
    text :
        The element's own text; :attr:`text_content` appends the children's.
    top :
        Vertical offset inside the content of the enclosing scroll region.
    height :
        Rendered height.
    data :
        Free-form attributes set by the view (for example a page index).
    """

    def __init__(
        self,
        tag: str = "div",
        *,
        classes: Iterable[str] = (),
        text: str = "",
        top: float = 0.0,
        height: float = 0.0,
        data: dict[str, Any] | None = None,
    ) -> None:
        super().__init__()
        self.tag = tag
        self.classes = set(classes)
        self.text = text
        self.offset_top = float(top)
        self.height = float(height)
        self.data: dict[str, Any] = dict(data or {})
        self.shadow_root: ShadowRoot | None = None

    def __repr__(self) -> str:
        classes = " ".join(sorted(self.classes))
        return f"<{self.tag} class={classes!r} top={self.offset_top:g} text={self.text[:30]!r}>"

    def has_class(self, name: str) -> bool:
        return name in self.classes

    @property
    def text_content(self) -> str:
        return self.text + super().text_content

    def attach_shadow(self) -> "ShadowRoot":
        if self.shadow_root is not None:
            raise RuntimeError("element already hosts a shadow root")
        self.shadow_root = ShadowRoot(self)
        return self.shadow_root

    def composed_parent(self) -> "Node | None":
        """Return the parent, stepping from a shadow root out to its host."""

        if isinstance(self.parent, ShadowRoot):
            return self.parent.host
        return self.parent

    def closest(self, predicate: Predicate) -> "Element | None":
        """Return the nearest inclusive ancestor matching *predicate* in this scope."""

        node: Node | None = self
        while isinstance(node, Element):
            if predicate(node):
                return node
            node = node.parent
        return None

    def scroll_container(self) -> "ScrollRegion | None":
        node = self.composed_parent()
        while node is not None:
            if isinstance(node, ScrollRegion):
                return node
            if isinstance(node, Element):
                node = node.composed_parent()
            elif isinstance(node, ShadowRoot):
                node = node.host
            else:
                node = node.parent
        return None

    @property
    def bounding_top(self) -> float:
        region = self.scroll_container()
        if region is None:
            return self.offset_top
        return region.bounding_top + self.offset_top - region.scroll_top

    def scroll_into_view(self, *, behavior: str = "auto", block: str = "start") -> None:
        region = self.scroll_container()
        if region is None:
            return
        if block == "start":
            target = self.offset_top
        elif block == "end":
            target = self.offset_top + self.height - region.client_height
        else:
            target = self.offset_top + self.height / 2 - region.client_height / 2
        region.scroll_to(target, behavior=behavior)


class ShadowRoot(Node):
    """Encapsulated scope hosted by an element.

    Its children are not reachable through the host's traversal and its
    mutations are not reported to observers outside the scope.
    """

    def __init__(self, host: Element) -> None:
        super().__init__()
        self.host = host

    def __repr__(self) -> str:
        return f"<shadow-root host={self.host!r}>"


class ScrollRegion(Element):
    """An element with its own scroll offset.

    Parameters
    ----------
    viewport_top :
        Position of the region's top edge in the viewport.
    client_height :
        Visible height of the region.
    scroll_height :
        Total height of the scrollable content.
    """

    def __init__(
        self,
        tag: str = "div",
        *,
        classes: Iterable[str] = (),
        viewport_top: float = 0.0,
        client_height: float = 0.0,
        scroll_height: float = 0.0,
        data: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(tag, classes=classes, height=client_height, data=data)
        self.viewport_top = float(viewport_top)
        self.client_height = float(client_height)
        self.scroll_height = float(scroll_height)
        self.scroll_top = 0.0
        self.last_behavior: str | None = None
        self._scroll_listeners: list[ScrollListener] = []

    @property
    def bounding_top(self) -> float:
        return self.viewport_top

    @property
    def max_scroll_top(self) -> float:
        return max(0.0, self.scroll_height - self.client_height)

    def scroll_to(self, top: float, *, behavior: str = "auto") -> None:
        """Move the offset to *top*, clamped to the scrollable range."""

        clamped = min(max(0.0, float(top)), self.max_scroll_top)
        self.last_behavior = behavior
        if clamped == self.scroll_top:
            return
        self.scroll_top = clamped
        for listener in list(self._scroll_listeners):
            listener(self)

    def add_scroll_listener(self, listener: ScrollListener) -> Callable[[], None]:
        self._scroll_listeners.append(listener)

        def _remove() -> None:
            if listener in self._scroll_listeners:
                self._scroll_listeners.remove(listener)

        return _remove
