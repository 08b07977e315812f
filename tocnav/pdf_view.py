"""A virtualized document view backed by a PDF read with PyMuPDF.

Pages are laid out top to bottom. Only the pages intersecting the viewport
(plus ``overscan`` neighbours) are mounted; recently rendered pages stay
mounted in a small LRU until evicted. Content lives inside an encapsulated
scope under a container element, the way embedded viewer SDKs mount it, and
internal ``LINK_GOTO`` annotations become link activations whose label is
the text under the link rectangle.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable

from .config import (
    CONTAINER_CLASS,
    DEFAULT_OVERSCAN,
    DEFAULT_PAGE_CACHE,
    DEFAULT_PAGE_GAP,
    DEFAULT_VIEWPORT_HEIGHT,
    PAGE_CLASS,
    TEXT_CLASS,
    VIEWPORT_CLASS,
)
from .tree import Element, ScrollRegion
from .view import DocumentView, LinkActivation

logger = logging.getLogger(__name__)


@dataclass
class TextLine:
    text: str
    top: float
    height: float


@dataclass
class PageLayout:
    """Vertical placement of one page and its text lines (absolute offsets)."""

    index: int
    top: float
    height: float
    lines: list[TextLine] = field(default_factory=list)

    @property
    def bottom(self) -> float:
        return self.top + self.height


@dataclass
class LinkSpec:
    """An internal link annotation."""

    index: int
    page_index: int
    label: str
    target_page_index: int | None
    top: float


def _line_text(line: dict[str, Any]) -> str:
    return "".join(span.get("text", "") for span in line.get("spans", [])).strip()


def load_pdf_layout(
    pdf_path: str | Path,
    *,
    zoom: float = 1.0,
    page_gap: float = DEFAULT_PAGE_GAP,
) -> tuple[list[PageLayout], list[LinkSpec]]:
    """Read page geometry, text lines and internal links from *pdf_path*.

    Parameters
    ----------
    pdf_path :
        Path to the PDF file.
    zoom :
        Scale applied to PDF points.
    page_gap :
        Vertical gap between consecutive pages.

    Returns
    -------
    list[PageLayout], list[LinkSpec]
        Pages in document order and the ``LINK_GOTO`` links found on them.
    """
    try:
        import fitz  # type: ignore[import]
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("PyMuPDF (fitz) is required to open PDF documents") from exc

    resolved = Path(pdf_path).expanduser().resolve()
    pages: list[PageLayout] = []
    links: list[LinkSpec] = []
    top = 0.0
    with fitz.open(resolved) as doc:  # type: ignore[attr-defined]
        for index in range(doc.page_count):
            page = doc.load_page(index)
            layout = PageLayout(index=index, top=top, height=page.rect.height * zoom)

            for block in page.get_text("dict").get("blocks", []):
                if block.get("type", 0) != 0:
                    continue
                for line in block.get("lines", []):
                    text = _line_text(line)
                    if not text:
                        continue
                    _x0, y0, _x1, y1 = line["bbox"]
                    layout.lines.append(
                        TextLine(text=text, top=top + y0 * zoom, height=(y1 - y0) * zoom)
                    )

            for link in page.get_links():
                if link.get("kind") != fitz.LINK_GOTO:
                    continue
                rect = link["from"]
                label = " ".join(page.get_textbox(rect).split())
                target = link.get("page")
                links.append(
                    LinkSpec(
                        index=len(links),
                        page_index=index,
                        label=label,
                        target_page_index=int(target) if target is not None and target >= 0 else None,
                        top=top + rect.y0 * zoom,
                    )
                )

            pages.append(layout)
            top = layout.bottom + page_gap

    logger.debug("Loaded %d pages and %d internal links from %s", len(pages), len(links), resolved)
    return pages, links


class PdfDocumentView(DocumentView):
    """Virtualized view over laid-out PDF pages.

    Parameters
    ----------
    pages :
        Page layouts in document order.
    links :
        Internal links that :meth:`activate_link_at` can fire.
    viewport_height :
        Visible height of the scrollable region.
    overscan :
        Pages mounted beyond each edge of the viewport.
    page_cache :
        Maximum number of mounted pages, visible ones excluded from eviction.
    """

    def __init__(
        self,
        pages: Iterable[PageLayout],
        links: Iterable[LinkSpec] = (),
        *,
        viewport_height: float = DEFAULT_VIEWPORT_HEIGHT,
        overscan: int = DEFAULT_OVERSCAN,
        page_cache: int = DEFAULT_PAGE_CACHE,
    ) -> None:
        super().__init__()
        self.pages = list(pages)
        self.links = list(links)
        self.viewport_height = float(viewport_height)
        self.overscan = max(0, int(overscan))
        self.page_cache = max(1, int(page_cache))
        self.container: Element | None = None
        self._encapsulate = True
        self._mounted: OrderedDict[int, Element] = OrderedDict()
        self._remove_scroll_listener = None

    @classmethod
    def from_pdf(
        cls,
        pdf_path: str | Path,
        *,
        zoom: float = 1.0,
        page_gap: float = DEFAULT_PAGE_GAP,
        **kwargs: Any,
    ) -> "PdfDocumentView":
        pages, links = load_pdf_layout(pdf_path, zoom=zoom, page_gap=page_gap)
        return cls(pages, links, **kwargs)

    @property
    def total_height(self) -> float:
        return self.pages[-1].bottom if self.pages else 0.0

    @property
    def mounted_pages(self) -> list[int]:
        return sorted(self._mounted)

    def mount(self, *, encapsulate: bool = True, attach: bool = True) -> None:
        """Append the container under the root and, unless deferred, its content.

        With ``attach=False`` the content appears only once
        :meth:`attach_content` runs, as with SDKs that attach their
        encapsulated scope asynchronously.
        """

        if self.container is not None:
            raise RuntimeError("view is already mounted")
        self._encapsulate = encapsulate
        self.container = Element(classes=[CONTAINER_CLASS])
        self.root.append_child(self.container)
        if attach:
            self.attach_content()

    def attach_content(self) -> None:
        if self.container is None:
            raise RuntimeError("view is not mounted")
        if self.scrollable_region is not None:
            return
        scope = self.container.attach_shadow() if self._encapsulate else self.container
        region = ScrollRegion(
            classes=[VIEWPORT_CLASS],
            client_height=self.viewport_height,
            scroll_height=self.total_height,
        )
        scope.append_child(region)
        self.scrollable_region = region
        self._remove_scroll_listener = region.add_scroll_listener(self._sync_pages)
        self._sync_pages(region)

    def unmount(self) -> None:
        if self._remove_scroll_listener is not None:
            self._remove_scroll_listener()
            self._remove_scroll_listener = None
        if self.container is not None:
            self.root.remove_child(self.container)
        self.container = None
        self.scrollable_region = None
        self._mounted.clear()

    def visible_pages(self) -> list[int]:
        region = self.scrollable_region
        if region is None or not self.pages:
            return []
        top = region.scroll_top
        bottom = top + region.client_height
        hits = [page.index for page in self.pages if page.top < bottom and page.bottom > top]
        if not hits:
            return []
        first = max(0, hits[0] - self.overscan)
        last = min(len(self.pages) - 1, hits[-1] + self.overscan)
        return list(range(first, last + 1))

    def _sync_pages(self, _region: ScrollRegion | None = None) -> None:
        wanted = self.visible_pages()
        for index in wanted:
            self._mount_page(index)
        limit = max(self.page_cache, len(wanted))
        for index in list(self._mounted):
            if len(self._mounted) <= limit:
                break
            if index not in wanted:
                self._unmount_page(index)

    def _mount_page(self, index: int) -> None:
        if index in self._mounted:
            self._mounted.move_to_end(index)
            return
        region = self.scrollable_region
        if region is None:
            return
        layout = self.pages[index]
        page = Element(
            "section",
            classes=[PAGE_CLASS],
            top=layout.top,
            height=layout.height,
            data={"page_index": index},
        )
        for line in layout.lines:
            page.append_child(
                Element("span", classes=[TEXT_CLASS], text=line.text, top=line.top, height=line.height)
            )
        # Children first so the page arrives as a single mutation.
        region.append_child(page)
        self._mounted[index] = page

    def _unmount_page(self, index: int) -> None:
        page = self._mounted.pop(index)
        if page.parent is not None:
            page.parent.remove_child(page)

    def mount_all(self) -> None:
        """Mount every page and keep them mounted."""

        self.page_cache = max(self.page_cache, len(self.pages))
        for index in range(len(self.pages)):
            self._mount_page(index)

    def activate_link_at(self, index: int) -> LinkActivation:
        """Activate the internal link with the given index."""

        spec = self.links[index]
        return self.activate_link(spec.label, spec.page_index, spec.target_page_index)

    def handle_link_default(self, event: LinkActivation) -> None:
        region = self.scrollable_region
        target = event.target_page_index
        if region is None or target is None or not 0 <= target < len(self.pages):
            return
        region.scroll_to(self.pages[target].top, behavior="smooth")
