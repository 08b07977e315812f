from __future__ import annotations

import sys
from pathlib import Path
from types import ModuleType, SimpleNamespace
from typing import Any, Iterable

import pytest

from tocnav.config import CONTAINER_CLASS, TEXT_CLASS, VIEWPORT_CLASS, NavigatorConfig
from tocnav.tree import Element, ScrollRegion
from tocnav.view import DocumentView


def _build_view(
    texts: Iterable[tuple[str, float]] = (),
    *,
    encapsulate: bool = True,
    client_height: float = 600.0,
    scroll_height: float = 2000.0,
    expose_region: bool = True,
) -> tuple[DocumentView, ScrollRegion]:
    """Return a mounted view whose region holds one text span per ``(text, top)``."""

    view = DocumentView()
    container = view.root.append_child(Element(classes=[CONTAINER_CLASS]))
    scope = container.attach_shadow() if encapsulate else container
    region = ScrollRegion(
        classes=[VIEWPORT_CLASS],
        client_height=client_height,
        scroll_height=scroll_height,
    )
    scope.append_child(region)
    for text, top in texts:
        region.append_child(Element("span", classes=[TEXT_CLASS], text=text, top=top))
    if expose_region:
        view.scrollable_region = region
    return view, region


@pytest.fixture
def make_view():
    return _build_view


@pytest.fixture
def fast_config() -> NavigatorConfig:
    return NavigatorConfig(discovery_interval=0.001, discovery_attempts=5, settle_delay=0.01)


# Three 800pt pages: a contents page with two links, then one section each.
FAKE_PAGES: list[dict[str, Any]] = [
    {
        "lines": [("Contents", 40.0), ("Introduction .......... 2", 80.0), ("Background .......... 3", 100.0)],
        "links": [(80.0, 1), (100.0, 2)],
    },
    {"lines": [("1. Introduction", 40.0), ("Some intro text", 80.0)], "links": []},
    {"lines": [("2. Background", 40.0), ("History goes here", 80.0)], "links": []},
]


def _install_fake_fitz(pages: list[dict[str, Any]]) -> ModuleType:
    fake_mod = ModuleType("fitz")
    fake_mod.LINK_GOTO = 1  # type: ignore[attr-defined]

    class _FakePage:
        def __init__(self, spec: dict[str, Any]) -> None:
            self.rect = SimpleNamespace(width=600.0, height=800.0)
            self._lines = spec["lines"]
            self._links = spec["links"]

        def get_text(self, kind: str) -> dict[str, Any]:
            assert kind == "dict"
            lines = [
                {"bbox": (50.0, y, 400.0, y + 12.0), "spans": [{"text": text}]}
                for text, y in self._lines
            ]
            return {"blocks": [{"type": 0, "lines": lines}, {"type": 1}]}

        def get_links(self) -> list[dict[str, Any]]:
            links = [
                {"kind": 1, "from": SimpleNamespace(y0=y), "page": target}
                for y, target in self._links
            ]
            # External links are ignored.
            links.append({"kind": 2, "from": SimpleNamespace(y0=0.0), "uri": "https://example.com"})
            return links

        def get_textbox(self, rect: Any) -> str:
            return next(text for text, y in self._lines if y == rect.y0)

    class _FakeDoc:
        def __init__(self) -> None:
            self.page_count = len(pages)

        def __enter__(self) -> "_FakeDoc":
            return self

        def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
            return None

        def load_page(self, index: int) -> _FakePage:
            return _FakePage(pages[index])

    def _open(_path: Path) -> _FakeDoc:
        return _FakeDoc()

    fake_mod.open = _open  # type: ignore[attr-defined]
    return fake_mod


@pytest.fixture
def fake_pdf(monkeypatch, tmp_path) -> Path:
    """Install a fake ``fitz`` module and return a PDF path it will serve."""

    monkeypatch.setitem(sys.modules, "fitz", _install_fake_fitz(FAKE_PAGES))
    pdf = tmp_path / "doc.pdf"
    pdf.write_bytes(b"%PDF-1.4\n%...mock...")
    return pdf
