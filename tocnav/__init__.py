"""toc-nav package."""

__all__ = [
    "cli",
    "config",
    "content_index",
    "errors",
    "headings",
    "loader",
    "navigator",
    "normalizer",
    "pdf_view",
    "report",
    "resolver",
    "scroll",
    "tree",
    "utils",
    "view",
]

import re
from importlib import metadata as _md
from pathlib import Path

_PYPROJECT_VERSION = re.compile(r'(?m)^version\s*=\s*"([^"]+)"')


def _checkout_version() -> str:
    """Version declared in pyproject.toml next to the package, if readable."""

    pyproject = Path(__file__).resolve().parent.parent / "pyproject.toml"
    try:
        match = _PYPROJECT_VERSION.search(pyproject.read_text(encoding="utf-8"))
    except OSError:
        return "0.0.0"
    return match.group(1) if match else "0.0.0"


try:
    __version__ = _md.version("toc-nav")
except _md.PackageNotFoundError:  # pragma: no cover - source checkout
    __version__ = _checkout_version()
