"""Polling, path and download helpers."""

from __future__ import annotations

import asyncio
import json
import tempfile
from pathlib import Path
from typing import Any, Awaitable, Callable, TypeVar

import requests

T = TypeVar("T")


async def poll_until(
    probe: Callable[[], T | None],
    *,
    interval: float,
    max_attempts: int,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T | None:
    """Call *probe* until it returns something other than ``None``.

    The probe runs at most ``max_attempts`` times with ``interval`` seconds
    between attempts. Returns the first non-``None`` result, or ``None``
    once the attempts are used up.
    """

    attempts = max(1, int(max_attempts))
    for attempt in range(1, attempts + 1):
        result = probe()
        if result is not None:
            return result
        if attempt < attempts:
            await sleep(interval)
    return None


def ensure_file(path: str | Path) -> Path:
    """Return the resolved path if it exists, otherwise raise FileNotFoundError."""

    resolved = Path(path).expanduser().resolve()
    if not resolved.is_file():
        raise FileNotFoundError(f"File not found: {resolved}")
    return resolved


def dump_json(data: Any, path: str | Path) -> Path:
    """Write JSON to *path* (creating parent directories) and return it."""

    resolved = Path(path).expanduser().resolve()
    resolved.parent.mkdir(parents=True, exist_ok=True)
    with resolved.open("w", encoding="utf-8") as fp:
        json.dump(data, fp, ensure_ascii=False, indent=2)
    return resolved


def download_to_temp(
    url: str,
    *,
    prefix: str = "",
    suffix: str = "",
    chunk_size: int = 8192,
    timeout: int = 60,
) -> Path:
    """Stream *url* into a temporary file and return its path.

    Raises
    ------
    requests.RequestException
        On network errors or non-success status codes.
    """

    resp = requests.get(url, timeout=timeout, stream=True)
    try:
        resp.raise_for_status()
        with tempfile.NamedTemporaryFile(delete=False, prefix=prefix, suffix=suffix) as tmp:
            for chunk in resp.iter_content(chunk_size=chunk_size):
                if chunk:
                    tmp.write(chunk)
    finally:
        resp.close()
    return Path(tmp.name)
