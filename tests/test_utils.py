from __future__ import annotations

import asyncio
import json

import pytest

from tocnav import utils


def test_poll_until_returns_first_result_and_counts_attempts():
    calls: list[int] = []
    sleeps: list[float] = []

    def probe():
        calls.append(1)
        return "ready" if len(calls) == 3 else None

    async def fake_sleep(delay):
        sleeps.append(delay)

    result = asyncio.run(utils.poll_until(probe, interval=0.1, max_attempts=5, sleep=fake_sleep))
    assert result == "ready"
    assert len(calls) == 3
    assert sleeps == [0.1, 0.1]


def test_poll_until_gives_up_without_trailing_sleep():
    sleeps: list[float] = []

    async def fake_sleep(delay):
        sleeps.append(delay)

    result = asyncio.run(utils.poll_until(lambda: None, interval=0.1, max_attempts=4, sleep=fake_sleep))
    assert result is None
    assert len(sleeps) == 3


def test_download_to_temp(monkeypatch):
    chunks = [b"%PDF", b"", b"-1.4"]
    closed: list[bool] = []

    class FakeResponse:
        def raise_for_status(self):
            return None

        def iter_content(self, chunk_size=8192):
            assert chunk_size == 8192
            return iter(chunks)

        def close(self):
            closed.append(True)

    def fake_get(url, timeout=60, stream=False):
        assert url == "https://example.com/file.pdf"
        assert stream is True
        return FakeResponse()

    import requests

    monkeypatch.setattr(requests, "get", fake_get)

    path = utils.download_to_temp("https://example.com/file.pdf", prefix="t-", suffix=".pdf")
    try:
        assert path.name.startswith("t-") and path.suffix == ".pdf"
        assert path.read_bytes() == b"%PDF-1.4"
        assert closed == [True]
    finally:
        path.unlink()


def test_download_to_temp_closes_on_http_error(monkeypatch):
    import requests

    closed: list[bool] = []

    class FakeResponse:
        def raise_for_status(self):
            raise requests.HTTPError("404")

        def close(self):
            closed.append(True)

    monkeypatch.setattr(requests, "get", lambda url, timeout=60, stream=False: FakeResponse())

    with pytest.raises(requests.HTTPError):
        utils.download_to_temp("https://example.com/missing.pdf")
    assert closed == [True]


def test_dump_json_creates_parents(tmp_path):
    target = tmp_path / "nested" / "out.json"
    written = utils.dump_json({"label": "Résumé"}, target)
    assert written == target.resolve()
    assert json.loads(target.read_text(encoding="utf-8")) == {"label": "Résumé"}
    assert "Résumé" in target.read_text(encoding="utf-8")


def test_ensure_file(tmp_path):
    pdf = tmp_path / "doc.pdf"
    pdf.write_bytes(b"x")
    assert utils.ensure_file(pdf) == pdf.resolve()
    with pytest.raises(FileNotFoundError):
        utils.ensure_file(tmp_path / "missing.pdf")
