"""Shared fixtures for reqview tests."""

import json

import pytest
from click.testing import CliRunner

from reqview import core
from reqview.core import load_config
from reqview.models import RawResult
from reqview.surface import SurfaceHost


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def global_reqview_dir(tmp_path, monkeypatch):
    """Override the global ~/.reqview directory to a temp location."""
    fake_global = tmp_path / "fake_home" / ".reqview"
    fake_global.mkdir(parents=True)
    monkeypatch.setattr(core, "GLOBAL_DIR", fake_global)
    monkeypatch.setattr(core, "GLOBAL_CONFIG", fake_global / "config.yaml")
    return fake_global


@pytest.fixture(autouse=True)
def isolate_history(tmp_path, monkeypatch):
    """Prevent tests from polluting ~/.reqview_history.json."""
    from reqview import cli

    monkeypatch.setattr(cli, "HISTORY_FILE", tmp_path / "test_history.json")


@pytest.fixture
def host():
    return SurfaceHost()


@pytest.fixture
def config():
    return load_config(None)


JSON_HEADERS = [
    "HTTP/1.1 200 OK",
    "Content-Type: application/json; charset=utf-8",
    "Content-Length: 16",
    "",
]


def make_raw_result(
    exit=0,
    status=200,
    headers=None,
    body=None,
):
    """Factory for RawResult objects. Dict/list bodies are JSON-encoded."""
    if isinstance(body, dict | list):
        body = json.dumps(body)
    if isinstance(body, str):
        body = body.encode("utf-8")
    return RawResult(
        exit=exit,
        headers=list(JSON_HEADERS) if headers is None else headers,
        status=status,
        body=body or b"",
    )


class FakeTransport:
    """Stands in for CurlTransport; records argv and returns a canned result."""

    def __init__(self, result=None, error=None):
        self.result = result if result is not None else make_raw_result(body={"ok": True})
        self.error = error
        self.calls = []
        self.bodies = []

    def new_headers_path(self):
        return "/tmp/reqview-test.headers"

    def write_body(self, data):
        self.bodies.append(data)
        return "/tmp/reqview-test.body"

    async def fetch(self, argv, headers_path):
        self.calls.append((argv, headers_path))
        if self.error is not None:
            raise self.error
        return self.result
