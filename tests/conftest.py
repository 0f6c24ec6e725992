import threading

import pytest

from livepreview.server import PreviewServer


class Recorder:
    """Collects published events; requests are reported after the reply is sent."""

    def __init__(self):
        self.events = []
        self._cond = threading.Condition()

    def __call__(self, *args):
        with self._cond:
            self.events.append(args[0] if len(args) == 1 else args)
            self._cond.notify_all()

    def wait_for(self, count, timeout=5):
        with self._cond:
            self._cond.wait_for(lambda: len(self.events) >= count, timeout=timeout)
            return list(self.events)


@pytest.fixture
def workspace(tmp_path):
    root = tmp_path / "site"
    root.mkdir()
    (root / "index.html").write_text(
        "<!DOCTYPE html><html><head><title>Home</title></head><body>home</body></html>",
        encoding="utf-8",
    )
    (root / "notes.txt").write_text("plain notes\n", encoding="utf-8")
    (root / "my page.html").write_text("<html><body>spaced</body></html>", encoding="utf-8")

    docs = root / "docs"
    docs.mkdir()
    (docs / "index.html").write_text("<html><head></head><body>docs home</body></html>", encoding="utf-8")

    assets = root / "assets"
    assets.mkdir()
    (assets / "style.css").write_text("body { color: red; }\n", encoding="utf-8")
    (assets / "logo.svg").write_text('<svg xmlns="http://www.w3.org/2000/svg"></svg>', encoding="utf-8")
    (assets / "Data.json").write_text('{"a": 1}', encoding="utf-8")
    (assets / "sub").mkdir()
    (assets / "blob.bin").write_bytes(bytes(range(256)) * 1024)
    return root


@pytest.fixture
def outside(tmp_path):
    """A directory outside the served root, standing in for unsaved/loose documents."""
    other = tmp_path / "elsewhere"
    other.mkdir()
    (other / "draft.html").write_text("<html><head></head><body>draft</body></html>", encoding="utf-8")
    (other / "pics").mkdir()
    (other / "pics" / "cat.png").write_bytes(b"\x89PNG fake")
    return other


@pytest.fixture
def requests_seen():
    return Recorder()


@pytest.fixture
def server(workspace, requests_seen):
    srv = PreviewServer()
    srv.on_request_processed(requests_seen)
    assert srv.start(0, str(workspace))
    yield srv
    srv.close()


@pytest.fixture
def base_url(server):
    return f"http://{server.host}:{server.port}"
