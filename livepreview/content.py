import logging
import mimetypes
import os
import re
from urllib.parse import quote, unquote

from jinja2 import Environment, PackageLoader, select_autoescape

from livepreview.config import HOST
from livepreview.paths import is_file_injectable

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024

_env = Environment(
    loader=PackageLoader("livepreview", "templates"),
    autoescape=select_autoescape(["html"]),
)

_HEAD_TAG = re.compile(r"<head(\s[^>]*)?>", re.IGNORECASE)
_HTML_TAG = re.compile(r"<html(\s[^>]*)?>", re.IGNORECASE)


def _display_name(name: str) -> str:
    # undecodable filesystem bytes come back from scandir as lone surrogates
    return os.fsencode(name).decode("utf-8", errors="replace")


class Content:
    """A response body: an iterator of byte chunks plus what we know about it."""

    def __init__(self, chunks, content_type=None, length=None):
        self.chunks = iter(chunks)
        self.content_type = content_type
        self.length = length

    def __iter__(self):
        return self.chunks


class HTMLInjector:
    def __init__(self, ws_port: int, host: str = HOST):
        self.ws_port = ws_port
        self.host = host

    @property
    def script(self) -> str:
        return _env.get_template("reload_script.html").render(host=self.host, ws_port=self.ws_port)

    def inject(self, html: str) -> str:
        """
        Put the reload script right after <head>, else after <html>,
        else in front of the whole document.
        """
        script = self.script
        for tag in (_HEAD_TAG, _HTML_TAG):
            m = tag.search(html)
            if m:
                return html[:m.end()] + script + html[m.end():]
        return script + html


class ContentLoader:
    def __init__(self, script_injector: HTMLInjector | None = None):
        self.script_injector = script_injector

    def _render(self, template: str, **context) -> Content:
        html = _env.get_template(template).render(**context)
        if self.script_injector:
            html = self.script_injector.inject(html)
        body = html.encode("utf-8")
        return Content([body], "text/html", len(body))

    def file_stream(self, path: str) -> Content:
        content_type, _ = mimetypes.guess_type(path)
        if self.script_injector and is_file_injectable(path):
            return Content(self._injected_chunks(path), content_type or "text/html")
        return Content(self._file_chunks(path), content_type)

    def _file_chunks(self, path):
        # opened on first read so a vanished file fails while streaming
        with open(path, "rb") as f:
            while True:
                chunk = f.read(CHUNK_SIZE)
                if not chunk:
                    return
                yield chunk

    def _injected_chunks(self, path):
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            html = f.read()
        yield self.script_injector.inject(html).encode("utf-8")

    def directory_index(self, dir_path: str, display_path: str, loose_root: str | None = None) -> Content:
        entries = []
        if loose_root or display_path not in ("", "/"):
            entries.append({"name": "..", "href": "../", "is_dir": True})

        dirs, files = [], []
        with os.scandir(dir_path) as it:
            for entry in it:
                try:
                    is_dir = entry.is_dir()
                except OSError:
                    is_dir = False
                (dirs if is_dir else files).append(entry.name)

        for name in sorted(dirs, key=str.lower):
            entries.append({"name": _display_name(name) + "/", "href": quote(os.fsencode(name)) + "/", "is_dir": True})
        for name in sorted(files, key=str.lower):
            entries.append({"name": _display_name(name), "href": quote(os.fsencode(name)), "is_dir": False})

        title = _display_name(loose_root) if loose_root else unquote(display_path)
        return self._render("index.html", title=title, entries=entries)

    def not_found_page(self, requested_path: str) -> Content:
        return self._render("not_found.html", path=_display_name(requested_path))
