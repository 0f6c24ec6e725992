"""
Request path resolution for the preview server.

Given the served base directory and a raw request URL, decide what answers
the request: a file, a generated directory index, a trailing-slash redirect,
or a not-found page. Nothing here touches the socket or holds state between
calls; every outcome is computed fresh from the URL and the filesystem.
"""
import os
from dataclasses import dataclass
from typing import Union
from urllib.parse import unquote

from livepreview.paths import decode_loose_file_path

INDEX_FILE = "index.html"


def split_url(url: str) -> tuple[str, str]:
    """
    Split a raw request URL at the first '?'.
    Returns (url_path, query) where query keeps its leading '?', or is ''
    when the URL has none.
    """
    end_of_path = url.find("?")
    if end_of_path == -1:
        return url, ""
    return url[:end_of_path], url[end_of_path:]


@dataclass(frozen=True)
class Request:
    method: str
    url: str

    @property
    def url_path(self) -> str:
        return split_url(self.url)[0]

    @property
    def query(self) -> str:
        return split_url(self.url)[1]


@dataclass(frozen=True)
class ServeFile:
    path: str


@dataclass(frozen=True)
class ServeDirectoryIndex:
    dir_path: str
    url_path: str
    # set when the directory was reached through the loose-file decoding
    loose_root: str | None = None


@dataclass(frozen=True)
class RedirectToSlash:
    url_path: str
    query: str = ""

    @property
    def location(self) -> str:
        return f"{self.url_path}/{self.query}"


@dataclass(frozen=True)
class NotFound:
    requested_path: str


@dataclass(frozen=True)
class ServerFault:
    pass


ResolutionOutcome = Union[ServeFile, ServeDirectoryIndex, RedirectToSlash, NotFound, ServerFault]


def literal_path(base_path: str, url_path: str) -> str:
    # join() would discard base_path for a rooted second argument
    relative = unquote(url_path, errors="surrogateescape").lstrip("/")
    return os.path.normpath(os.path.join(base_path, relative))


def resolve(base_path: str, url: str | None) -> ResolutionOutcome:
    if url is None:
        return ServerFault()

    url_path, query = split_url(url)
    read_path = literal_path(base_path, url_path)
    loose_file = False

    if not os.path.exists(read_path):
        decoded = decode_loose_file_path(url_path)
        if not (decoded and os.path.exists(decoded)):
            return NotFound(read_path)
        read_path = decoded
        loose_file = True

    if os.path.isdir(read_path):
        # relative links in served pages must resolve inside the directory
        if not url_path.endswith("/"):
            return RedirectToSlash(url_path, query)
        index_path = os.path.join(read_path, INDEX_FILE)
        if os.path.exists(index_path):
            return ServeFile(index_path)
        return ServeDirectoryIndex(read_path, url_path, read_path if loose_file else None)

    # normpath dropped the trailing slash; a file is never a directory
    if url_path.endswith("/"):
        return NotFound(read_path)
    return ServeFile(read_path)
