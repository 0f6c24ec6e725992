import os
import re
from urllib.parse import quote, unquote

INJECTABLE_EXTENSIONS = (".html", ".htm", ".xhtml")

# URL segment under which documents outside the served root are addressed
LOOSE_FILE_PREFIX = "/__loose__/"

_WINDOWS_DRIVE = re.compile(r"^[a-zA-Z]:/")


def encode_loose_file_path(path: str) -> str:
    """
    Turn an absolute filesystem path (e.g. an unsaved or out-of-workspace
    document) into a URL path the preview server can decode again:
      /home/me/a b.html     -> /__loose__/home/me/a%20b.html
      C:\\Users\\me\\a.html -> /__loose__/C:/Users/me/a.html
    """
    path = path.replace("\\", "/").lstrip("/")
    return LOOSE_FILE_PREFIX + quote(path, safe="/:")


def is_loose_file_path(url_path: str) -> bool:
    return url_path.startswith(LOOSE_FILE_PREFIX)


def decode_loose_file_path(url_path: str) -> str:
    """Inverse of encode_loose_file_path. Returns '' for URLs outside the loose scheme."""
    if not is_loose_file_path(url_path):
        return ""
    path = unquote(url_path[len(LOOSE_FILE_PREFIX):], errors="surrogateescape").replace("\\", "/")
    if not path:
        return ""
    if not _WINDOWS_DRIVE.match(path):
        path = "/" + path
    return os.path.normpath(path)


def is_file_injectable(path: str | None) -> bool:
    if not path:
        return False
    return path.lower().endswith(INJECTABLE_EXTENSIONS)
