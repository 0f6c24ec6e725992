import errno
import http.server
import logging
import os
import threading
from typing import NamedTuple

from livepreview.config import HOST, MAX_PORT, REQUEST_TIMEOUT
from livepreview.content import ContentLoader, HTMLInjector
from livepreview.paths import is_file_injectable
from livepreview.resolver import (
    NotFound,
    RedirectToSlash,
    ServeDirectoryIndex,
    ServerFault,
    resolve,
)

logger = logging.getLogger(__name__)

CHARSET = "charset=UTF-8"
TEXT_LIKE_TYPES = {"application/javascript", "application/json", "application/xml"}

_ADDR_IN_USE = {errno.EADDRINUSE, getattr(errno, "WSAEADDRINUSE", errno.EADDRINUSE)}


class RequestReport(NamedTuple):
    method: str
    url: str
    status: int


def content_type_for(path: str | None, hint: str | None) -> str:
    # html and svg are declared as html so injected scripts and special
    # characters render in the preview
    if path and (is_file_injectable(path) or path.lower().endswith(".svg")):
        return f"text/html; {CHARSET}"
    content_type = hint or "application/octet-stream"
    if content_type.startswith("text/") or content_type in TEXT_LIKE_TYPES:
        content_type = f"{content_type}; {CHARSET}"
    return content_type


class PreviewRequestHandler(http.server.BaseHTTPRequestHandler):
    server_version = "LivePreview"

    def setup(self):
        # bounds how long an idle or stalled connection can hold close()
        self.timeout = self.server.request_timeout
        super().setup()

    def _dispatch(self):
        self._status = 500
        self._headers_sent = False
        try:
            self._discard_body()
            self._respond()
        except Exception:
            logger.exception("Unexpected error while handling %s %s", self.command, self.path)
            self._fail()
        finally:
            self.server.report(RequestReport(self.command or "", self.path or "", self._status))

    do_GET = do_HEAD = do_POST = do_PUT = do_PATCH = do_DELETE = do_OPTIONS = _dispatch

    def _discard_body(self):
        # unread request bytes make the socket close with a reset
        try:
            length = int(self.headers.get("Content-Length") or 0)
        except ValueError:
            length = 0
        if length > 0:
            self.rfile.read(length)

    def _start_response(self, status, headers=()):
        self.send_response(status)
        for name, value in headers:
            self.send_header(name, value)
        self._headers_sent = True
        self._status = status
        self.end_headers()

    def _fail(self):
        if self._headers_sent:
            self.close_connection = True
            return
        try:
            self._start_response(500, [("Content-Length", "0")])
        except OSError as e:
            logger.debug("Could not send 500 for %s: %s", self.path, e)
            self.close_connection = True

    def _respond(self):
        loader = self.server.loader
        outcome = resolve(self.server.base_path, self.path) if self.path else ServerFault()

        if isinstance(outcome, ServerFault):
            self._start_response(500, [("Content-Length", "0")])
            return

        if isinstance(outcome, RedirectToSlash):
            self._start_response(302, [("Location", outcome.location), ("Content-Length", "0")])
            return

        status = 200
        served_path = None
        try:
            if isinstance(outcome, NotFound):
                status = 404
                content = loader.not_found_page(outcome.requested_path)
            elif isinstance(outcome, ServeDirectoryIndex):
                content = loader.directory_index(outcome.dir_path, outcome.url_path, outcome.loose_root)
            else:
                served_path = outcome.path
                content = loader.file_stream(served_path)
        except OSError as e:
            logger.debug("Could not open content for %s: %s", self.path, e)
            self._start_response(404, [("Content-Length", "0")])
            return

        self._stream(status, content, content_type_for(served_path, content.content_type))

    def _stream(self, status, content, content_type):
        try:
            # pull the first chunk before committing to a status line
            try:
                first = next(content.chunks, b"")
            except OSError as e:
                logger.debug("Stream for %s failed before sending: %s", self.path, e)
                self._start_response(404, [("Content-Length", "0")])
                return

            headers = [("Content-Type", content_type)]
            if content.length is not None:
                headers.append(("Content-Length", str(content.length)))
            self._start_response(status, headers)
            if self.command == "HEAD":
                return

            try:
                self.wfile.write(first)
                for chunk in content.chunks:
                    self.wfile.write(chunk)
            except (BrokenPipeError, ConnectionResetError) as e:
                logger.debug("Client went away during %s: %s", self.path, e)
                self.close_connection = True
            except OSError as e:
                logger.error("Stream for %s failed after headers were sent: %s", self.path, e)
                self.close_connection = True
        finally:
            close = getattr(content.chunks, "close", None)
            if close:
                close()

    def log_message(self, format, *args):
        # timeouts are logged before the request line is parsed
        logger.debug("%s %s -> %s", getattr(self, "command", None), getattr(self, "path", None), format % args)


class PreviewHTTPServer(http.server.ThreadingHTTPServer):
    # let close() drain in-flight requests
    daemon_threads = False
    block_on_close = True

    def __init__(self, server_address, base_path, preview):
        self.base_path = base_path
        self.preview = preview
        self.request_timeout = preview.request_timeout
        super().__init__(server_address, PreviewRequestHandler)

    @property
    def loader(self):
        return self.preview.loader

    def report(self, report):
        self.preview.report_request(report)

    def handle_error(self, request, client_address):
        logger.exception("Unhandled error while serving %s", client_address)


class PreviewServer:
    """
    Serves a directory to the preview client.

    Subscribe with on_connected(cb(port)), on_request_processed(cb(report))
    and on_error(cb(kind, exc)) before calling start().
    """

    def __init__(self, host: str = HOST, loader: ContentLoader | None = None, request_timeout: float | None = REQUEST_TIMEOUT):
        self.host = host
        self.request_timeout = request_timeout
        self.port = 0
        self.loader = loader or ContentLoader()
        self._httpd = None
        self._thread = None
        self._connected = []
        self._request_processed = []
        self._errors = []

    def on_connected(self, callback):
        self._connected.append(callback)
        return callback

    def on_request_processed(self, callback):
        self._request_processed.append(callback)
        return callback

    def on_error(self, callback):
        self._errors.append(callback)
        return callback

    def _publish(self, subscribers, *args):
        for callback in list(subscribers):
            try:
                callback(*args)
            except Exception:
                logger.exception("Subscriber %r failed", callback)

    def report_request(self, report):
        self._publish(self._request_processed, report)

    @property
    def running(self) -> bool:
        return self._httpd is not None

    def set_injector_port(self, ws_port: int):
        if self.loader.script_injector is None:
            self.loader.script_injector = HTMLInjector(ws_port, self.host)
        else:
            self.loader.script_injector.ws_port = ws_port

    def start(self, port: int, base_path: str) -> bool:
        if self._httpd is not None:
            raise RuntimeError("server is already running")

        base_path = os.path.abspath(base_path)
        self.port = port
        while True:
            try:
                httpd = PreviewHTTPServer((self.host, self.port), base_path, self)
                break
            except OSError as e:
                if e.errno in _ADDR_IN_USE and self.port < MAX_PORT:
                    logger.debug("Port %d is in use, trying %d", self.port, self.port + 1)
                    self.port += 1
                    continue
                logger.error("Unknown error: %s", e)
                self._publish(self._errors, "http", e)
                return False

        self._httpd = httpd
        self.port = httpd.server_address[1]
        self._thread = threading.Thread(
            target=httpd.serve_forever, name=f"livepreview-{self.port}", daemon=True
        )
        self._thread.start()
        logger.info("Server is running on port %d", self.port)
        self._publish(self._connected, self.port)
        return True

    def close(self):
        httpd, self._httpd = self._httpd, None
        if httpd is None:
            return
        httpd.shutdown()
        httpd.server_close()
        self._thread.join()
        self._thread = None
