import argparse
import logging
import os
import sys
import threading
import webbrowser

from livepreview import config
from livepreview.server import PreviewServer

logger = logging.getLogger("livepreview")


def wait_forever():
    threading.Event().wait()


def build_parser():
    parser = argparse.ArgumentParser(
        prog="livepreview",
        description="Serve a directory to a preview browser with live-reload injection",
    )
    parser.add_argument("root", nargs="?", default=None, help="Directory to serve (default: LIVEPREVIEW_ROOT or cwd)")
    parser.add_argument("-p", "--port", type=int, default=None, help="Port to try first; the next free one is used if taken")
    parser.add_argument("--ws-port", type=int, default=None, help="Live-reload WebSocket port for injected pages")
    parser.add_argument("--open", action="store_true", help="Open the served root in a browser")
    parser.add_argument("--log-level", default=None, help="Logging level (default: LIVEPREVIEW_LOG_LEVEL or INFO)")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=(args.log_level or config.get_log_level()).upper(),
    )

    root = os.path.abspath(args.root) if args.root else config.get_root()
    if not os.path.isdir(root):
        print(f"Error: {root} is not a directory")
        sys.exit(1)

    port = args.port if args.port is not None else config.get_port()
    ws_port = args.ws_port if args.ws_port is not None else config.get_ws_port()

    server = PreviewServer()
    if ws_port is not None:
        server.set_injector_port(ws_port)

    @server.on_request_processed
    def log_request(report):
        logger.info("%s %s -> %s", report.method, report.url, report.status)

    @server.on_error
    def log_error(kind, err):
        print(f"Error ({kind}): {err}")

    if not server.start(port, root):
        sys.exit(1)

    url = f"http://{server.host}:{server.port}/"
    print(f"Serving {root} at {url}")
    if port and server.port != port:
        print(f"  (port {port} was in use)")
    print("Press Ctrl+C to stop\n")

    if args.open:
        webbrowser.open(url)

    try:
        wait_forever()
    except KeyboardInterrupt:
        print("\nShutting down...")
    finally:
        server.close()


if __name__ == "__main__":
    main()
