from livepreview.content import ContentLoader, HTMLInjector
from livepreview.paths import decode_loose_file_path, encode_loose_file_path
from livepreview.resolver import resolve, split_url
from livepreview.server import PreviewServer, RequestReport

__version__ = "0.1.0"

__all__ = [
    "ContentLoader",
    "HTMLInjector",
    "PreviewServer",
    "RequestReport",
    "decode_loose_file_path",
    "encode_loose_file_path",
    "resolve",
    "split_url",
]
