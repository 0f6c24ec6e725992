import os
from dotenv import load_dotenv

load_dotenv()

HOST = "127.0.0.1"
DEFAULT_PORT = 3000
MAX_PORT = 65535
# seconds a connection may sit idle or stalled before it is dropped
REQUEST_TIMEOUT = 5.0


def _env_int(name: str, default: int | None) -> int | None:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {value!r}")


def get_port() -> int:
    return _env_int("LIVEPREVIEW_PORT", DEFAULT_PORT)


def get_ws_port() -> int | None:
    return _env_int("LIVEPREVIEW_WS_PORT", None)


def get_root() -> str:
    return os.path.abspath(os.getenv("LIVEPREVIEW_ROOT", os.getcwd()))


def get_log_level() -> str:
    return os.getenv("LIVEPREVIEW_LOG_LEVEL", "INFO").upper()
