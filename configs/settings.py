from dataclasses import dataclass
import logging
import os
from typing import Optional

from dotenv import load_dotenv
from rich.logging import RichHandler

load_dotenv()

# Signatures requested per run
TRANSACTIONS_LIMIT = 10

DEFAULT_FETCH_CONCURRENCY = 8
DEFAULT_FETCH_TIMEOUT_S = 60.0
DEFAULT_POLL_INTERVAL_S = 4.0


@dataclass(frozen=True)
class Settings:
    rpc_url: str
    wallet_address: str
    ws_url: str
    transactions_limit: int = TRANSACTIONS_LIMIT
    fetch_concurrency: int = DEFAULT_FETCH_CONCURRENCY
    fetch_timeout_s: float = DEFAULT_FETCH_TIMEOUT_S
    poll_interval_s: float = DEFAULT_POLL_INTERVAL_S
    snapshot_dir: Optional[str] = None


def derive_ws_url(http_url: str) -> str:
    if http_url.startswith("https://"):
        return "wss://" + http_url[len("https://"):]
    if http_url.startswith("http://"):
        return "ws://" + http_url[len("http://"):]
    return http_url


def derive_http_url(ws_url: str) -> str:
    if ws_url.startswith("wss://"):
        return "https://" + ws_url[len("wss://"):]
    if ws_url.startswith("ws://"):
        return "http://" + ws_url[len("ws://"):]
    return ws_url


def _env_float(name: str, default: float) -> float:
    v = os.getenv(name)
    if v is None or str(v).strip() == "":
        return float(default)
    try:
        return float(v)
    except ValueError:
        return float(default)


def _env_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None or str(v).strip() == "":
        return int(default)
    try:
        return int(float(v))
    except ValueError:
        return int(default)


def get_settings() -> Settings:
    rpc_url = os.getenv("RPC_URL", "").strip()
    wallet_address = os.getenv("WALLET_ADDRESS", "").strip()
    ws_url = os.getenv("WS_URL", "").strip()

    if not rpc_url:
        raise ValueError("RPC_URL environment variable is required")
    if not wallet_address:
        raise ValueError("WALLET_ADDRESS environment variable is required")

    snapshot_dir = os.getenv("SNAPSHOT_DIR", "").strip() or None

    return Settings(
        rpc_url=rpc_url,
        wallet_address=wallet_address,
        ws_url=ws_url or derive_ws_url(rpc_url),
        fetch_concurrency=max(1, _env_int("FETCH_CONCURRENCY", DEFAULT_FETCH_CONCURRENCY)),
        fetch_timeout_s=_env_float("FETCH_TIMEOUT_S", DEFAULT_FETCH_TIMEOUT_S),
        poll_interval_s=_env_float("POLL_INTERVAL_S", DEFAULT_POLL_INTERVAL_S),
        snapshot_dir=snapshot_dir,
    )


def resolve_log_level(name: str, default: int = logging.INFO) -> int:
    level = logging.getLevelName((name or "").strip().upper())
    return level if isinstance(level, int) else default


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=resolve_log_level(level),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )
