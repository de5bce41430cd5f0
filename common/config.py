from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from dotenv import load_dotenv


def _default_env_file() -> str:
    repo_root = Path(__file__).resolve().parents[1]
    return str(repo_root / ".env")


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _env_optional_float(name: str, default: str) -> Optional[float]:
    # 0 (o negativo) desactiva el timeout.
    value = float(os.getenv(name, default))
    return value if value > 0 else None


def parse_endpoint(endpoint: str, default_host: str = "0.0.0.0") -> Tuple[str, int]:
    """Convierte "host:port" (o ":port") en una tupla (host, port)."""
    host, sep, port = endpoint.strip().rpartition(":")
    if not sep or not port:
        raise ValueError(f"Invalid endpoint {endpoint!r}, expected host:port")
    host = host.strip("[]") or default_host
    return host, int(port)


@dataclass(frozen=True)
class Settings:
    graphite_host: str
    graphite_port: int
    http_host: str
    http_port: int

    connect_timeout: float
    reconnect_backoff: float
    write_timeout: Optional[float]
    queue_max_size: int
    queue_drop_oldest: bool
    direct_write_timeout: Optional[float]
    wait_on_startup: bool

    expected_interval: float
    forward_mode: str
    legacy_status_codes: bool

    log_level: str

    @property
    def graphite_endpoint(self) -> str:
        return f"{self.graphite_host}:{self.graphite_port}"


def get_settings(
    graphite_endpoint: Optional[str] = None,
    http_listen: Optional[str] = None,
) -> Settings:
    # Load env file (if present) but still allow overriding via real environment variables.
    env_file = os.getenv("C2G_ENV_FILE", _default_env_file())
    if env_file and Path(env_file).exists():
        load_dotenv(env_file, override=False)

    graphite_host, graphite_port = parse_endpoint(
        graphite_endpoint or os.getenv("GRAPHITE_ENDPOINT", "localhost:2003"),
        default_host="localhost",
    )
    http_host, http_port = parse_endpoint(http_listen or os.getenv("HTTP_LISTEN", ":9292"))

    forward_mode = os.getenv("INGEST_FORWARD_MODE", "direct").strip().lower()
    if forward_mode not in ("direct", "queued"):
        raise ValueError(f"INGEST_FORWARD_MODE must be 'direct' or 'queued', got {forward_mode!r}")

    return Settings(
        graphite_host=graphite_host,
        graphite_port=graphite_port,
        http_host=http_host,
        http_port=http_port,
        connect_timeout=float(os.getenv("GRAPHITE_CONNECT_TIMEOUT", "2")),
        reconnect_backoff=float(os.getenv("GRAPHITE_RECONNECT_BACKOFF", "10")),
        write_timeout=_env_optional_float("GRAPHITE_WRITE_TIMEOUT", "10"),
        queue_max_size=int(os.getenv("GRAPHITE_QUEUE_MAX_SIZE", "10000")),
        queue_drop_oldest=_env_bool("GRAPHITE_QUEUE_DROP_OLDEST", "true"),
        direct_write_timeout=_env_optional_float("GRAPHITE_DIRECT_WRITE_TIMEOUT", "0"),
        wait_on_startup=_env_bool("GRAPHITE_WAIT_ON_STARTUP", "true"),
        expected_interval=float(os.getenv("COLLECTD_EXPECTED_INTERVAL", "10")),
        forward_mode=forward_mode,
        legacy_status_codes=_env_bool("INGEST_LEGACY_STATUS_CODES", "false"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
