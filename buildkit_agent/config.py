"""Configuration for the BuildKit metrics agent."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from .control_client import resolve_target

DEFAULT_BUILDKIT_ADDR = "unix:///run/buildkit/buildkitd.sock"
DEFAULT_METRICS_ADDR = "0.0.0.0:9090"


class ConfigError(ValueError):
    """Invalid startup configuration."""


@dataclass(slots=True)
class AgentConfig:
    """Runtime configuration for one agent process."""

    buildkit_addr: str = DEFAULT_BUILDKIT_ADDR
    metrics_addr: str = DEFAULT_METRICS_ADDR
    scrape_interval: float = 15.0
    initial_delay: float = 1.0
    request_timeout: float = 10.0
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        try:
            resolve_target(self.buildkit_addr.strip())
        except ValueError as exc:
            raise ConfigError(str(exc)) from None
        if self.scrape_interval <= 0:
            raise ConfigError(f"Scrape interval must be positive, got {self.scrape_interval}")
        if self.initial_delay < 0:
            raise ConfigError(f"Initial delay must not be negative, got {self.initial_delay}")
        if self.request_timeout <= 0:
            raise ConfigError(f"Request timeout must be positive, got {self.request_timeout}")
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ConfigError(f"Unknown log level '{self.log_level}'")
        self.listen_address()

    def listen_address(self) -> tuple[str, int]:
        """Split ``metrics_addr`` into host and port."""
        host, sep, port_text = self.metrics_addr.rpartition(":")
        if not sep or not host:
            raise ConfigError(f"Metrics address must be host:port, got '{self.metrics_addr}'")
        try:
            port = int(port_text)
        except ValueError:
            raise ConfigError(f"Invalid port in metrics address '{self.metrics_addr}'") from None
        if not 0 < port < 65536:
            raise ConfigError(f"Port out of range in metrics address '{self.metrics_addr}'")
        return host.strip("[]"), port


def _float_env(name: str, default: str) -> float:
    raw = os.getenv(name, default)
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got '{raw}'") from None


def load_config() -> AgentConfig:
    return AgentConfig(
        buildkit_addr=os.getenv("BUILDKIT_ADDR", DEFAULT_BUILDKIT_ADDR),
        metrics_addr=os.getenv("METRICS_ADDR", DEFAULT_METRICS_ADDR),
        scrape_interval=_float_env("SCRAPE_INTERVAL_SECS", "15"),
        initial_delay=_float_env("INITIAL_DELAY_SECS", "1"),
        request_timeout=_float_env("BUILDKIT_TIMEOUT_SECS", "10"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
    )
