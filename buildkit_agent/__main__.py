"""Command-line entry point: ``python -m buildkit_agent``."""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace

import uvicorn

from .config import AgentConfig, ConfigError, load_config
from .main import build_app

logger = logging.getLogger("buildkit_agent")


def parse_args(argv: list[str] | None = None, base: AgentConfig | None = None) -> AgentConfig:
    """Build the config from the environment, then apply command-line overrides."""
    parser = argparse.ArgumentParser(
        prog="buildkit-metrics-agent",
        description="Sidecar exposing BuildKit build, cache and worker metrics for Prometheus.",
    )
    parser.add_argument("--addr", help="BuildKit endpoint, unix socket path or unix:///path (env BUILDKIT_ADDR)")
    parser.add_argument("--metrics-addr", help="Metrics HTTP listen address host:port (env METRICS_ADDR)")
    parser.add_argument(
        "--scrape-interval-secs",
        type=float,
        help="Seconds between Control API scrapes (env SCRAPE_INTERVAL_SECS)",
    )
    parser.add_argument("--log-level", help="Logging level (env LOG_LEVEL)")
    args = parser.parse_args(argv)

    try:
        config = base or load_config()
        overrides = {
            key: value
            for key, value in {
                "buildkit_addr": args.addr,
                "metrics_addr": args.metrics_addr,
                "scrape_interval": args.scrape_interval_secs,
                "log_level": args.log_level,
            }.items()
            if value is not None
        }
        return replace(config, **overrides)
    except ConfigError as exc:
        parser.error(str(exc))


def main(argv: list[str] | None = None) -> None:
    config = parse_args(argv)
    logging.basicConfig(level=config.log_level.upper())
    host, port = config.listen_address()
    logger.info("Metrics listening on %s:%d, BuildKit at %s", host, port, config.buildkit_addr)
    uvicorn.run(build_app(config), host=host, port=port, log_level=config.log_level.lower())


if __name__ == "__main__":
    sys.exit(main())
