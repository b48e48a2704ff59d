"""BPM pitch table server entry point."""

from __future__ import annotations
import argparse
import logging
import sys
import time

from api_server import create_api_server
from config import load_config

log = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="BPM pitch table API server")
    parser.add_argument('--config', '-c', default=None, help='Path to config.yaml')
    parser.add_argument('--log-level', default=None,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Override the configured log level')
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    cfg = load_config(args.config)

    level = args.log_level or cfg.logging.level
    logging.basicConfig(level=getattr(logging, level), format=cfg.logging.format)

    log.info("Table window starts at %s BPM, pitch ceiling %.1f%%",
             cfg.table.min_bpm, cfg.table.pitch_max)

    server = create_api_server(cfg)
    if server is None:
        log.error("API server is disabled or failed to start; nothing to run")
        return 1

    server.start()
    try:
        while server.is_running:
            time.sleep(0.5)
    except KeyboardInterrupt:
        log.info("Interrupted, shutting down")
    finally:
        server.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
