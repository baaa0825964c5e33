#run_server.py

"""
Main entry point for the image proxy.
This script reads a YAML configuration file, builds the routes, sources and
processors it describes, and serves them over HTTP.
"""
import argparse
import logging
import sys
from pathlib import Path

import uvicorn

from image_proxy.config import load_config
from image_proxy.errors import ConfigError
from image_proxy.proxy import build_proxy
from image_proxy.server import create_app

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

logger = logging.getLogger("image_proxy")


def main():
    """Parses command line arguments, loads config, and starts the server."""
    parser = argparse.ArgumentParser(description="On-the-fly image transformation proxy")
    parser.add_argument(
        "--config",
        type=str,
        required=True,
        help="Path to the YAML configuration file."
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="Overrides server.log_level from the configuration."
    )
    args = parser.parse_args()

    try:
        config = load_config(Path(args.config))
    except ConfigError as e:
        # Configure logging early so the fatal error is formatted like everything else.
        logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
        logger.critical("Invalid configuration: %s", e)
        sys.exit(1)

    log_level = (args.log_level or config.server.log_level).upper()
    logging.basicConfig(level=log_level, format=LOG_FORMAT)
    logger.info("Configuration loaded from %s", args.config)

    try:
        proxy = build_proxy(config)
    except ConfigError as e:
        logger.critical("Invalid configuration: %s", e)
        sys.exit(1)

    app = create_app(proxy, thread_pool_size=config.server.thread_pool_size)
    uvicorn.run(
        app,
        host=config.server.host,
        port=config.server.port,
        timeout_keep_alive=config.server.keep_alive_timeout,
        log_level=log_level.lower(),
    )


if __name__ == "__main__":
    main()
