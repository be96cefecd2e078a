"""
Run script for starting the conversational agent proxy.

Usage:
    python run.py [--port PORT] [--host HOST] [--log-level LEVEL]
"""

import argparse
import logging
import os
import sys

import uvicorn

from convai_proxy.config.constants import LOGGER_NAME, WS_MAX_SIZE
from convai_proxy.config.logging_config import configure_logging

logger = logging.getLogger(LOGGER_NAME)


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Start the conversational agent proxy")
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.getenv("PORT", "3000")),
        help="Port to run the server on (default: 3000 or PORT env var)",
    )
    parser.add_argument(
        "--host",
        default=os.getenv("HOST", "0.0.0.0"),
        help="Host to bind the server to (default: 0.0.0.0 or HOST env var)",
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv("LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: INFO or LOG_LEVEL env var)",
    )
    return parser.parse_args()


def main():
    """Start uvicorn with the proxy application."""
    args = parse_args()
    # The app configures logging again on import, from the environment
    os.environ["LOG_LEVEL"] = args.log_level
    configure_logging(args.log_level)

    if not os.getenv("ELEVENLABS_API_KEY") or not os.getenv("AGENT_ID"):
        logger.warning(
            "ELEVENLABS_API_KEY or AGENT_ID not set in the environment; "
            "sessions will fail unless they are provided by a .env file"
        )

    logger.info(f"Starting server on http://{args.host}:{args.port}")
    logger.info(f"Log level: {args.log_level}")

    try:
        uvicorn.run(
            "convai_proxy.main:app",
            host=args.host,
            port=args.port,
            log_level=args.log_level.lower(),
            # Use HTTP/1.1 for lower overhead than HTTP/2
            http="h11",
            # Disable access logs, we have our own logging
            access_log=False,
            ws_max_size=WS_MAX_SIZE,
            reload=os.getenv("ENV", "production").lower() == "development",
        )
    except KeyboardInterrupt:
        sys.exit(0)


if __name__ == "__main__":
    main()
