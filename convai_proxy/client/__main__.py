"""
Command-line voice client.

Usage:
    python -m convai_proxy.client [--url URL] [--log-level LEVEL]

Press Ctrl+C to end the conversation; the client asks the proxy to close the agent
connection and exits once the proxy has closed the socket.
"""

import argparse
import asyncio
import os
import signal

from convai_proxy.client.devices import PyAudioMicrophone, PyAudioSpeaker
from convai_proxy.client.voice_client import DEFAULT_PROXY_URL, VoiceConversationClient
from convai_proxy.config.logging_config import configure_logging


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Voice client for the conversational agent proxy")
    parser.add_argument(
        "--url",
        default=os.getenv("PROXY_URL", DEFAULT_PROXY_URL),
        help=f"Proxy WebSocket URL (default: {DEFAULT_PROXY_URL} or PROXY_URL env var)",
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv("LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: INFO or LOG_LEVEL env var)",
    )
    return parser.parse_args()


async def run_client(url: str, logger) -> None:
    microphone = PyAudioMicrophone()
    speaker = PyAudioSpeaker()
    client = VoiceConversationClient(url, microphone, speaker)

    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(
            signal.SIGINT, lambda: asyncio.ensure_future(client.end_conversation())
        )
    except NotImplementedError:
        logger.warning("Signal handlers not supported; Ctrl+C will exit without ending the conversation")

    try:
        await client.run()
    finally:
        microphone.close()
        speaker.close()


def main():
    args = parse_args()
    logger = configure_logging(args.log_level, log_file=None)
    try:
        asyncio.run(run_client(args.url, logger))
    except OSError as e:
        logger.error(f"Could not connect to proxy: {e}")
    except KeyboardInterrupt:
        logger.info("Client stopped by user")


if __name__ == "__main__":
    main()
