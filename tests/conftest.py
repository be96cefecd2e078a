import asyncio
import json
import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from convai_proxy.services.agent_client import AgentServiceConnector

_CLOSED = object()


class FakeAgentSocket:
    """Stands in for the upstream websockets connection."""

    def __init__(self):
        self.incoming = asyncio.Queue()
        self.sent = []
        self.pongs = 0
        self.close_calls = []
        self.close_code = None
        self.close_reason = None

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self.incoming.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        if isinstance(item, Exception):
            raise item
        return item

    def agent_sends(self, message):
        if isinstance(message, dict):
            message = json.dumps(message)
        self.incoming.put_nowait(message)

    def agent_fails(self, error):
        self.incoming.put_nowait(error)

    def agent_closes(self, code=1000, reason=""):
        self.close_code, self.close_reason = code, reason
        self.incoming.put_nowait(_CLOSED)

    async def send(self, data):
        self.sent.append(data)

    async def pong(self, data=b""):
        self.pongs += 1

    async def close(self, code=1000, reason=""):
        self.close_calls.append((code, reason))
        if self.close_code is None:
            self.agent_closes(code, reason)


class FakeClientSocket:
    """Stands in for the FastAPI WebSocket of a voice client."""

    def __init__(self):
        self.incoming = asyncio.Queue()
        self.sent = []
        self.close_codes = []

    async def receive(self):
        item = await self.incoming.get()
        if isinstance(item, Exception):
            raise item
        return item

    def client_sends(self, message):
        if isinstance(message, dict):
            message = json.dumps(message)
        self.incoming.put_nowait({"type": "websocket.receive", "text": message})

    def client_sends_bytes(self, data):
        self.incoming.put_nowait({"type": "websocket.receive", "bytes": data})

    def client_disconnects(self, code=1000):
        self.incoming.put_nowait({"type": "websocket.disconnect", "code": code})

    def client_fails(self, error):
        self.incoming.put_nowait(error)

    async def send_text(self, data):
        self.sent.append(data)

    async def send_bytes(self, data):
        self.sent.append(data)

    async def close(self, code=1000):
        self.close_codes.append(code)

    def sent_json(self):
        return [json.loads(m) for m in self.sent if isinstance(m, str)]

    def sent_types(self):
        return [m["type"] for m in self.sent_json()]


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset logging configuration before each test"""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    logging.basicConfig(level=logging.NOTSET)
    yield


@pytest.fixture
def agent_socket():
    return FakeAgentSocket()


@pytest.fixture
def client_socket():
    return FakeClientSocket()


@pytest.fixture
def connector(agent_socket):
    connector = MagicMock(spec=AgentServiceConnector)
    connector.connect = AsyncMock(return_value=agent_socket)
    return connector
