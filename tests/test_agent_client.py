import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from convai_proxy.config.settings import ProxySettings
from convai_proxy.errors import UpstreamConnectionError
from convai_proxy.services.agent_client import AgentServiceConnector


@pytest.fixture
def connector():
    return AgentServiceConnector("test-key", "agent-123", connect_timeout=1)


def test_url_includes_agent_id(connector):
    assert connector.url == "wss://api.elevenlabs.io/v1/convai/conversation?agent_id=agent-123"


def test_from_settings():
    settings = ProxySettings(
        api_key="k", agent_id="a", upstream_url="wss://example.test/ws", connect_timeout=5
    )
    connector = AgentServiceConnector.from_settings(settings)

    assert connector.url == "wss://example.test/ws?agent_id=a"
    assert connector.connect_timeout == 5


@pytest.mark.asyncio
async def test_connect_sends_api_key_header(connector):
    """Test the connection is opened with the API key header"""
    upstream = MagicMock()
    with patch(
        "convai_proxy.services.agent_client.websockets.connect", AsyncMock(return_value=upstream)
    ) as mock_connect:
        result = await connector.connect()

    assert result is upstream
    args, kwargs = mock_connect.call_args
    assert args[0] == connector.url
    assert kwargs["additional_headers"] == {"xi-api-key": "test-key"}


@pytest.mark.asyncio
@pytest.mark.parametrize("api_key,agent_id", [(None, "agent-123"), ("test-key", None)])
async def test_connect_requires_credentials(api_key, agent_id):
    """Test missing credentials fail without contacting the service"""
    connector = AgentServiceConnector(api_key, agent_id)
    with patch("convai_proxy.services.agent_client.websockets.connect") as mock_connect:
        with pytest.raises(UpstreamConnectionError) as exc_info:
            await connector.connect()

    mock_connect.assert_not_called()
    assert exc_info.value.message == "Connection failed to agent service."


@pytest.mark.asyncio
async def test_connect_failure_is_wrapped(connector):
    """Test handshake failures surface as UpstreamConnectionError"""
    with patch(
        "convai_proxy.services.agent_client.websockets.connect",
        AsyncMock(side_effect=OSError("connection refused")),
    ):
        with pytest.raises(UpstreamConnectionError) as exc_info:
            await connector.connect()

    assert exc_info.value.details == "connection refused"


@pytest.mark.asyncio
async def test_connect_timeout(connector):
    """Test a stalled handshake is abandoned after the connect timeout"""
    connector.connect_timeout = 0.01

    async def stalled(*args, **kwargs):
        await asyncio.sleep(10)

    with patch("convai_proxy.services.agent_client.websockets.connect", side_effect=stalled):
        with pytest.raises(UpstreamConnectionError) as exc_info:
            await connector.connect()

    assert "Timed out" in exc_info.value.details
