import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import WebSocket

from convai_proxy.websocket_manager import WebSocketManager


@pytest.fixture
def websocket_manager(connector):
    return WebSocketManager(connector, ready_timeout=5)


@pytest.fixture
def websocket():
    websocket = AsyncMock(spec=WebSocket)
    return websocket


@pytest.mark.asyncio
async def test_websocket_manager_initialization(websocket_manager, connector):
    """Test that WebSocketManager initializes correctly"""
    assert websocket_manager.connector is connector
    assert websocket_manager.ready_timeout == 5
    assert websocket_manager.active_sessions == 0


@pytest.mark.asyncio
async def test_session_registered_while_running(websocket_manager, websocket):
    """Test a session is tracked while it runs and removed afterwards"""
    active_during_run = []

    async def run():
        active_during_run.append(websocket_manager.active_sessions)

    with patch("convai_proxy.websocket_manager.ProxySession") as mock_session_cls:
        session = MagicMock()
        session.session_id = "abc"
        session.run = AsyncMock(side_effect=run)
        mock_session_cls.return_value = session

        await websocket_manager.handle_websocket(websocket)

    websocket.accept.assert_awaited_once()
    mock_session_cls.assert_called_once_with(websocket, websocket_manager.connector, ready_timeout=5)
    assert active_during_run == [1]
    assert websocket_manager.active_sessions == 0


@pytest.mark.asyncio
async def test_session_error_is_contained(websocket_manager, websocket):
    """Test an unexpected session failure is logged and the session deregistered"""
    with patch("convai_proxy.websocket_manager.ProxySession") as mock_session_cls:
        session = MagicMock()
        session.session_id = "abc"
        session.run = AsyncMock(side_effect=RuntimeError("boom"))
        mock_session_cls.return_value = session

        await websocket_manager.handle_websocket(websocket)

    assert websocket_manager.active_sessions == 0


@pytest.mark.asyncio
async def test_sessions_are_independent(connector, client_socket, agent_socket):
    """Test concurrent connections each get their own session"""
    other_client = type(client_socket)()
    other_agent = type(agent_socket)()
    connector.connect = AsyncMock(side_effect=[agent_socket, other_agent])
    manager = WebSocketManager(connector)
    for socket in (client_socket, other_client):
        socket.accept = AsyncMock()

    tasks = [
        asyncio.create_task(manager.handle_websocket(client_socket)),
        asyncio.create_task(manager.handle_websocket(other_client)),
    ]
    for _ in range(20):
        await asyncio.sleep(0)
    assert manager.active_sessions == 2

    agent_socket.agent_sends(json.dumps({"type": "agent_response"}))
    agent_socket.agent_closes(1000, "done")
    await asyncio.wait_for(tasks[0], 1)

    assert manager.active_sessions == 1
    assert client_socket.sent_types()[-1] == "conversationEnded"
    assert "agent_response" not in other_client.sent_types()

    other_client.client_disconnects()
    await asyncio.wait_for(tasks[1], 1)
    assert manager.active_sessions == 0
