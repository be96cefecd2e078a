"""
FastAPI server relaying browser or desktop voice clients to a conversational agent.

This module initializes and configures the FastAPI application. It exposes the
client WebSocket endpoint, where every connection is paired with its own agent
connection, plus health and info endpoints and, when configured, a static
directory for a web client.
"""

from pathlib import Path

import dotenv
from fastapi import FastAPI, WebSocket
from fastapi.staticfiles import StaticFiles

from convai_proxy.config.constants import WS_MAX_SIZE
from convai_proxy.config.logging_config import configure_logging
from convai_proxy.config.settings import ProxySettings
from convai_proxy.services.agent_client import AgentServiceConnector
from convai_proxy.websocket_manager import WebSocketManager

# Load environment variables from .env file if it exists
env_path = Path(".") / ".env"
if env_path.exists():
    dotenv.load_dotenv(env_path)

# Configure logging
logger = configure_logging()

settings = ProxySettings.from_env()

# Create FastAPI application
app = FastAPI(
    title="Conversational Agent Proxy",
    description="Real-time audio relay between voice clients and the ElevenLabs Conversational AI service",
    version="1.0.0",
)

# Create WebSocket manager
websocket_manager = WebSocketManager(
    AgentServiceConnector.from_settings(settings),
    ready_timeout=settings.ready_timeout,
)


@app.websocket(settings.ws_path)
async def websocket_endpoint(websocket: WebSocket):
    """WebSocket endpoint for voice clients.

    Each connection gets its own agent connection. Text frames carry JSON
    envelopes; binary frames carry raw PCM16 audio and are relayed verbatim.
    """
    await websocket_manager.handle_websocket(websocket)


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring system status.

    Returns:
        dict: Status information indicating the server is operational.
    """
    return {
        "status": "healthy",
        "agent_credentials_configured": settings.credentials_configured,
        "active_sessions": websocket_manager.active_sessions,
    }


@app.get("/info")
async def root():
    """Display basic information about the API.

    Returns:
        dict: Basic information about the API and its purpose.
    """
    return {
        "name": "Conversational Agent Proxy",
        "description": "Real-time audio relay between voice clients and the ElevenLabs Conversational AI service",
        "version": "1.0.0",
        "endpoints": {
            settings.ws_path: "WebSocket endpoint for voice clients",
            "/health": "Health check endpoint",
        },
    }


# Mounted last so the API routes above take precedence
if settings.static_dir and Path(settings.static_dir).is_dir():
    app.mount("/", StaticFiles(directory=settings.static_dir, html=True), name="static")
    logger.info(f"Serving static files from {settings.static_dir}")


if __name__ == "__main__":
    import uvicorn

    logger.info(f"Starting server on http://{settings.host}:{settings.port}")
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        ws_max_size=WS_MAX_SIZE,
        http="h11",
    )
