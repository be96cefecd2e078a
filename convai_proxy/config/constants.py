"""
Constants and configuration values used throughout the application.

This module defines constants that are used across different parts of the application,
providing a centralized location for protocol names, audio parameters and close codes.
"""

# Logger name used throughout the application
LOGGER_NAME = "convai_proxy"

# Upstream agent service
DEFAULT_ELEVENLABS_WS_URL = "wss://api.elevenlabs.io/v1/convai/conversation"
API_KEY_HEADER = "xi-api-key"

# Downstream endpoint
DEFAULT_WS_PATH = "/audio-stream"

# Audio format constants
TARGET_SAMPLE_RATE = 16000
CAPTURE_FRAME_SIZE = 4096
PCM16_NEGATIVE_SCALE = 32768
PCM16_POSITIVE_SCALE = 32767

# Message type constants (proxy to client)
MESSAGE_TYPE_ELEVENLABS_READY = "elevenlabsReady"
MESSAGE_TYPE_BACKEND_CONNECTED = "backendConnected"
MESSAGE_TYPE_CONVERSATION_ENDED = "conversationEnded"
MESSAGE_TYPE_ERROR = "error"

# Message type constants (agent service)
MESSAGE_TYPE_CONVERSATION_INITIATION_METADATA = "conversation_initiation_metadata"
MESSAGE_TYPE_USER_TRANSCRIPT = "user_transcript"
MESSAGE_TYPE_AGENT_RESPONSE = "agent_response"
MESSAGE_TYPE_VAD_SCORE = "vad_score"
MESSAGE_TYPE_AUDIO = "audio"
MESSAGE_TYPE_PING = "ping"

# Message type constants (client to agent service)
MESSAGE_TYPE_USER_AUDIO_CHUNK = "user_audio_chunk"
MESSAGE_TYPE_END_CONVERSATION = "end_conversation"

# WebSocket close codes
CLOSE_NORMAL = 1000
CLOSE_GOING_AWAY = 1001
CLOSE_ABNORMAL = 1006
CLOSE_INTERNAL_ERROR = 1011

# Close reasons
REASON_USER_ENDED = "user ended conversation"
REASON_CLIENT_DISCONNECTED = "client disconnected"
REASON_CLIENT_ERROR = "client error"
REASON_READY_TIMEOUT = "agent not ready"
REASON_PROXY_ERROR = "proxy error"
REASON_SERVER_SHUTDOWN = "server shutting down"

# WebSocket configuration for low latency
WS_MAX_SIZE = 16 * 1024 * 1024  # 16MB - large enough for audio chunks
DEFAULT_CONNECT_TIMEOUT = 30  # seconds
DEFAULT_READY_TIMEOUT = 30  # seconds
