"""
Conversational Agent Proxy - real-time voice relay to the ElevenLabs Conversational AI API

This application pairs every voice-client WebSocket connection with its own
connection to a conversational agent and relays messages between them. Client
audio is only forwarded once the agent has signalled that the conversation is
initialized, and a close on either side ends both connections.

Architecture Overview:
- FastAPI server exposing one WebSocket endpoint for voice clients
- One proxy session per client connection, with one receive task per direction
- Pydantic envelope models decoded at the socket boundary
- A Python voice client that captures, resamples and encodes microphone audio
  and plays agent audio through a strictly sequential queue

Key Components:
- proxy: the per-connection session state machine
- services: the upstream agent-service connector
- models: message envelope schemas
- client: the voice client and its audio pipeline
- config: constants, settings and logging setup
- websocket_manager: accepts client connections and runs their sessions

Getting Started:
1. Set up environment variables (or a .env file):
   - ELEVENLABS_API_KEY: Your ElevenLabs API key
   - AGENT_ID: The conversational agent to talk to
   - PORT: Port to run the server on (default 3000)
   - LOG_LEVEL: Logging level (default INFO)

2. Start the server:
   ```bash
   python run.py
   ```

3. Start a voice client:
   ```bash
   python -m convai_proxy.client --url ws://localhost:3000/audio-stream
   ```
"""
