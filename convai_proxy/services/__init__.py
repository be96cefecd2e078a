"""
Services module for external API integrations.

Key components:
- agent_client: ``AgentServiceConnector``, which opens the upstream WebSocket to
  the conversational-agent service with the configured agent identifier and
  API-key header, bounded by a connect timeout.

Usage examples:
```python
from convai_proxy.services.agent_client import AgentServiceConnector

connector = AgentServiceConnector(api_key, agent_id)
upstream = await connector.connect()
```
"""

# Services module initialization
