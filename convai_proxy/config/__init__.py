"""
Configuration module for the conversational-agent proxy.

Key components:
- constants: protocol message types, audio parameters, close codes and reasons.
- logging_config: console and rotating-file logging under one named logger.
- settings: environment-driven server settings (credentials, timeouts, paths).

Usage examples:
```python
from convai_proxy.config.logging_config import configure_logging
from convai_proxy.config.settings import ProxySettings

logger = configure_logging()
settings = ProxySettings.from_env()
logger.info(f"Upstream configured: {settings.credentials_configured}")
```
"""

# Config module initialization
