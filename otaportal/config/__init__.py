"""
Centralized configuration package for the OTA portal.

`env` holds the configuration schema and its process-wide accessor;
`constants` holds fixed limits that are part of the API contract.
"""

from .env import EnvConfig, get_config, init_config, reset_config

__all__ = [
  "EnvConfig",
  "get_config",
  "init_config",
  "reset_config",
]
