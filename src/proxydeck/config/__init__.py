"""Configuration loading and validation for ProxyDeck.

Main components:
- load_deployment_config: Merge CLI overrides, .env file and environment
- Default values for every overridable setting
- Validation helpers for pydantic errors
"""

from proxydeck.config.env_loader import get_env_var, load_env_file
from proxydeck.config.loader import load_deployment_config

__all__ = [
    "get_env_var",
    "load_deployment_config",
    "load_env_file",
]
