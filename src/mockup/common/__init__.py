"""
Mockup Common Utilities

Shared utilities and helpers used across Mockup modules.
"""

from .utils import (
    ConfigInvalid,
    ConfigLoader,
    ConfigYamlLoader,
    describe_config,
    get_previous_secrets_from_env,
    get_session_secret_from_env,
    join_uri,
)

__all__ = [
    'ConfigInvalid',
    'ConfigLoader',
    'ConfigYamlLoader',
    'describe_config',
    'get_previous_secrets_from_env',
    'get_session_secret_from_env',
    'join_uri',
]
