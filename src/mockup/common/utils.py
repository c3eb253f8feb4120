"""
Mockup Common Utilities

Shared helpers for configuration loading, secrets and URI handling.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, List

import yaml

SESSION_SECRET_ENV = 'MOCKUP_SESSION_SECRET'
PREVIOUS_SECRETS_ENV = 'MOCKUP_PREVIOUS_SESSION_SECRETS'

# Mock-only signing key used when no secret is configured
DEFAULT_SESSION_SECRET = 'wst-mockup-development-secret'

TIMESTAMP_TAG = 'tag:yaml.org,2002:timestamp'


class ConfigInvalid(ValueError):
    """Raised when the configuration document is missing or malformed."""


class ConfigYamlLoader(yaml.SafeLoader):
    """
    SafeLoader that keeps dates and timestamps as plain strings.

    Fixture bodies are served as JSON, which has no date type: an unquoted
    `2025-01-15` stays the string it was written as.
    """


ConfigYamlLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != TIMESTAMP_TAG]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}
ConfigYamlLoader.add_constructor(TIMESTAMP_TAG, yaml.SafeLoader.construct_yaml_str)


def get_session_secret_from_env() -> str:
    """
    Retrieve the session signing secret from the environment.

    Secrets are only read from environment variables, never from CLI
    arguments, so they do not end up in process lists or shell history.

    Returns:
        Value of MOCKUP_SESSION_SECRET, or the fixed development secret
    """
    return os.environ.get(SESSION_SECRET_ENV) or DEFAULT_SESSION_SECRET


def get_previous_secrets_from_env() -> List[str]:
    """
    Retrieve rotated-out secrets that are still accepted for verification.

    Returns:
        Secrets from MOCKUP_PREVIOUS_SESSION_SECRETS (comma-separated)
    """
    raw = os.environ.get(PREVIOUS_SECRETS_ENV, '')
    return [secret.strip() for secret in raw.split(',') if secret.strip()]


def join_uri(base: str, path: str) -> str:
    """Join a base URI prefix and an absolute path with exactly one slash."""
    base = (base or '').rstrip('/')
    if base and not base.startswith('/'):
        base = '/' + base
    return f"{base}/{path.lstrip('/')}"


class ConfigLoader:
    """
    Loader for mockup configuration documents.

    Handles the supported formats:
    - .json files (parsed with json)
    - .yaml / .yml files (safe YAML, timestamps kept as strings)

    Validation of the content is left to MockupConfig.from_dict().

    Example:
        loader = ConfigLoader("config.json")
        data = loader.load()

        for route_key in data.get('services', {}):
            print(route_key)
    """

    def __init__(self, file_path: str):
        """
        Initialize config loader.

        Args:
            file_path: Path to configuration file
        """
        self.file_path = Path(file_path)

    def load(self) -> Dict[str, Any]:
        """
        Read and parse the configuration document.

        Returns:
            Configuration document as a dictionary

        Raises:
            ConfigInvalid: If the file is missing, unparsable or not an object
        """
        if not self.file_path.exists():
            raise ConfigInvalid(f"Configuration file not found: {self.file_path}")

        text = self.file_path.read_text(encoding='utf-8')
        suffix = self.file_path.suffix.lower()

        try:
            if suffix in ('.yaml', '.yml'):
                data = yaml.load(text, Loader=ConfigYamlLoader)
            else:
                data = json.loads(text)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise ConfigInvalid(f"Failed to parse {self.file_path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigInvalid(
                f"Unexpected configuration format in {self.file_path}. "
                f"Expected an object, got {type(data).__name__}"
            )
        return data


def describe_config(config: Any) -> List[str]:
    """Human-readable summary of a MockupConfig, printed at startup."""
    lines = [f"   Services loaded: {len(config.fixtures)}"]
    for fixture in config.fixtures:
        lines.append(f"     - {fixture.method:<7} {fixture.path}")
    lines.append(f"   Users: {len(config.users)}")
    lines.append(f"   Response time: {config.response_time.min}-{config.response_time.max} ms")
    return lines
