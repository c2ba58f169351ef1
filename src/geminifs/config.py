"""Configuration loading and API key lookup.

The client core never reads configuration itself: credentials and settings
are resolved here (or by the embedding application) and handed in.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, fields
from pathlib import Path

import keyring

SERVICE_NAME = "geminifs"
KEY_NAME = "api_key"
ENV_VAR = "GEMINI_API_KEY"

DEFAULT_CONFIG_PATH = Path("config/geminifs.json")

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com"
DEFAULT_API_VERSION = "v1beta"
DEFAULT_REQUEST_TIMEOUT = 60.0
DEFAULT_MODEL = "gemini-2.5-flash"

POLL_TIMEOUT_BOUNDS = (10, 3600)
POLL_INTERVAL_BOUNDS = (1, 60)


def get_api_key() -> str:
    """Get the Gemini API key: system keyring first, then ``GEMINI_API_KEY``.

    Returns:
        API key string.

    Raises:
        RuntimeError: If no key is found anywhere, with setup instructions.
    """
    api_key = keyring.get_password(SERVICE_NAME, KEY_NAME)
    if api_key:
        return api_key

    api_key = os.environ.get(ENV_VAR)
    if api_key:
        return api_key

    raise RuntimeError(
        "Gemini API key not found.\n"
        "Set it with: geminifs config set-api-key YOUR_KEY\n"
        f"Or: export {ENV_VAR}=your-key"
    )


@dataclass
class ClientConfig:
    """Settings for :class:`~geminifs.client.GeminiFileStoreClient`.

    Poll bounds mirror what the service tolerates in practice: waits of
    10s-1h, polled every 1-60s.
    """

    api_key: str | None = None
    base_url: str = DEFAULT_BASE_URL
    api_version: str = DEFAULT_API_VERSION
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    poll_timeout_seconds: int = 300
    poll_interval_seconds: int = 5
    default_model: str = DEFAULT_MODEL

    def __post_init__(self) -> None:
        _check_bounds("poll_timeout_seconds", self.poll_timeout_seconds, POLL_TIMEOUT_BOUNDS)
        _check_bounds("poll_interval_seconds", self.poll_interval_seconds, POLL_INTERVAL_BOUNDS)
        if self.request_timeout <= 0:
            raise ValueError(f"request_timeout must be positive, got {self.request_timeout}")


def _check_bounds(name: str, value: float, bounds: tuple[int, int]) -> None:
    low, high = bounds
    if not low <= value <= high:
        raise ValueError(f"{name} must be between {low} and {high}, got {value}")


def load_client_config(config_path: Path | None = None) -> ClientConfig:
    """Load client configuration from JSON, falling back to defaults.

    Reads ``config/geminifs.json`` when *config_path* is ``None``.  A missing
    file yields the defaults; unrecognised keys are ignored.  When the file
    does not supply an API key it is looked up in the system keyring.

    Args:
        config_path: Optional explicit path to the JSON config.

    Returns:
        A validated :class:`ClientConfig`.

    Raises:
        ValueError: If a poll setting is out of bounds.
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    data: dict = {}
    if config_path.exists():
        with open(config_path) as f:
            data = json.load(f)

    field_names = {f.name for f in fields(ClientConfig)}
    kwargs = {k: v for k, v in data.items() if k in field_names}
    config = ClientConfig(**kwargs)

    if config.api_key is None:
        config.api_key = keyring.get_password(SERVICE_NAME, KEY_NAME)

    return config
