"""Tests for API key lookup and client configuration loading."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import httpx
import pytest

from geminifs.config import ClientConfig, get_api_key, load_client_config
from geminifs.search.query import GroundedQueryExecutor
from geminifs.transport import GeminiTransport


class TestGetApiKey:
    def test_keyring_first(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "env-key")
        with patch("geminifs.config.keyring.get_password", return_value="ring-key") as get:
            assert get_api_key() == "ring-key"
        get.assert_called_once_with("geminifs", "api_key")

    def test_env_fallback(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "env-key")
        with patch("geminifs.config.keyring.get_password", return_value=None):
            assert get_api_key() == "env-key"

    def test_missing_everywhere(self, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        with patch("geminifs.config.keyring.get_password", return_value=None):
            with pytest.raises(RuntimeError, match="set-api-key"):
                get_api_key()


class TestClientConfig:
    def test_defaults(self):
        config = ClientConfig()
        assert config.api_version == "v1beta"
        assert config.poll_timeout_seconds == 300
        assert config.poll_interval_seconds == 5
        assert config.default_model == "gemini-2.5-flash"

    def test_transport_and_query_share_config_defaults(self):
        config = ClientConfig()
        transport = GeminiTransport(api_key="k", client=httpx.AsyncClient())
        assert transport.base_url == config.base_url
        assert transport.api_version == config.api_version
        assert GroundedQueryExecutor(transport).default_model == config.default_model

    @pytest.mark.parametrize("timeout", [9, 3601])
    def test_timeout_bounds(self, timeout):
        with pytest.raises(ValueError, match="poll_timeout_seconds"):
            ClientConfig(poll_timeout_seconds=timeout)

    @pytest.mark.parametrize("interval", [0, 61])
    def test_interval_bounds(self, interval):
        with pytest.raises(ValueError, match="poll_interval_seconds"):
            ClientConfig(poll_interval_seconds=interval)

    def test_bounds_inclusive(self):
        ClientConfig(poll_timeout_seconds=10, poll_interval_seconds=60)
        ClientConfig(poll_timeout_seconds=3600, poll_interval_seconds=1)


class TestLoadClientConfig:
    def test_missing_file_uses_defaults(self, tmp_path: Path):
        with patch("geminifs.config.keyring.get_password", return_value=None):
            config = load_client_config(tmp_path / "nope.json")
        assert config == ClientConfig()

    def test_file_overrides_and_unknown_keys_ignored(self, tmp_path: Path):
        path = tmp_path / "geminifs.json"
        path.write_text(
            json.dumps(
                {
                    "poll_timeout_seconds": 600,
                    "default_model": "gemini-2.5-pro",
                    "not_a_setting": True,
                }
            )
        )
        with patch("geminifs.config.keyring.get_password", return_value="ring-key"):
            config = load_client_config(path)
        assert config.poll_timeout_seconds == 600
        assert config.default_model == "gemini-2.5-pro"
        assert config.api_key == "ring-key"

    def test_file_api_key_not_overridden(self, tmp_path: Path):
        path = tmp_path / "geminifs.json"
        path.write_text(json.dumps({"api_key": "file-key"}))
        with patch("geminifs.config.keyring.get_password", return_value="ring-key"):
            assert load_client_config(path).api_key == "file-key"

    def test_out_of_bounds_file_value(self, tmp_path: Path):
        path = tmp_path / "geminifs.json"
        path.write_text(json.dumps({"poll_interval_seconds": 120}))
        with pytest.raises(ValueError):
            load_client_config(path)
