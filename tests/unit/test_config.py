"""
Unit tests for ServerConfig.
"""

import pytest

from simplewebserver.config import ServerConfig


class TestServerConfig:

    def test_defaults(self):
        config = ServerConfig()

        assert config.chunk_size == 4096
        assert config.index_file == "index.html"
        assert config.log_format == "text"
        config.validate()

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("SWS_TIMEOUT", "12.5")
        monkeypatch.setenv("SWS_STOP_TIMEOUT", "1")
        monkeypatch.setenv("SWS_CHUNK_SIZE", "1024")
        monkeypatch.setenv("SWS_INDEX_FILE", "default.html")
        monkeypatch.setenv("SWS_LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("SWS_LOG_FORMAT", "json")

        config = ServerConfig.from_env()

        assert config.timeout == 12.5
        assert config.stop_timeout == 1.0
        assert config.chunk_size == 1024
        assert config.index_file == "default.html"
        assert config.log_level == "DEBUG"
        assert config.log_format == "json"

    def test_from_env_defaults(self, monkeypatch):
        for name in ["SWS_TIMEOUT", "SWS_STOP_TIMEOUT", "SWS_CHUNK_SIZE",
                     "SWS_INDEX_FILE", "SWS_LOG_LEVEL", "SWS_LOG_FORMAT"]:
            monkeypatch.delenv(name, raising=False)

        assert ServerConfig.from_env() == ServerConfig()

    @pytest.mark.parametrize("kwargs", [
        {"backlog": 0},
        {"buffer_size": 100},
        {"chunk_size": 0},
        {"timeout": 0},
        {"accept_poll_interval": 0},
        {"stop_timeout": -1},
        {"log_format": "xml"},
    ])
    def test_validate_rejects(self, kwargs):
        with pytest.raises(ValueError):
            ServerConfig(**kwargs).validate()

    def test_timeout_none_is_allowed(self):
        ServerConfig(timeout=None).validate()
