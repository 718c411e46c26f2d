"""
Unit tests for ServerConfig.
"""

import pytest

from staticserver import __version__
from staticserver.config import ServerConfig


class TestDefaults:

    def test_defaults(self):
        config = ServerConfig()

        assert config.directory == "."
        assert config.host is None
        assert config.port is None
        assert config.ipv6 is False
        assert config.handlers == []
        assert config.log_level == "INFO"
        assert config.server_name == f"static-server/{__version__}"

    def test_handlers_not_shared_between_instances(self):
        first, second = ServerConfig(), ServerConfig()
        first.handlers.append(object())

        assert second.handlers == []

    def test_unset_port_binds_zero(self):
        assert ServerConfig().bind_port == 0
        assert ServerConfig(port=8080).bind_port == 8080


class TestFromEnv:

    def test_reads_variables(self):
        config = ServerConfig.from_env({
            "STATIC_DIR": "/srv/www",
            "STATIC_HOST": "localhost",
            "STATIC_PORT": "8080",
            "STATIC_LOG_LEVEL": "debug",
        })

        assert config.directory == "/srv/www"
        assert config.host == "localhost"
        assert config.port == 8080
        assert config.log_level == "DEBUG"

    def test_port_fallback(self):
        assert ServerConfig.from_env({"PORT": "5000"}).port == 5000

    def test_static_port_wins_over_port(self):
        config = ServerConfig.from_env({"PORT": "5000", "STATIC_PORT": "6000"})

        assert config.port == 6000

    def test_empty_environment_gives_defaults(self):
        assert ServerConfig.from_env({}) == ServerConfig()

    def test_overrides_win(self):
        config = ServerConfig.from_env({"STATIC_PORT": "8080"}, port=9090)

        assert config.port == 9090

    def test_invalid_port(self):
        with pytest.raises(ValueError, match="Invalid port"):
            ServerConfig.from_env({"STATIC_PORT": "http"})

    def test_reads_os_environ_by_default(self, monkeypatch):
        monkeypatch.setenv("STATIC_HOST", "example.test")

        assert ServerConfig.from_env().host == "example.test"


class TestValidate:

    def test_defaults_are_valid(self):
        ServerConfig().validate()

    @pytest.mark.parametrize("port", [0, 80, 65535])
    def test_valid_ports(self, port):
        ServerConfig(port=port).validate()

    @pytest.mark.parametrize("port", [-1, 65536])
    def test_invalid_ports(self, port):
        with pytest.raises(ValueError, match="Invalid port"):
            ServerConfig(port=port).validate()

    def test_worker_counts(self):
        with pytest.raises(ValueError, match="min_workers"):
            ServerConfig(min_workers=0).validate()
        with pytest.raises(ValueError, match="max_workers"):
            ServerConfig(min_workers=8, max_workers=4).validate()

    def test_buffer_size(self):
        with pytest.raises(ValueError, match="buffer_size"):
            ServerConfig(buffer_size=10).validate()

    def test_timeout(self):
        with pytest.raises(ValueError, match="timeout"):
            ServerConfig(timeout=0).validate()

    def test_log_level(self):
        ServerConfig(log_level="warning").validate()

        with pytest.raises(ValueError, match="Invalid log level"):
            ServerConfig(log_level="LOUD").validate()
