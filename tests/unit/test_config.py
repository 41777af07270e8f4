"""
Unit tests for server configuration.
"""

import dataclasses

import pytest

from minihttpd.config import DEFAULT_MAX_REQUEST_SIZE, ServerConfig


class TestDefaults:

    def test_defaults(self):
        config = ServerConfig()

        assert config.host == "127.0.0.1"
        assert config.port == 8080
        assert config.max_connections == 10
        assert config.timeout == 30.0
        assert config.static_root is None
        assert config.safe_static_paths is True
        assert config.max_request_size == DEFAULT_MAX_REQUEST_SIZE == 30000
        assert dict(config.routes) == {}

    def test_defaults_are_valid(self):
        ServerConfig().validate()


class TestImmutability:
    """Handlers share one config, so it must not change under them."""

    def test_fields_are_frozen(self):
        config = ServerConfig()

        with pytest.raises(dataclasses.FrozenInstanceError):
            config.port = 9090

    def test_routes_are_read_only(self):
        config = ServerConfig(routes={"/": "<h1>Home</h1>"})

        with pytest.raises(TypeError):
            config.routes["/new"] = "x"

    def test_routes_are_copied(self):
        routes = {"/": "<h1>Home</h1>"}
        config = ServerConfig(routes=routes)
        routes["/late"] = "x"

        assert "/late" not in config.routes

    def test_path_static_root_becomes_str(self, tmp_path):
        config = ServerConfig(static_root=tmp_path)

        assert config.static_root == str(tmp_path)
        assert isinstance(config.static_root, str)

    def test_with_overrides_leaves_original(self):
        config = ServerConfig(port=8080)
        other = config.with_overrides(port=9090, routes={"/a": "b"})

        assert config.port == 8080
        assert dict(config.routes) == {}
        assert other.port == 9090
        assert dict(other.routes) == {"/a": "b"}


class TestValidate:

    @pytest.mark.parametrize("kwargs,message", [
        (dict(port=-1), "Invalid port"),
        (dict(port=70000), "Invalid port"),
        (dict(max_connections=0), "max_connections"),
        (dict(backlog=0), "backlog"),
        (dict(buffer_size=100), "buffer_size"),
        (dict(max_request_size=2048, buffer_size=4096), "max_request_size"),
        (dict(timeout=0), "timeout"),
        (dict(timeout=-3.0), "timeout"),
        (dict(routes={"about": "x"}), "must start with '/'"),
    ])
    def test_invalid_values(self, kwargs: dict, message: str):
        with pytest.raises(ValueError, match=message):
            ServerConfig(**kwargs).validate()

    def test_port_zero_and_no_timeout_are_valid(self):
        ServerConfig(port=0, timeout=None).validate()


class TestFromEnv:

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("HTTP_HOST", "0.0.0.0")
        monkeypatch.setenv("HTTP_PORT", "3000")
        monkeypatch.setenv("HTTP_MAX_CONNECTIONS", "4")
        monkeypatch.setenv("HTTP_STATIC_ROOT", "/srv/public")
        monkeypatch.setenv("HTTP_TIMEOUT", "2.5")
        monkeypatch.setenv("HTTP_LOG_LEVEL", "DEBUG")

        config = ServerConfig.from_env()

        assert config.host == "0.0.0.0"
        assert config.port == 3000
        assert config.max_connections == 4
        assert config.static_root == "/srv/public"
        assert config.timeout == 2.5
        assert config.log_level == "DEBUG"

    def test_missing_variables_use_defaults(self, monkeypatch):
        for name in ("HTTP_HOST", "HTTP_PORT", "HTTP_MAX_CONNECTIONS",
                     "HTTP_STATIC_ROOT", "HTTP_TIMEOUT", "HTTP_LOG_LEVEL"):
            monkeypatch.delenv(name, raising=False)

        assert ServerConfig.from_env() == ServerConfig()

    def test_zero_timeout_means_none(self, monkeypatch):
        monkeypatch.setenv("HTTP_TIMEOUT", "0")

        assert ServerConfig.from_env().timeout is None

    def test_overrides_win(self, monkeypatch):
        monkeypatch.setenv("HTTP_PORT", "3000")

        assert ServerConfig.from_env(port=4000).port == 4000

    def test_bad_number_raises(self, monkeypatch):
        monkeypatch.setenv("HTTP_PORT", "eighty")

        with pytest.raises(ValueError):
            ServerConfig.from_env()
