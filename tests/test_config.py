"""Tests for configuration loading, the event channel and the CLI wiring."""

from __future__ import annotations

import json

import pytest

from lifx_client import cli
from lifx_client.config import Config, load_config
from lifx_client.events import EventChannel


class TestConfig:
    def test_defaults(self):
        config = Config()
        assert config.lan.port == 56700
        assert config.lan.timeout == 1.0
        assert config.lan.send_interval == 0.05
        assert config.rest.base_url == "https://api.lifx.com"

    def test_camel_case_keys(self):
        config = Config(lan={"broadcastAddress": "192.168.1.255", "bindPort": 56701})
        assert config.lan.broadcast_address == "192.168.1.255"
        assert config.lan.bind_port == 56701

    def test_port_range(self):
        with pytest.raises(ValueError):
            Config(lan={"port": 70000})

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("LIFX_REST__SECRET", "from-env")
        assert Config().rest.secret == "from-env"

    def test_load_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"rest": {"secret": "abc"}, "lan": {"timeout": 2.5}}))
        config = load_config(path)
        assert config.rest.secret == "abc"
        assert config.lan.timeout == 2.5

    def test_missing_file_uses_defaults(self, tmp_path):
        assert load_config(tmp_path / "missing.json").lan.port == 56700

    def test_invalid_file_uses_defaults(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{not json")
        assert load_config(path).rest.secret == ""


class TestEventChannel:
    def test_emit_in_registration_order(self):
        events = EventChannel()
        calls = []
        events.on("message", lambda x: calls.append(("a", x)))
        events.on("message", lambda x: calls.append(("b", x)))
        assert events.emit("message", 1) == 2
        assert calls == [("a", 1), ("b", 1)]

    def test_off(self):
        events = EventChannel()
        calls = []
        events.on("error", calls.append)
        events.off("error", calls.append)
        events.off("error", calls.append)  # unknown handler is ignored
        assert events.emit("error", "boom") == 0
        assert calls == []

    def test_failing_handler_does_not_stop_delivery(self):
        events = EventChannel()
        calls = []

        def broken(_):
            raise RuntimeError("handler bug")

        events.on("message", broken)
        events.on("message", calls.append)
        events.emit("message", "x")
        assert calls == ["x"]


class TestCli:
    def test_parser(self):
        args = cli.build_parser().parse_args(["discover", "--timeout", "0.5", "--port", "56700"])
        assert args.command == "discover"
        assert args.timeout == 0.5
        assert args.port == 56700

    def test_parser_requires_command(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args([])

    def test_lights_without_secret_fails(self, tmp_path, monkeypatch):
        monkeypatch.delenv("LIFX_REST__SECRET", raising=False)
        code = cli.main(["--config", str(tmp_path / "none.json"), "--log-level", "ERROR", "lights"])
        assert code == 1
