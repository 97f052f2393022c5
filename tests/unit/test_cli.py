"""
Unit tests for the command-line entry point.
"""

import socket

import pytest

from eventchat import __main__ as cli


@pytest.fixture(autouse=True)
def no_logging_setup(monkeypatch):
    """Keep main() from replacing pytest's log handlers."""
    monkeypatch.setattr(cli, "setup_logging", lambda *args, **kwargs: None)
    for name in ("CHAT_HOST", "CHAT_PORT", "CHAT_LOG_LEVEL", "CHAT_LOG_FORMAT"):
        monkeypatch.delenv(name, raising=False)


class TestArguments:
    def test_defaults(self):
        args = cli.build_parser().parse_args([])
        config = cli.config_from_args(args)

        assert args.command == "serve"
        assert config.port == 5000
        assert config.host == "0.0.0.0"

    def test_flags_override_environment(self, monkeypatch):
        monkeypatch.setenv("CHAT_PORT", "6000")
        monkeypatch.setenv("CHAT_HOST", "10.0.0.1")

        args = cli.build_parser().parse_args(["serve", "--port", "7000", "--log-format", "json"])
        config = cli.config_from_args(args)

        assert config.port == 7000
        assert config.host == "10.0.0.1"
        assert config.log_format == "json"

    def test_console_command(self):
        assert cli.build_parser().parse_args(["console"]).command == "console"

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc:
            cli.build_parser().parse_args(["--version"])

        assert exc.value.code == 0
        assert "eventchat" in capsys.readouterr().out


class TestExitStatus:
    def test_bind_failure_exits_1(self, caplog):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as blocker:
            blocker.bind(("127.0.0.1", 0))
            blocker.listen(1)
            port = blocker.getsockname()[1]

            status = cli.main(["serve", "--host", "127.0.0.1", "--port", str(port)])

        assert status == 1
        assert f"Failed to open port {port}" in caplog.text

    def test_invalid_config_exits_1(self, capsys):
        assert cli.main(["serve", "--port", "70000"]) == 1
        assert "Invalid port" in capsys.readouterr().err
