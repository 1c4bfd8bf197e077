"""
Unit tests for the command line entry point.
"""

import pytest

from webworker.__main__ import build_parser, config_from_args, main
from webworker.config import ServerConfig


ENV_VARS = (
    "HTTP_HOST", "HTTP_PORT", "HTTP_WORKERS", "HTTP_TIMEOUT", "HTTP_ROOT_DIR",
    "HTTP_RESTRICT_TO_ROOT", "HTTP_SERVER_NAME", "HTTP_LOG_LEVEL", "HTTP_LOG_FORMAT",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Start every test without HTTP_* variables."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def parse(argv):
    """Resolve argv the way main() does: defaults, then env, then flags."""
    defaults = ServerConfig.from_env()
    args = build_parser(defaults).parse_args(argv)
    return config_from_args(args, defaults)


class TestDefaults:
    """No flags, no environment."""

    def test_matches_dataclass_defaults(self):
        config = parse([])

        assert config == ServerConfig()

    def test_pool_sizes_kept(self):
        config = parse([])

        assert config.min_workers == 4
        assert config.max_workers == 16


class TestEnvironment:
    """Environment variables override the defaults."""

    def test_env_values_used(self, monkeypatch, tmp_path):
        monkeypatch.setenv("HTTP_PORT", "3000")
        monkeypatch.setenv("HTTP_ROOT_DIR", str(tmp_path))
        monkeypatch.setenv("HTTP_SERVER_NAME", "Env/1.0")
        monkeypatch.setenv("HTTP_RESTRICT_TO_ROOT", "1")
        monkeypatch.setenv("HTTP_LOG_FORMAT", "json")

        config = parse([])

        assert config.port == 3000
        assert config.root_dir == str(tmp_path)
        assert config.server_name == "Env/1.0"
        assert config.restrict_to_root is True
        assert config.log_format == "json"

    def test_env_workers_is_max_workers(self, monkeypatch):
        monkeypatch.setenv("HTTP_WORKERS", "32")

        config = parse([])

        assert config.max_workers == 32
        assert config.min_workers == 4

    def test_env_timeout_zero_disables_timeout(self, monkeypatch):
        monkeypatch.setenv("HTTP_TIMEOUT", "0")

        assert parse([]).timeout is None


class TestFlags:
    """Flags override both the environment and the defaults."""

    def test_flags_beat_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("HTTP_PORT", "3000")
        monkeypatch.setenv("HTTP_SERVER_NAME", "Env/1.0")
        monkeypatch.setenv("HTTP_WORKERS", "32")

        config = parse([
            "--port", "9000",
            "--server-name", "Flag/1.0",
            "--workers", "3",
            "--root", str(tmp_path),
        ])

        assert config.port == 9000
        assert config.server_name == "Flag/1.0"
        assert config.min_workers == 3
        assert config.max_workers == 6
        assert config.root_dir == str(tmp_path)

    def test_short_flags(self):
        config = parse(["-H", "0.0.0.0", "-p", "8081", "-t", "2.5", "-l", "DEBUG"])

        assert config.host == "0.0.0.0"
        assert config.port == 8081
        assert config.timeout == 2.5
        assert config.log_level == "DEBUG"

    def test_timeout_zero_disables_timeout(self):
        assert parse(["--timeout", "0"]).timeout is None

    def test_restrict_root(self):
        assert parse(["--restrict-root"]).restrict_to_root is True

    def test_bad_log_format_rejected(self):
        with pytest.raises(SystemExit):
            parse(["--log-format", "xml"])


class TestMain:
    """Error exits from main()."""

    def test_missing_root_exits(self, tmp_path, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--root", str(tmp_path / "missing"), "--port", "0"])

        assert exc_info.value.code == 1
        assert "Document root does not exist" in capsys.readouterr().err

    def test_bad_env_exits(self, monkeypatch, capsys):
        monkeypatch.setenv("HTTP_PORT", "eighty")

        with pytest.raises(SystemExit) as exc_info:
            main([])

        assert exc_info.value.code == 1
        assert "bad environment setting" in capsys.readouterr().err

    def test_invalid_port_exits(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--port", "70000"])

        assert exc_info.value.code == 1
        assert "Invalid port" in capsys.readouterr().err

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])

        assert exc_info.value.code == 0
        assert "webworker" in capsys.readouterr().out
