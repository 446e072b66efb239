import stat
from pathlib import Path

import pytest

from claude_relay import cli
from claude_relay.config_file import CONFIG_FILENAME, generate_sample_yaml


@pytest.fixture(autouse=True)
def _quiet(monkeypatch):
    monkeypatch.setattr(cli, "setup_logging", lambda: None)
    monkeypatch.delenv("CLAUDE_PATH", raising=False)
    monkeypatch.setattr(cli.settings, "claude_path", None)
    monkeypatch.setattr(cli.settings, "port", None)


def _install_cli(base: Path, body: str) -> None:
    path = base / ".bun" / "bin" / "claude"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("#!/bin/sh\n" + body, encoding="utf-8")
    path.chmod(path.stat().st_mode | stat.S_IXUSR)


def _authenticate(base: Path) -> None:
    home = base / ".claude-home"
    home.mkdir(parents=True, exist_ok=True)
    (home / ".claude.json").write_text('{"oauthAccount": {"accountUuid": "1"}}', encoding="utf-8")


def test_parse_args_defaults():
    args = cli.parse_args([])
    assert args.dir is None
    assert args.port is None
    assert args.message is None
    assert not args.status
    assert not args.login_url
    assert not args.init_config


def test_init_config_overwrites(tmp_path: Path, capsys):
    (tmp_path / CONFIG_FILENAME).write_text("context: old\n", encoding="utf-8")

    code = cli.main(["--dir", str(tmp_path), "--init-config"])

    assert code == 0
    assert (tmp_path / CONFIG_FILENAME).read_text(encoding="utf-8") == generate_sample_yaml()
    assert "Generated" in capsys.readouterr().out


def test_missing_binary_exits_with_error(tmp_path: Path, capsys):
    code = cli.main(["--dir", str(tmp_path), "--message", "hi"])

    assert code == 1
    assert "Claude CLI not found" in capsys.readouterr().err


def test_message_prints_reply(tmp_path: Path, capsys):
    _install_cli(tmp_path, 'input=$(cat)\nprintf "you said: %s" "$input"\n')
    _authenticate(tmp_path)
    # No initial context so the prompt reaches the CLI unchanged.
    (tmp_path / CONFIG_FILENAME).write_text("server:\n  port: 3000\n", encoding="utf-8")

    code = cli.main(["--dir", str(tmp_path), "--message", "hello"])

    assert code == 0
    assert capsys.readouterr().out.strip() == "you said: hello"


def test_message_reports_process_failure(tmp_path: Path, capsys):
    _install_cli(tmp_path, 'cat > /dev/null\necho "overloaded" >&2\nexit 1\n')
    _authenticate(tmp_path)

    code = cli.main(["--dir", str(tmp_path), "--message", "hello"])

    assert code == 1
    assert "Claude command failed: overloaded" in capsys.readouterr().err


def test_message_reports_authentication_required(tmp_path: Path, capsys):
    _install_cli(tmp_path, 'cat > /dev/null\necho "Invalid API key" >&2\nexit 1\n')
    _authenticate(tmp_path)

    code = cli.main(["--dir", str(tmp_path), "--message", "hello"])

    err = capsys.readouterr().err
    assert code == 1
    assert "Authentication required" in err
    assert "setup-token" in err


def test_status_when_ready(tmp_path: Path, capsys):
    _install_cli(tmp_path, "exit 0\n")
    _authenticate(tmp_path)

    code = cli.main(["--dir", str(tmp_path), "--status"])

    out = capsys.readouterr().out
    assert code == 0
    assert "Claude installed: true" in out
    assert "Authenticated: true (Authenticated)" in out
    assert "Ready to start server!" in out


def test_login_url_prints_fallback(tmp_path: Path, capsys, monkeypatch):
    _install_cli(tmp_path, "exit 0\n")
    monkeypatch.setattr(cli, "get_auth_url", lambda env, timeout=10.0: f"Run: {env.claude_path} setup-token")

    code = cli.main(["--dir", str(tmp_path), "--login-url"])

    assert code == 0
    assert capsys.readouterr().out.strip().endswith("claude setup-token")


def test_server_runs_with_configured_port(tmp_path: Path, monkeypatch):
    _install_cli(tmp_path, "exit 0\n")
    _authenticate(tmp_path)
    calls = {}

    import uvicorn

    def fake_run(app, host, port, log_config):
        calls.update(app=app, host=host, port=port)

    monkeypatch.setattr(uvicorn, "run", fake_run)

    code = cli.main(["--dir", str(tmp_path), "--port", "8765", "--host", "127.0.0.1"])

    assert code == 0
    assert calls["host"] == "127.0.0.1"
    assert calls["port"] == 8765
    assert calls["app"].state.environment.base_dir == tmp_path.resolve()
