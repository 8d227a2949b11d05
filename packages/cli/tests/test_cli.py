"""Tests for the CLI entry point."""

import subprocess
from unittest.mock import MagicMock, patch

import yaml
from click.testing import CliRunner

from scrutiny_cli.cli import main
from scrutiny_core.models import ChangeRecord
from scrutiny_core.runner import RunSummary, SourceReport
from scrutiny_store.sqlite import SQLiteStore

ENDPOINT = "https://review.example.org/"

CONFIG = """\
db: {db}
smtp_host: mail.example.org
sources:
  example:
    endpoint: https://review.example.org/
    projects: demo/app
    patterns: "[Ll]og"
    recipient: team@example.org
"""


def _write_config(tmp_path, db=None):
    db = db or str(tmp_path / "seen.db")
    cfg = tmp_path / ".scrutiny.yml"
    cfg.write_text(CONFIG.format(db=db))
    return str(cfg), db


class StubClient:
    def __init__(self, changes):
        self.changes = changes

    def query_open_changes(self, project):
        return list(self.changes)


def _change(id, message):
    return ChangeRecord(id=id, project="demo/app", subject="Fix", commit_message=message, source_endpoint=ENDPOINT)


# ---------------------------------------------------------------------------
# run command
# ---------------------------------------------------------------------------


class TestRunCommand:
    def test_missing_config_exits_non_zero(self, tmp_path):
        result = CliRunner().invoke(main, ["--config", str(tmp_path / "nope.yml"), "run"])
        assert result.exit_code != 0
        assert "Config file not found" in result.output

    def test_no_valid_source_exits_non_zero(self, tmp_path):
        cfg = tmp_path / ".scrutiny.yml"
        cfg.write_text("sources:\n  broken:\n    endpoint: https://a/\n")
        result = CliRunner().invoke(main, ["--config", str(cfg), "run"])
        assert result.exit_code != 0
        assert "No valid sources" in result.output

    def test_unopenable_store_exits_non_zero(self, tmp_path):
        config_path, _ = _write_config(tmp_path, db=str(tmp_path / "missing-dir" / "seen.db"))
        result = CliRunner().invoke(main, ["--config", config_path, "run"])
        assert result.exit_code != 0
        assert "Could not open store" in result.output

    def test_config_path_from_env(self, tmp_path, mocker):
        config_path, _ = _write_config(tmp_path)
        mocker.patch("scrutiny_cli.commands.run.build_client", return_value=StubClient([]))

        result = CliRunner().invoke(main, ["run"], env={"SCRUTINY_CONFIG": config_path})

        assert result.exit_code == 0

    def test_new_matches_are_mailed_once(self, tmp_path, mocker):
        config_path, db = _write_config(tmp_path)
        mocker.patch(
            "scrutiny_cli.commands.run.build_client",
            return_value=StubClient([_change(1, "Refactor flow"), _change(2, "Improve logging output")]),
        )
        send = mocker.patch("scrutiny_cli.commands.run.send_mail")

        first = CliRunner().invoke(main, ["--config", config_path, "run"])
        second = CliRunner().invoke(main, ["--config", config_path, "run"])

        assert first.exit_code == 0
        assert second.exit_code == 0
        send.assert_called_once()
        settings, recipient, body = send.call_args.args
        assert settings.host == "mail.example.org"
        assert recipient == "team@example.org"
        assert "https://review.example.org/2" in body
        assert "https://review.example.org/1" not in body

        store = SQLiteStore(db_path=db)
        assert [e.change_id for e in store.list_seen(ENDPOINT)] == ["2"]
        store.close()

    def test_per_source_failure_keeps_exit_code_zero(self, tmp_path, mocker):
        config_path, _ = _write_config(tmp_path)
        summary = RunSummary(sources=[SourceReport(name="example", endpoint=ENDPOINT, errors=["query failed: x"])])
        mocker.patch("scrutiny_cli.commands.run.run_watch", return_value=summary)

        result = CliRunner().invoke(main, ["--config", config_path, "run"])

        assert result.exit_code == 0
        assert "query failed" in result.output

    def test_shadow_prints_digest_and_leaves_store_untouched(self, tmp_path, mocker):
        config_path, db = _write_config(tmp_path)
        mocker.patch(
            "scrutiny_cli.commands.run.build_client",
            return_value=StubClient([_change(2, "Improve logging output")]),
        )
        send = mocker.patch("scrutiny_cli.commands.run.send_mail")

        result = CliRunner().invoke(main, ["--config", config_path, "run", "--shadow"])

        assert result.exit_code == 0
        send.assert_not_called()
        assert "https://review.example.org/2" in result.output
        assert "not sent" in result.output

        store = SQLiteStore(db_path=db)
        assert store.list_seen(ENDPOINT) == []
        store.close()

    def test_no_new_matches_message(self, tmp_path, mocker):
        config_path, _ = _write_config(tmp_path)
        mocker.patch("scrutiny_cli.commands.run.build_client", return_value=StubClient([]))

        result = CliRunner().invoke(main, ["--config", config_path, "run"])

        assert result.exit_code == 0
        assert "No new matching changes" in result.output


# ---------------------------------------------------------------------------
# seen command
# ---------------------------------------------------------------------------


class TestSeenCommand:
    def _seed(self, db, ids):
        store = SQLiteStore(db_path=db)
        store.ensure_partition(ENDPOINT)
        for change_id in ids:
            store.check_and_mark(ENDPOINT, change_id)
        store.close()

    def test_shows_table(self, tmp_path):
        config_path, db = _write_config(tmp_path)
        self._seed(db, ["101", "102"])

        result = CliRunner().invoke(main, ["--config", config_path, "seen"])

        assert result.exit_code == 0
        assert "101" in result.output
        assert "102" in result.output

    def test_empty_message(self, tmp_path):
        config_path, _ = _write_config(tmp_path)
        result = CliRunner().invoke(main, ["--config", config_path, "seen"])
        assert result.exit_code == 0
        assert "No reported changes recorded" in result.output

    def test_filters_by_endpoint(self, tmp_path):
        config_path, db = _write_config(tmp_path)
        self._seed(db, ["101"])

        result = CliRunner().invoke(main, ["--config", config_path, "seen", "--endpoint", "https://other/"])

        assert "No reported changes recorded" in result.output

    def test_limit_applied(self, tmp_path):
        config_path, db = _write_config(tmp_path)
        self._seed(db, ["9001", "9002", "9003"])

        result = CliRunner().invoke(main, ["--config", config_path, "seen", "--limit", "1"])

        assert result.exit_code == 0
        assert sum(i in result.output for i in ("9001", "9002", "9003")) == 1


# ---------------------------------------------------------------------------
# init command
# ---------------------------------------------------------------------------


class TestInitCommand:
    def test_writes_gerrit_source(self, tmp_path):
        cfg = tmp_path / ".scrutiny.yml"
        answers = "\n".join(
            [
                "opendev",
                "gerrit",
                "https://review.opendev.org/",
                "openstack/nova, openstack/nova",
                "CVE, [Ss]ecurity",
                "sec@example.org",
            ]
        )

        result = CliRunner().invoke(main, ["--config", str(cfg), "init"], input=answers + "\n")

        assert result.exit_code == 0
        config = yaml.safe_load(cfg.read_text())
        assert config["db"] == "scrutiny.db"
        source = config["sources"]["opendev"]
        assert source["endpoint"] == "https://review.opendev.org/"
        assert source["projects"] == ["openstack/nova"]
        assert source["patterns"] == ["CVE", "[Ss]ecurity"]
        assert source["recipient"] == "sec@example.org"
        assert "type" not in source

    def test_preserves_existing_sources(self, tmp_path):
        config_path, db = _write_config(tmp_path)
        answers = "\n".join(["gh", "github", "https://github.com", "octo/app", "hotfix", "gh@example.org"])

        result = CliRunner().invoke(main, ["--config", config_path, "init"], input=answers + "\n")

        assert result.exit_code == 0
        config = yaml.safe_load(open(config_path).read())
        assert list(config["sources"]) == ["example", "gh"]
        assert config["sources"]["gh"]["type"] == "github"
        assert config["db"] == db

    def test_declined_replace_writes_nothing(self, tmp_path):
        config_path, _ = _write_config(tmp_path)
        before = open(config_path).read()
        answers = "\n".join(["example", "gerrit", "https://x/", "p", "q", "r@example.org", "n"])

        result = CliRunner().invoke(main, ["--config", config_path, "init"], input=answers + "\n")

        assert result.exit_code == 0
        assert open(config_path).read() == before


# ---------------------------------------------------------------------------
# auth.py
# ---------------------------------------------------------------------------


class TestResolveGithubToken:
    def test_returns_env_var_when_set(self, monkeypatch):
        from scrutiny_cli.auth import resolve_github_token

        monkeypatch.setenv("GITHUB_TOKEN", "env-token")
        assert resolve_github_token() == "env-token"

    def test_falls_back_to_gh_cli(self, monkeypatch):
        from scrutiny_cli.auth import resolve_github_token

        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(returncode=0, stdout="gh-token\n")
            assert resolve_github_token() == "gh-token"

    def test_returns_none_when_gh_not_installed(self, monkeypatch):
        from scrutiny_cli.auth import resolve_github_token

        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        with patch("subprocess.run", side_effect=FileNotFoundError):
            assert resolve_github_token() is None

    def test_returns_none_when_gh_times_out(self, monkeypatch):
        from scrutiny_cli.auth import resolve_github_token

        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        with patch("subprocess.run", side_effect=subprocess.TimeoutExpired(cmd="gh", timeout=5)):
            assert resolve_github_token() is None

    def test_returns_none_when_gh_returns_empty(self, monkeypatch):
        from scrutiny_cli.auth import resolve_github_token

        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(returncode=0, stdout="   ")
            assert resolve_github_token() is None

    def test_gh_only_consulted_for_github_sources(self, tmp_path, monkeypatch, mocker):
        from scrutiny_cli.bootstrap import load_settings

        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        config_path, _ = _write_config(tmp_path)
        resolve = mocker.patch("scrutiny_cli.auth.resolve_github_token", return_value="gh-token")

        config, sources = load_settings(config_path)

        resolve.assert_not_called()
        assert config["github_token"] is None
        assert [s.name for s in sources] == ["example"]
