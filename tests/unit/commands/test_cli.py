"""Tests for the codewith CLI.

Tests cover:
- provider add / list / show / current / export / switch / remove
- Error display and exit codes (unknown provider, active provider, corrupt store)
- store reset, migrate, plugin and sync commands
- version output and the cli_main exit codes
"""

import json
import logging
from pathlib import Path
from unittest.mock import patch

import pytest
import yaml
from typer.testing import CliRunner

from codewith.cli import app, cli_main
from codewith.config.paths import CodewithPaths
from codewith.models import AppType
from codewith.utils.log_utils import PACKAGE_LOGGER

runner = CliRunner()

ENV = {"CODEWITH_LOG_FILE_ENABLED": "false"}

ACME_YAML = """\
id: acme
name: Acme Relay
category: third_party
settingsConfig:
  env:
    ANTHROPIC_AUTH_TOKEN: sk-acme-secret
    ANTHROPIC_BASE_URL: https://acme.example
"""


@pytest.fixture(autouse=True)
def _restore_package_logger():
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    saved = (package_logger.level, list(package_logger.handlers), package_logger.propagate)
    yield
    package_logger.setLevel(saved[0])
    package_logger.handlers[:] = saved[1]
    package_logger.propagate = saved[2]


@pytest.fixture
def cli(home: Path):
    """Invoke the CLI against the temporary home directory."""

    def invoke(*args: str, input: str | None = None):
        return runner.invoke(app, ["--home", str(home), *args], input=input, env=ENV)

    return invoke


@pytest.fixture
def acme_file(tmp_path: Path) -> Path:
    path = tmp_path / "acme.yaml"
    path.write_text(ACME_YAML, encoding="utf-8")
    return path


class TestVersion:
    def test_version_command(self):
        result = runner.invoke(app, ["version"], env=ENV)
        assert result.exit_code == 0
        assert "codewith" in result.output

    def test_version_flag(self):
        result = runner.invoke(app, ["--version"], env=ENV)
        assert result.exit_code == 0
        assert "version" in result.output


class TestProviderCommands:
    """Tests for `codewith provider ...`."""

    def test_add_and_switch(self, cli, acme_file: Path, paths: CodewithPaths):
        result = cli("provider", "add", "claude", str(acme_file), "--switch")

        assert result.exit_code == 0, result.output
        assert "Added provider 'acme'" in result.output
        assert "Switched claude to provider 'acme'" in result.output
        live = json.loads(paths.claude_settings.read_text(encoding="utf-8"))
        assert live["env"]["ANTHROPIC_AUTH_TOKEN"] == "sk-acme-secret"

    def test_list_marks_active_provider(self, cli, acme_file: Path):
        cli("provider", "add", "claude", str(acme_file), "--switch")

        result = cli("provider", "list", "claude")

        assert result.exit_code == 0
        assert "acme" in result.output
        assert "●" in result.output

    def test_list_empty_app(self, cli):
        result = cli("provider", "list", "gemini")
        assert result.exit_code == 0
        assert "No providers configured for gemini" in result.output

    def test_show_masks_credentials(self, cli, acme_file: Path):
        cli("provider", "add", "claude", str(acme_file))

        masked = cli("provider", "show", "claude", "acme")
        revealed = cli("provider", "show", "claude", "acme", "--reveal")

        assert masked.exit_code == 0
        assert "sk-acme-secret" not in masked.output
        assert "[REDACTED]" in masked.output
        assert "sk-acme-secret" in revealed.output

    def test_current_prints_live_config(self, cli, acme_file: Path):
        cli("provider", "add", "claude", str(acme_file), "--switch")

        result = cli("provider", "current", "claude")

        assert result.exit_code == 0
        assert "Active provider: acme" in result.output
        assert "https://acme.example" in result.output
        assert "sk-acme-secret" not in result.output

    def test_export_round_trips_through_add(self, cli, acme_file: Path, tmp_path: Path):
        cli("provider", "add", "claude", str(acme_file))
        masked_file = tmp_path / "masked.yaml"
        full_file = tmp_path / "full.yaml"

        masked = cli("provider", "export", "claude", "acme", str(masked_file))
        full = cli("provider", "export", "claude", "acme", str(full_file), "--reveal")

        assert masked.exit_code == 0
        assert full.exit_code == 0
        assert "sk-acme-secret" not in masked_file.read_text(encoding="utf-8")
        exported = yaml.safe_load(full_file.read_text(encoding="utf-8"))
        assert exported["settingsConfig"]["env"]["ANTHROPIC_AUTH_TOKEN"] == "sk-acme-secret"

        added = cli("provider", "add", "gemini", str(full_file))
        assert added.exit_code == 0

    def test_duplicate_add(self, cli, acme_file: Path):
        cli("provider", "add", "claude", str(acme_file))
        result = cli("provider", "add", "claude", str(acme_file))
        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_invalid_provider_file(self, cli, tmp_path: Path):
        bad = tmp_path / "bad.json"
        bad.write_text('{"name": "no id"}', encoding="utf-8")
        result = cli("provider", "add", "codex", str(bad))
        assert result.exit_code == 1
        assert "ValidationError" in result.output

    def test_switch_unknown_provider(self, cli):
        result = cli("provider", "switch", "claude", "ghost")
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_switch_official(self, cli, acme_file: Path, paths: CodewithPaths):
        cli("provider", "add", "claude", str(acme_file), "--switch")

        result = cli("provider", "switch", "claude", "--official")

        assert result.exit_code == 0
        assert "official default" in result.output
        assert json.loads(paths.claude_settings.read_text(encoding="utf-8")) == {}

    def test_switch_needs_id_or_official(self, cli):
        result = cli("provider", "switch", "claude")
        assert result.exit_code != 0

    def test_remove_active_provider(self, cli, acme_file: Path):
        cli("provider", "add", "claude", str(acme_file), "--switch")
        result = cli("provider", "remove", "claude", "acme")
        assert result.exit_code == 1
        assert "switch away first" in result.output

    def test_remove(self, cli, acme_file: Path):
        cli("provider", "add", "claude", str(acme_file))
        result = cli("provider", "remove", "claude", "acme")
        assert result.exit_code == 0
        assert "Removed provider 'acme'" in result.output

    def test_unknown_app(self, cli):
        result = cli("provider", "list", "cursor")
        assert result.exit_code != 0


class TestStoreCommands:
    """Tests for `codewith store ...` and corrupt store handling."""

    def _corrupt(self, paths: CodewithPaths) -> None:
        paths.ssot_file.parent.mkdir(parents=True, exist_ok=True)
        paths.ssot_file.write_text("{ definitely not json", encoding="utf-8")

    def test_corrupt_store_shows_hint(self, cli, paths: CodewithPaths):
        self._corrupt(paths)

        result = cli("provider", "list")

        assert result.exit_code == 1
        assert "codewith store reset" in result.output
        assert paths.ssot_file.read_text(encoding="utf-8") == "{ definitely not json"

    def test_reset_corrupt_store(self, cli, paths: CodewithPaths):
        self._corrupt(paths)

        result = cli("store", "reset")

        assert result.exit_code == 0
        assert "Store reset" in result.output
        archived = list(paths.ssot_file.parent.glob("config.json.corrupt-*"))
        assert len(archived) == 1
        assert cli("provider", "list").exit_code == 0

    def test_reset_readable_store(self, cli):
        cli("store", "check")
        result = cli("store", "reset")
        assert result.exit_code == 0
        assert "nothing to reset" in result.output

    def test_forced_reset_asks_first(self, cli, paths: CodewithPaths):
        cli("store", "check")

        declined = cli("store", "reset", "--force", input="n\n")
        assert declined.exit_code == 1

        accepted = cli("store", "reset", "--force", input="y\n")
        assert accepted.exit_code == 0
        assert list(paths.ssot_file.parent.glob("config.json.corrupt-*"))

    def test_path(self, cli, paths: CodewithPaths):
        result = cli("store", "path")
        assert result.exit_code == 0
        assert str(paths.ssot_file) in result.output.replace("\n", "")


class TestMigrateCommand:
    """Tests for `codewith migrate`."""

    def test_imports_once(self, cli, paths: CodewithPaths):
        legacy = paths.legacy_settings_file(AppType.CLAUDE)
        legacy.parent.mkdir(parents=True, exist_ok=True)
        legacy.write_text(
            json.dumps({"providers": {"acme": {"id": "acme", "name": "Acme"}}, "current": "acme"}),
            encoding="utf-8",
        )

        first = cli("migrate")
        second = cli("migrate")

        assert first.exit_code == 0
        assert "Imported 1 provider(s)" in first.output
        assert "claude: acme" in first.output
        assert "already imported" in second.output


class TestPluginCommands:
    """Tests for `codewith plugin ...`."""

    def test_enable_writes_plugin_file(self, cli, acme_file: Path, paths: CodewithPaths):
        cli("provider", "add", "claude", str(acme_file), "--switch")

        result = cli("plugin", "enable")

        assert result.exit_code == 0
        plugin = json.loads(paths.claude_plugin_config.read_text(encoding="utf-8"))
        assert plugin["primaryApiKey"] == "any"

        status = cli("plugin", "status")
        assert "enabled" in status.output
        assert "acme" in status.output


class TestSyncCommands:
    """Tests for `codewith sync ...`."""

    def test_run_without_configuration(self, cli):
        result = cli("sync", "run")
        assert result.exit_code == 1
        assert "Sync is not configured" in result.output

    def test_status_before_first_sync(self, cli):
        result = cli("sync", "status")
        assert result.exit_code == 0
        assert "unsynced" in result.output
        assert "never" in result.output

    def test_device_id_is_stable(self, cli):
        first = cli("sync", "device-id")
        second = cli("sync", "device-id")
        assert first.exit_code == 0
        assert first.output.strip() == second.output.strip()
        assert len(first.output.strip()) == 64


class TestEntryPoint:
    """Tests for cli_main."""

    def test_os_error_exits_with_one(self):
        with patch("codewith.cli.app", side_effect=OSError("read-only file system")):
            with pytest.raises(SystemExit) as exc_info:
                cli_main()
        assert exc_info.value.code == 1

    def test_ctrl_c_exits_with_130(self):
        with patch("codewith.cli.app", side_effect=KeyboardInterrupt):
            with pytest.raises(SystemExit) as exc_info:
                cli_main()
        assert exc_info.value.code == 130
