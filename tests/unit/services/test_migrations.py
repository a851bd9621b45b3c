"""Tests for the one-time legacy import.

Tests cover:
- Provider-set files imported with their selection and archived
- Second run does nothing (migrated flag)
- Apps that already have providers are left alone
- One unreadable file does not stop the others
- Per-provider copy files of Claude, Codex and Gemini
"""

import json
from pathlib import Path

from codewith.config.paths import CodewithPaths
from codewith.models import AppType, Provider
from codewith.services.config_store import ConfigStore
from codewith.services.migrations import MigrationEngine, get_legacy_sources


def _write(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def _write_provider_set(paths: CodewithPaths, app: AppType, data: dict) -> Path:
    return _write(paths.legacy_settings_file(app), json.dumps(data))


ACME_SET = {
    "providers": {
        "acme": {
            "id": "acme",
            "name": "Acme Relay",
            "settingsConfig": {"env": {"ANTHROPIC_AUTH_TOKEN": "sk-acme"}},
            "createdAt": 1700000000,
        },
        "backup": {"id": "backup", "name": "Backup", "settingsConfig": {}},
    },
    "current": "acme",
}


class TestProviderSetFiles:
    """Tests for legacy ``<app>/settings.json`` files."""

    def test_imports_and_archives(self, store: ConfigStore, paths: CodewithPaths):
        legacy = _write_provider_set(paths, AppType.CLAUDE, ACME_SET)

        result = MigrationEngine(store, paths).migrate_if_needed()

        doc = store.load()
        claude = doc.app(AppType.CLAUDE)
        assert doc.migrated is True
        assert claude.current_id == "acme"
        assert list(claude.providers) == ["acme", "backup"]
        assert claude.providers["acme"].model_extra == {"createdAt": 1700000000}
        assert result.imported == {AppType.CLAUDE: ["acme", "backup"]}
        assert not legacy.exists()
        assert legacy.with_name("settings.json.migrated").exists()

    def test_second_run_is_a_no_op(self, store: ConfigStore, paths: CodewithPaths):
        _write_provider_set(paths, AppType.CLAUDE, ACME_SET)
        engine = MigrationEngine(store, paths)
        engine.migrate_if_needed()
        before = store.path.read_text(encoding="utf-8")

        # A legacy file reappearing after migration is ignored
        _write_provider_set(paths, AppType.CLAUDE, {"providers": {"late": {"name": "Late"}}})
        result = engine.migrate_if_needed()

        assert result.already_migrated is True
        assert result.imported_count == 0
        assert store.path.read_text(encoding="utf-8") == before
        assert paths.legacy_settings_file(AppType.CLAUDE).exists()

    def test_list_shaped_providers_and_current_id_key(self, store: ConfigStore, paths: CodewithPaths):
        _write_provider_set(
            paths,
            AppType.GEMINI,
            {"providers": [{"id": "g1", "name": "G1"}, {"id": "g2", "name": "G2"}], "currentId": "g2"},
        )
        MigrationEngine(store, paths).migrate_if_needed()
        gemini = store.load().app(AppType.GEMINI)
        assert list(gemini.providers) == ["g1", "g2"]
        assert gemini.current_id == "g2"

    def test_unknown_current_is_dropped(self, store: ConfigStore, paths: CodewithPaths):
        _write_provider_set(
            paths, AppType.CODEX, {"providers": {"a": {"name": "A"}}, "current": "missing"}
        )
        MigrationEngine(store, paths).migrate_if_needed()
        codex = store.load().app(AppType.CODEX)
        assert list(codex.providers) == ["a"]
        assert codex.current_id is None

    def test_existing_providers_are_not_overwritten(self, store: ConfigStore, paths: CodewithPaths):
        def seed(config):
            config.providers["mine"] = Provider(id="mine", name="Mine")
            config.current_id = "mine"

        store.mutate(AppType.CLAUDE, seed)
        legacy = _write_provider_set(paths, AppType.CLAUDE, ACME_SET)

        result = MigrationEngine(store, paths).migrate_if_needed()

        claude = store.load().app(AppType.CLAUDE)
        assert list(claude.providers) == ["mine"]
        assert claude.current_id == "mine"
        assert AppType.CLAUDE in result.skipped_apps
        assert legacy.exists()

    def test_unreadable_file_is_skipped(self, store: ConfigStore, paths: CodewithPaths):
        broken = _write(paths.legacy_settings_file(AppType.CODEX), "{ broken")
        _write_provider_set(paths, AppType.CLAUDE, ACME_SET)

        result = MigrationEngine(store, paths).migrate_if_needed()

        assert [path for path, _ in result.errors] == [broken]
        assert broken.exists()
        assert store.load().app(AppType.CLAUDE).current_id == "acme"
        assert store.load().migrated is True

    def test_nothing_to_import_still_sets_flag(self, store: ConfigStore, paths: CodewithPaths):
        result = MigrationEngine(store, paths).migrate_if_needed()
        assert result.imported_count == 0
        assert store.load().migrated is True


class TestCopyFiles:
    """Tests for per-provider copies next to the live config."""

    def test_claude_copies_and_live_match(self, store: ConfigStore, paths: CodewithPaths):
        work = {"env": {"ANTHROPIC_AUTH_TOKEN": "sk-work"}}
        _write(paths.app_dir(AppType.CLAUDE) / "settings-work.json", json.dumps(work))
        _write(
            paths.app_dir(AppType.CLAUDE) / "settings-home.json",
            json.dumps({"env": {"ANTHROPIC_AUTH_TOKEN": "sk-home"}}),
        )
        _write(paths.claude_settings, json.dumps(work))

        result = MigrationEngine(store, paths).migrate_if_needed()

        claude = store.load().app(AppType.CLAUDE)
        assert set(claude.providers) == {"home", "work"}
        assert claude.current_id == "work"
        assert claude.providers["work"].settings_config == work
        assert paths.claude_settings.exists()
        assert (paths.app_dir(AppType.CLAUDE) / "settings-work.json.migrated").exists()
        assert len(result.archived) == 2

    def test_codex_pairs(self, store: ConfigStore, paths: CodewithPaths):
        folder = paths.app_dir(AppType.CODEX)
        _write(folder / "auth-relay.json", json.dumps({"OPENAI_API_KEY": "sk-relay"}))
        _write(folder / "config-relay.toml", 'model = "gpt-5"\n')

        MigrationEngine(store, paths).migrate_if_needed()

        relay = store.load().app(AppType.CODEX).providers["relay"]
        assert relay.settings_config == {
            "auth": {"OPENAI_API_KEY": "sk-relay"},
            "config": 'model = "gpt-5"\n',
        }
        assert not (folder / "config-relay.toml").exists()

    def test_codex_bad_toml_is_skipped(self, store: ConfigStore, paths: CodewithPaths):
        folder = paths.app_dir(AppType.CODEX)
        auth = _write(folder / "auth-bad.json", json.dumps({"OPENAI_API_KEY": "x"}))
        _write(folder / "config-bad.toml", "model = = broken")

        result = MigrationEngine(store, paths).migrate_if_needed()

        assert store.load().app(AppType.CODEX).providers == {}
        assert auth.exists()
        assert result.errors

    def test_gemini_env_copies(self, store: ConfigStore, paths: CodewithPaths):
        folder = paths.app_dir(AppType.GEMINI)
        _write(folder / ".env-fast", "GEMINI_API_KEY=gm-fast\nGEMINI_MODEL=flash\n")
        _write(paths.gemini_env, "GEMINI_API_KEY=gm-fast\nGEMINI_MODEL=flash\n")

        MigrationEngine(store, paths).migrate_if_needed()

        gemini = store.load().app(AppType.GEMINI)
        assert gemini.current_id == "fast"
        assert gemini.providers["fast"].settings_config == {
            "env": {"GEMINI_API_KEY": "gm-fast", "GEMINI_MODEL": "flash"}
        }

    def test_archived_copies_are_not_rescanned(self, store: ConfigStore, paths: CodewithPaths):
        _write(
            paths.app_dir(AppType.CLAUDE) / "settings-old.json.migrated",
            json.dumps({"env": {}}),
        )
        MigrationEngine(store, paths).migrate_if_needed()
        assert store.load().app(AppType.CLAUDE).providers == {}


def test_legacy_sources_are_ordered():
    assert [source_id for source_id, _, _ in get_legacy_sources()] == [
        "provider_set_file",
        "provider_copy_files",
    ]
