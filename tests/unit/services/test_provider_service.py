"""Tests for ProviderService.

Tests cover:
- add / edit / remove with their error cases
- switch writes live files before committing
- A failed switch commits nothing; a partial Codex switch commits
- Claude plugin integration toggle
"""

import json
import os
import tomllib
from unittest.mock import patch

import pytest

from codewith.config.paths import CodewithPaths
from codewith.exceptions import (
    DuplicateProviderError,
    MaterializationError,
    PartialMaterializationError,
    ProviderInUseError,
    ProviderNotFoundError,
)
from codewith.models import AppType, PluginSyncAction, ProviderCategory
from codewith.services.config_store import ConfigStore
from codewith.services.provider_service import ProviderService


def _live_claude(paths: CodewithPaths) -> dict:
    return json.loads(paths.claude_settings.read_text(encoding="utf-8"))


class TestCrud:
    """Tests for add, edit and remove."""

    def test_add_does_not_select(self, provider_service: ProviderService, make_claude_provider):
        config = provider_service.add(AppType.CLAUDE, make_claude_provider("acme"))
        assert list(config.providers) == ["acme"]
        assert config.current_id is None

    def test_add_duplicate(self, provider_service: ProviderService, make_claude_provider):
        provider_service.add(AppType.CLAUDE, make_claude_provider("acme"))
        with pytest.raises(DuplicateProviderError):
            provider_service.add(AppType.CLAUDE, make_claude_provider("acme", token="other"))

    def test_same_id_in_different_apps(
        self, provider_service: ProviderService, make_claude_provider, make_gemini_provider
    ):
        provider_service.add(AppType.CLAUDE, make_claude_provider("shared"))
        provider_service.add(AppType.GEMINI, make_gemini_provider("shared"))
        assert provider_service.get_provider(AppType.GEMINI, "shared").settings_config == {
            "env": {"GEMINI_API_KEY": "gm-key"}
        }

    def test_remove_unknown(self, provider_service: ProviderService):
        with pytest.raises(ProviderNotFoundError):
            provider_service.remove(AppType.CODEX, "ghost")

    def test_remove_in_use(self, seeded_store: ConfigStore, provider_service: ProviderService):
        provider_service.switch(AppType.CLAUDE, "acme")
        with pytest.raises(ProviderInUseError):
            provider_service.remove(AppType.CLAUDE, "acme")
        assert "acme" in seeded_store.load().app(AppType.CLAUDE).providers

    def test_remove(self, seeded_store: ConfigStore, provider_service: ProviderService):
        config = provider_service.remove(AppType.CLAUDE, "relay")
        assert list(config.providers) == ["acme"]

    def test_edit_inactive_does_not_touch_live_files(
        self, seeded_store: ConfigStore, provider_service: ProviderService, paths: CodewithPaths, make_claude_provider
    ):
        assert provider_service.edit(AppType.CLAUDE, make_claude_provider("relay", token="new")) is None
        assert not paths.claude_settings.exists()
        relay = seeded_store.load().app(AppType.CLAUDE).providers["relay"]
        assert relay.settings_config == {"env": {"ANTHROPIC_AUTH_TOKEN": "new"}}

    def test_edit_active_rewrites_live_files(
        self, seeded_store: ConfigStore, provider_service: ProviderService, paths: CodewithPaths, make_claude_provider
    ):
        provider_service.switch(AppType.CLAUDE, "acme")

        result = provider_service.edit(AppType.CLAUDE, make_claude_provider("acme", token="rotated"))

        assert result is not None
        # The old base URL belonged to the previous version of this provider
        assert _live_claude(paths) == {"env": {"ANTHROPIC_AUTH_TOKEN": "rotated"}}

    def test_edit_unknown(self, provider_service: ProviderService, make_claude_provider):
        with pytest.raises(ProviderNotFoundError):
            provider_service.edit(AppType.CLAUDE, make_claude_provider("ghost"))


class TestSwitch:
    """Tests for ProviderService.switch."""

    def test_switch_writes_then_commits(
        self, seeded_store: ConfigStore, provider_service: ProviderService, paths: CodewithPaths
    ):
        result = provider_service.switch(AppType.CLAUDE, "relay")

        assert result.provider_id == "relay"
        assert result.materialized is not None
        assert result.materialized.files == [paths.claude_settings]
        assert seeded_store.load().app(AppType.CLAUDE).current_id == "relay"
        assert _live_claude(paths)["env"]["ANTHROPIC_BASE_URL"] == "https://relay.example"

    def test_switch_back_to_official(
        self, seeded_store: ConfigStore, provider_service: ProviderService, paths: CodewithPaths
    ):
        provider_service.switch(AppType.CLAUDE, "relay")
        provider_service.switch(AppType.CLAUDE, None)
        assert seeded_store.load().app(AppType.CLAUDE).current_id is None
        assert _live_claude(paths) == {}

    def test_unknown_provider_changes_nothing(
        self, seeded_store: ConfigStore, provider_service: ProviderService
    ):
        before = seeded_store.path.read_text(encoding="utf-8")
        with pytest.raises(ProviderNotFoundError):
            provider_service.switch(AppType.CLAUDE, "ghost")
        assert seeded_store.path.read_text(encoding="utf-8") == before

    def test_failed_write_commits_nothing(
        self, seeded_store: ConfigStore, provider_service: ProviderService
    ):
        with patch.object(
            provider_service.materializer,
            "materialize",
            side_effect=MaterializationError("denied", "claude"),
        ):
            with pytest.raises(MaterializationError):
                provider_service.switch(AppType.CLAUDE, "acme")

        assert seeded_store.load().app(AppType.CLAUDE).current_id is None

    def test_partial_write_commits_and_marks_error(
        self, store: ConfigStore, provider_service: ProviderService, paths: CodewithPaths, make_codex_provider
    ):
        provider_service.add(AppType.CODEX, make_codex_provider("relay"))
        partial = PartialMaterializationError(
            "codex", applied_files=[paths.codex_auth], failed_file=paths.codex_config
        )
        with patch.object(provider_service.materializer, "materialize", side_effect=partial):
            with pytest.raises(PartialMaterializationError) as exc_info:
                provider_service.switch(AppType.CODEX, "relay")

        assert exc_info.value.committed is True
        assert store.load().app(AppType.CODEX).current_id == "relay"

    def test_retry_after_partial_write_removes_old_provider_keys(
        self, store: ConfigStore, provider_service: ProviderService, paths: CodewithPaths, make_codex_provider
    ):
        old = make_codex_provider("old")
        old.settings_config["config"] += 'base_url = "https://old.example"\n'
        provider_service.add(AppType.CODEX, old)
        provider_service.add(AppType.CODEX, make_codex_provider("new", api_key="sk-new"))
        provider_service.switch(AppType.CODEX, "old")

        real_replace = os.replace
        calls = []

        def flaky_replace(src, dst):
            calls.append(dst)
            if len(calls) == 2:
                raise OSError(28, "No space left on device")
            return real_replace(src, dst)

        with patch("codewith.services.materializer.os.replace", side_effect=flaky_replace):
            with pytest.raises(PartialMaterializationError):
                provider_service.switch(AppType.CODEX, "new")

        assert store.load().last_materialized(AppType.CODEX).id == "old"

        provider_service.switch(AppType.CODEX, "new")

        config = tomllib.loads(paths.codex_config.read_text(encoding="utf-8"))
        assert "base_url" not in config
        assert config["model_provider"] == "new"
        assert store.load().last_materialized(AppType.CODEX).id == "new"

    def test_codex_switch_writes_both_files(
        self, provider_service: ProviderService, paths: CodewithPaths, make_codex_provider
    ):
        provider_service.add(AppType.CODEX, make_codex_provider("relay", api_key="sk-r"))
        provider_service.switch(AppType.CODEX, "relay")
        assert json.loads(paths.codex_auth.read_text(encoding="utf-8")) == {"OPENAI_API_KEY": "sk-r"}
        assert 'model_provider = "relay"' in paths.codex_config.read_text(encoding="utf-8")


class TestPluginIntegration:
    """Tests for the Claude plugin toggle."""

    def test_enable_with_third_party_selection_writes_key(
        self, seeded_store: ConfigStore, provider_service: ProviderService, paths: CodewithPaths
    ):
        provider_service.switch(AppType.CLAUDE, "acme")

        action = provider_service.set_plugin_integration(True)

        assert action == PluginSyncAction.WRITE
        assert provider_service.plugin_integration_enabled() is True
        plugin = json.loads(paths.claude_plugin_config.read_text(encoding="utf-8"))
        assert plugin["primaryApiKey"] == "any"

    def test_enable_with_official_selection_is_noop(
        self, provider_service: ProviderService, paths: CodewithPaths
    ):
        assert provider_service.set_plugin_integration(True) == PluginSyncAction.NOOP
        assert not paths.claude_plugin_config.exists()

    def test_disable_clears_key(
        self, seeded_store: ConfigStore, provider_service: ProviderService, paths: CodewithPaths
    ):
        provider_service.switch(AppType.CLAUDE, "acme")
        provider_service.set_plugin_integration(True)

        assert provider_service.set_plugin_integration(False) == PluginSyncAction.CLEAR
        assert json.loads(paths.claude_plugin_config.read_text(encoding="utf-8")) == {}

    def test_switch_to_official_category_leaves_plugin_file(
        self, provider_service: ProviderService, paths: CodewithPaths, make_claude_provider
    ):
        provider_service.set_plugin_integration(True)
        official = make_claude_provider("anthropic", category=ProviderCategory.OFFICIAL)
        provider_service.add(AppType.CLAUDE, official)

        result = provider_service.switch(AppType.CLAUDE, "anthropic")

        assert result.plugin_action == PluginSyncAction.NOOP
        assert not paths.claude_plugin_config.exists()

    def test_plugin_failure_is_reported_not_raised(
        self, seeded_store: ConfigStore, provider_service: ProviderService, paths: CodewithPaths
    ):
        seeded_store.update(lambda doc: setattr(doc.settings, "claude_plugin_integration", True))
        paths.claude_plugin_config.parent.mkdir(parents=True, exist_ok=True)
        paths.claude_plugin_config.write_text("[not json", encoding="utf-8")

        result = provider_service.switch(AppType.CLAUDE, "acme")

        assert result.plugin_action == PluginSyncAction.WRITE
        assert result.plugin_error is not None
        assert seeded_store.load().app(AppType.CLAUDE).current_id == "acme"
