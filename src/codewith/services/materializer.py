"""Write the selected provider into each tool's live config files.

The materializer merges rather than replaces: it only touches the fields the
previous provider wrote plus a fixed set of well-known keys, so unrelated
user settings in the same files survive a switch.

Per app:
- Claude: ``~/.claude/settings.json`` (JSON, deep merge)
- Codex: ``~/.codex/auth.json`` + ``~/.codex/config.toml`` (two files)
- Gemini: ``~/.gemini/.env`` (dotenv)

Each file is replaced atomically. Codex needs two renames; if the second
fails after the first succeeded the caller gets PartialMaterializationError.
"""

from __future__ import annotations

import json
import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import tomli_w
from dotenv import dotenv_values

from codewith.config.paths import CodewithPaths
from codewith.constants import (
    CLAUDE_ENV_KEY,
    CLAUDE_OWNED_ENV_KEYS,
    CLAUDE_PLUGIN_KEY,
    CLAUDE_PLUGIN_KEY_VALUE,
    CODEX_API_KEY_FIELD,
    CODEX_AUTH_SECTION,
    CODEX_CONFIG_SECTION,
    CODEX_OWNED_CONFIG_KEYS,
    GEMINI_ENV_SECTION,
    GEMINI_OWNED_ENV_KEYS,
)
from codewith.exceptions import MaterializationError, PartialMaterializationError
from codewith.models import AppConfig, AppType, PluginSyncAction, Provider
from codewith.utils.dict_utils import deep_merge, is_prefix, leaf_paths, remove_path
from codewith.utils.file_utils import (
    atomic_write_text,
    discard_temp_file,
    dump_json,
    write_temp_file,
)

logger = logging.getLogger(__name__)

ACTION_WRITTEN = "written"
ACTION_CLEARED = "cleared"


@dataclass
class MaterializeResult:
    """Result of writing one app's live config."""

    app: AppType
    action: str
    provider_id: str | None = None
    files: list[Path] = field(default_factory=list)


class Materializer:
    """Renders SSOT selections into the external tools' config files.

    Example usage:
        materializer = Materializer(CodewithPaths.from_home())
        result = materializer.materialize(AppType.CLAUDE, app_config, previous)
    """

    def __init__(self, paths: CodewithPaths):
        self.paths = paths

    def materialize(
        self,
        app: AppType,
        app_config: AppConfig,
        previous: Provider | None = None,
    ) -> MaterializeResult:
        """Write the current selection of ``app_config`` to the live files.

        Args:
            app: Which tool to write.
            app_config: Config whose ``current_id`` is materialized. A null
                selection clears the fields codewith owns.
            previous: Provider that was active before this change; its
                fields are removed when the new provider does not set them.

        Returns:
            MaterializeResult naming the files written.

        Raises:
            MaterializationError: Nothing was changed on disk.
            PartialMaterializationError: Some files already carry the new
                provider (Codex only).
        """
        provider = app_config.current_provider
        if app == AppType.CLAUDE:
            files = self._materialize_claude(provider, previous)
        elif app == AppType.CODEX:
            files = self._materialize_codex(provider, previous)
        else:
            files = self._materialize_gemini(provider, previous)

        action = ACTION_WRITTEN if provider else ACTION_CLEARED
        logger.info(
            f"Materialized {app.value}: {action} "
            f"(provider={provider.id if provider else 'official default'})"
        )
        return MaterializeResult(
            app=app,
            action=action,
            provider_id=provider.id if provider else None,
            files=files,
        )

    def read_live(self, app: AppType) -> dict[str, Any]:
        """Parse the live config of an app (missing files read as empty)."""
        if app == AppType.CLAUDE:
            return self._read_json_object(self.paths.claude_settings, app)
        if app == AppType.CODEX:
            return {
                CODEX_AUTH_SECTION: self._read_json_object(self.paths.codex_auth, app),
                CODEX_CONFIG_SECTION: self._read_toml(self.paths.codex_config, app),
            }
        return {GEMINI_ENV_SECTION: self._read_env(self.paths.gemini_env)}

    # =========================================================================
    # Claude plugin integration file
    # =========================================================================

    def apply_plugin_action(self, action: PluginSyncAction) -> Path | None:
        """Write, clear or leave the ``primaryApiKey`` in ``~/.claude/config.json``.

        Returns:
            The file path if it was changed, None otherwise.
        """
        if action == PluginSyncAction.NOOP:
            return None

        path = self.paths.claude_plugin_config
        if action == PluginSyncAction.CLEAR and not path.exists():
            return None

        data = self._read_json_object(path, AppType.CLAUDE)
        if action == PluginSyncAction.CLEAR:
            if CLAUDE_PLUGIN_KEY not in data:
                return None
            del data[CLAUDE_PLUGIN_KEY]
        else:
            if data.get(CLAUDE_PLUGIN_KEY) == CLAUDE_PLUGIN_KEY_VALUE:
                return None
            data[CLAUDE_PLUGIN_KEY] = CLAUDE_PLUGIN_KEY_VALUE

        self._write_atomic(path, dump_json(data), AppType.CLAUDE)
        logger.info(f"Claude plugin integration file: {action.value}")
        return path

    # =========================================================================
    # Claude
    # =========================================================================

    def _materialize_claude(self, provider: Provider | None, previous: Provider | None) -> list[Path]:
        path = self.paths.claude_settings
        new_config = self._settings_object(provider, AppType.CLAUDE)
        live = self._read_json_object(path, AppType.CLAUDE)

        owned = leaf_paths(previous.settings_dict()) if previous else set()
        owned |= {(CLAUDE_ENV_KEY, key) for key in CLAUDE_OWNED_ENV_KEYS}
        new_leaves = leaf_paths(new_config)
        for key_path in owned - new_leaves:
            if any(is_prefix(key_path, leaf) for leaf in new_leaves):
                continue
            remove_path(live, key_path)

        merged = deep_merge(live, new_config)
        self._write_atomic(path, dump_json(merged), AppType.CLAUDE)
        return [path]

    # =========================================================================
    # Codex
    # =========================================================================

    def _materialize_codex(self, provider: Provider | None, previous: Provider | None) -> list[Path]:
        auth_path = self.paths.codex_auth
        config_path = self.paths.codex_config

        settings = self._settings_object(provider, AppType.CODEX)
        new_auth, new_toml = self._split_codex_settings(settings, strict=True)
        previous_auth, previous_toml = self._split_codex_settings(
            previous.settings_dict() if previous else {}, strict=False
        )

        live_auth = self._read_json_object(auth_path, AppType.CODEX)
        for key in set(previous_auth) | {CODEX_API_KEY_FIELD}:
            live_auth.pop(key, None)
        auth_out = {**live_auth, **new_auth}

        live_toml = self._read_toml(config_path, AppType.CODEX)
        for key in set(previous_toml) | set(CODEX_OWNED_CONFIG_KEYS):
            live_toml.pop(key, None)
        try:
            toml_out = tomli_w.dumps(deep_merge(live_toml, new_toml))
        except TypeError as e:
            raise MaterializationError(
                f"Codex config cannot be written as TOML: {e}", AppType.CODEX.value, config_path
            ) from e

        # Stage both files before replacing either
        try:
            tmp_auth = write_temp_file(auth_path, dump_json(auth_out))
        except OSError as e:
            raise MaterializationError(
                f"Could not stage Codex auth: {e.strerror}", AppType.CODEX.value, auth_path
            ) from e
        try:
            tmp_config = write_temp_file(config_path, toml_out)
        except OSError as e:
            discard_temp_file(tmp_auth)
            raise MaterializationError(
                f"Could not stage Codex config: {e.strerror}", AppType.CODEX.value, config_path
            ) from e

        try:
            os.replace(tmp_auth, auth_path)
        except OSError as e:
            discard_temp_file(tmp_auth)
            discard_temp_file(tmp_config)
            raise MaterializationError(
                f"Could not replace Codex auth: {e.strerror}", AppType.CODEX.value, auth_path
            ) from e

        try:
            os.replace(tmp_config, config_path)
        except OSError as e:
            discard_temp_file(tmp_config)
            logger.error(f"Codex config replace failed after auth.json was updated: {e}")
            raise PartialMaterializationError(
                AppType.CODEX.value, applied_files=[auth_path], failed_file=config_path
            ) from e

        return [auth_path, config_path]

    def _split_codex_settings(
        self, settings: dict[str, Any], strict: bool
    ) -> tuple[dict[str, Any], dict[str, Any]]:
        """Return (auth object, parsed TOML) from a Codex settingsConfig.

        With ``strict=False`` malformed parts read as empty; used for the
        previous provider, whose settings were already applied once.
        """
        auth = settings.get(CODEX_AUTH_SECTION) or {}
        config_text = settings.get(CODEX_CONFIG_SECTION) or ""
        if not isinstance(auth, dict) or not isinstance(config_text, str):
            if strict:
                raise MaterializationError(
                    "Codex settings must be {auth: object, config: TOML string}",
                    AppType.CODEX.value,
                )
            return {}, {}
        try:
            return auth, tomllib.loads(config_text)
        except tomllib.TOMLDecodeError as e:
            if strict:
                raise MaterializationError(
                    f"Codex provider config is not valid TOML: {e}", AppType.CODEX.value
                ) from e
            logger.debug(f"Ignoring unparsable TOML of previous Codex provider: {e}")
            return auth, {}

    # =========================================================================
    # Gemini
    # =========================================================================

    def _materialize_gemini(self, provider: Provider | None, previous: Provider | None) -> list[Path]:
        path = self.paths.gemini_env
        settings = self._settings_object(provider, AppType.GEMINI)
        new_env = settings.get(GEMINI_ENV_SECTION) or {}
        if not isinstance(new_env, dict):
            raise MaterializationError("Gemini env must be an object", AppType.GEMINI.value)

        previous_env = previous.settings_dict().get(GEMINI_ENV_SECTION) if previous else None
        owned = set(GEMINI_OWNED_ENV_KEYS)
        if isinstance(previous_env, dict):
            owned |= set(previous_env)

        live = {k: v for k, v in self._read_env(path).items() if k not in owned}
        live.update({str(k): None if v is None else str(v) for k, v in new_env.items()})

        self._write_atomic(path, _render_env(live), AppType.GEMINI)
        return [path]

    # =========================================================================
    # Helpers
    # =========================================================================

    def _settings_object(self, provider: Provider | None, app: AppType) -> dict[str, Any]:
        if provider is None:
            return {}
        if not isinstance(provider.settings_config, dict):
            raise MaterializationError(
                f"Provider '{provider.id}' settings must be a JSON object", app.value
            )
        return provider.settings_config

    def _read_json_object(self, path: Path, app: AppType) -> dict[str, Any]:
        if not path.exists():
            return {}
        try:
            data = json.loads(path.read_text(encoding="utf-8") or "{}")
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise MaterializationError(
                "Live config is not valid JSON; refusing to overwrite it", app.value, path
            ) from e
        except OSError as e:
            raise MaterializationError(f"Cannot read live config: {e.strerror}", app.value, path) from e
        if not isinstance(data, dict):
            raise MaterializationError("Live config is not a JSON object", app.value, path)
        return data

    def _read_toml(self, path: Path, app: AppType) -> dict[str, Any]:
        if not path.exists():
            return {}
        try:
            return tomllib.loads(path.read_text(encoding="utf-8"))
        except tomllib.TOMLDecodeError as e:
            raise MaterializationError(
                "Live config is not valid TOML; refusing to overwrite it", app.value, path
            ) from e
        except OSError as e:
            raise MaterializationError(f"Cannot read live config: {e.strerror}", app.value, path) from e

    def _read_env(self, path: Path) -> dict[str, str | None]:
        if not path.exists():
            return {}
        return dict(dotenv_values(path, interpolate=False))

    def _write_atomic(self, path: Path, content: str, app: AppType) -> None:
        try:
            atomic_write_text(path, content)
        except OSError as e:
            raise MaterializationError(f"Could not write live config: {e.strerror}", app.value, path) from e


def _render_env(values: dict[str, str | None]) -> str:
    lines = []
    for key, value in values.items():
        if value is None:
            lines.append(key)
        elif value == "" or any(c in value for c in " \t#'\"\\=$\n"):
            escaped = value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")
            lines.append(f'{key}="{escaped}"')
        else:
            lines.append(f"{key}={value}")
    return "\n".join(lines) + "\n" if lines else ""
