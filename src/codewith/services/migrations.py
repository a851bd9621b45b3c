"""One-time import of legacy per-app configuration into the SSOT.

Older releases kept each app's providers in their own files. On first run
the MigrationEngine reads them, merges them into apps that have no providers
yet, and renames the originals with a ``.migrated`` suffix. The ``migrated``
flag in the SSOT document gates the whole process, so a second run touches
nothing.

Each legacy source is a (source_id, description, reader) tuple, executed in
order per app. A reader failing on one file records the error and moves on.
"""

from __future__ import annotations

import json
import logging
import tomllib
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from dotenv import dotenv_values
from pydantic import ValidationError as PydanticValidationError

from codewith.config.paths import (
    CLAUDE_COPY_PREFIX,
    CLAUDE_COPY_SUFFIX,
    CODEX_AUTH_COPY_PREFIX,
    CODEX_AUTH_COPY_SUFFIX,
    CODEX_CONFIG_COPY_PREFIX,
    CODEX_CONFIG_COPY_SUFFIX,
    GEMINI_COPY_PREFIX,
    MIGRATED_SUFFIX,
    CodewithPaths,
)
from codewith.constants import CODEX_AUTH_SECTION, CODEX_CONFIG_SECTION, GEMINI_ENV_SECTION
from codewith.models import AppConfig, AppType, Provider, SsotDocument
from codewith.services.config_store import ConfigStore
from codewith.utils.file_utils import archive_file

logger = logging.getLogger(__name__)


@dataclass
class LegacyImport:
    """What one legacy source yielded for one app."""

    providers: dict[str, Provider] = field(default_factory=dict)
    current_id: str | None = None
    files: list[Path] = field(default_factory=list)
    errors: list[tuple[Path, str]] = field(default_factory=list)


@dataclass
class MigrationResult:
    """Outcome of ``MigrationEngine.migrate_if_needed``."""

    already_migrated: bool = False
    imported: dict[AppType, list[str]] = field(default_factory=dict)
    archived: list[Path] = field(default_factory=list)
    skipped_apps: list[AppType] = field(default_factory=list)
    errors: list[tuple[Path, str]] = field(default_factory=list)

    @property
    def imported_count(self) -> int:
        return sum(len(ids) for ids in self.imported.values())


LegacyReader = Callable[[CodewithPaths, AppType], LegacyImport]


def get_legacy_sources() -> list[tuple[str, str, LegacyReader]]:
    """Get all legacy sources.

    Returns:
        List of tuples: (source_id, description, reader_function).
        Earlier sources win when two sources define the same provider id.
    """
    return [
        (
            "provider_set_file",
            "Per-app provider set in ~/.codewith/<app>/settings.json",
            _read_provider_set_file,
        ),
        (
            "provider_copy_files",
            "Per-provider copies next to the live config (settings-<name>.json, ...)",
            _read_copy_files,
        ),
    ]


class MigrationEngine:
    """Imports legacy configuration into the SSOT exactly once."""

    def __init__(self, store: ConfigStore, paths: CodewithPaths):
        self.store = store
        self.paths = paths

    def migrate_if_needed(self) -> MigrationResult:
        """Run the legacy import unless the SSOT says it already ran.

        Returns:
            MigrationResult describing what was imported, archived and skipped.
        """
        with self.store.locked():
            doc = self.store.load()
            if doc.migrated:
                logger.debug("Legacy migration already done")
                return MigrationResult(already_migrated=True)

            result = MigrationResult()
            found: dict[AppType, LegacyImport] = {}
            for app in AppType:
                if doc.app(app).providers:
                    result.skipped_apps.append(app)
                    continue
                legacy = self._collect(app)
                result.errors.extend(legacy.errors)
                if legacy.providers:
                    found[app] = legacy

            def apply(working: SsotDocument) -> None:
                for app, legacy in found.items():
                    working.apps[app] = AppConfig(
                        current_id=legacy.current_id, providers=legacy.providers
                    )
                working.migrated = True

            self.store.update(apply)

            for app, legacy in found.items():
                result.imported[app] = list(legacy.providers)
                result.archived.extend(self._archive(legacy.files))

        logger.info(
            f"Legacy migration done: {result.imported_count} provider(s) imported, "
            f"{len(result.errors)} file(s) skipped"
        )
        return result

    def _collect(self, app: AppType) -> LegacyImport:
        merged = LegacyImport()
        for source_id, _description, reader in get_legacy_sources():
            try:
                legacy = reader(self.paths, app)
            except OSError as e:
                logger.warning(f"Legacy source {source_id} for {app.value} unreadable: {e}")
                continue
            merged.errors.extend(legacy.errors)
            merged.files.extend(legacy.files)
            for provider_id, provider in legacy.providers.items():
                merged.providers.setdefault(provider_id, provider)
            if merged.current_id is None and legacy.current_id in merged.providers:
                merged.current_id = legacy.current_id
        return merged

    def _archive(self, files: list[Path]) -> list[Path]:
        archived = []
        for path in files:
            try:
                archived.append(archive_file(path, MIGRATED_SUFFIX))
            except OSError as e:
                logger.warning(f"Could not archive legacy file {path}: {e}")
        return archived


# =============================================================================
# Legacy readers
# =============================================================================


def _is_archived(path: Path) -> bool:
    return MIGRATED_SUFFIX in path.name


def _parse_provider(provider_id: str, raw: Any) -> Provider:
    if not isinstance(raw, dict):
        raise ValueError(f"provider '{provider_id}' is not an object")
    data = dict(raw)
    data.setdefault("id", provider_id)
    data.setdefault("name", provider_id)
    return Provider.model_validate(data)


def _read_provider_set_file(paths: CodewithPaths, app: AppType) -> LegacyImport:
    """Read ``{providers: {id: provider} | [provider], current | currentId}``."""
    path = paths.legacy_settings_file(app)
    legacy = LegacyImport()
    if not path.exists():
        return legacy

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(raw, dict):
            raise ValueError("top level is not an object")
        entries = raw.get("providers") or {}
        if isinstance(entries, list):
            entries = {str(item.get("id", "")): item for item in entries if isinstance(item, dict)}
        if not isinstance(entries, dict):
            raise ValueError("providers is not an object or list")
        providers = {}
        for key, entry in entries.items():
            provider = _parse_provider(str(key), entry)
            providers[provider.id] = provider
    except (json.JSONDecodeError, UnicodeDecodeError, ValueError, PydanticValidationError) as e:
        reason = "invalid provider data" if isinstance(e, PydanticValidationError) else str(e)
        logger.warning(f"Skipping legacy file {path}: {reason}")
        legacy.errors.append((path, reason))
        return legacy

    current = raw.get("currentId", raw.get("current"))
    if current is not None and str(current) not in providers:
        logger.warning(f"Legacy file {path} selects unknown provider '{current}'; ignoring selection")
        current = None

    legacy.providers = providers
    legacy.current_id = str(current) if current is not None else None
    legacy.files.append(path)
    return legacy


def _read_copy_files(paths: CodewithPaths, app: AppType) -> LegacyImport:
    """Read per-provider copies of the live config and spot the active one."""
    if app == AppType.CLAUDE:
        return _read_claude_copies(paths)
    if app == AppType.CODEX:
        return _read_codex_copies(paths)
    return _read_gemini_copies(paths)


def _copy_name(path: Path, prefix: str, suffix: str) -> str:
    return path.name[len(prefix) : len(path.name) - len(suffix)] if suffix else path.name[len(prefix) :]


def _copy_provider(name: str, settings: dict[str, Any]) -> Provider:
    return Provider(id=name, name=name, settings_config=settings)


def _read_claude_copies(paths: CodewithPaths) -> LegacyImport:
    legacy = LegacyImport()
    folder = paths.app_dir(AppType.CLAUDE)
    if not folder.is_dir():
        return legacy

    live = _load_json_quietly(paths.claude_settings)
    for path in sorted(folder.glob(f"{CLAUDE_COPY_PREFIX}*{CLAUDE_COPY_SUFFIX}")):
        if _is_archived(path):
            continue
        name = _copy_name(path, CLAUDE_COPY_PREFIX, CLAUDE_COPY_SUFFIX)
        if not name:
            continue
        try:
            settings = json.loads(path.read_text(encoding="utf-8"))
            if not isinstance(settings, dict):
                raise ValueError("not a JSON object")
        except (json.JSONDecodeError, UnicodeDecodeError, ValueError) as e:
            logger.warning(f"Skipping legacy Claude copy {path}: {e}")
            legacy.errors.append((path, str(e)))
            continue
        legacy.providers[name] = _copy_provider(name, settings)
        legacy.files.append(path)
        if legacy.current_id is None and live is not None and settings == live:
            legacy.current_id = name
    return legacy


def _read_codex_copies(paths: CodewithPaths) -> LegacyImport:
    legacy = LegacyImport()
    folder = paths.app_dir(AppType.CODEX)
    if not folder.is_dir():
        return legacy

    live_auth = _load_json_quietly(paths.codex_auth)
    for auth_path in sorted(folder.glob(f"{CODEX_AUTH_COPY_PREFIX}*{CODEX_AUTH_COPY_SUFFIX}")):
        if _is_archived(auth_path):
            continue
        name = _copy_name(auth_path, CODEX_AUTH_COPY_PREFIX, CODEX_AUTH_COPY_SUFFIX)
        if not name:
            continue
        config_path = folder / f"{CODEX_CONFIG_COPY_PREFIX}{name}{CODEX_CONFIG_COPY_SUFFIX}"
        try:
            auth = json.loads(auth_path.read_text(encoding="utf-8"))
            if not isinstance(auth, dict):
                raise ValueError("auth copy is not a JSON object")
            config_text = config_path.read_text(encoding="utf-8") if config_path.exists() else ""
            tomllib.loads(config_text)
        except (json.JSONDecodeError, UnicodeDecodeError, ValueError) as e:
            # tomllib.TOMLDecodeError is a ValueError
            logger.warning(f"Skipping legacy Codex copy {name}: {e}")
            legacy.errors.append((auth_path, str(e)))
            continue
        legacy.providers[name] = _copy_provider(
            name, {CODEX_AUTH_SECTION: auth, CODEX_CONFIG_SECTION: config_text}
        )
        legacy.files.append(auth_path)
        if config_path.exists():
            legacy.files.append(config_path)
        if legacy.current_id is None and live_auth is not None and auth == live_auth:
            legacy.current_id = name
    return legacy


def _read_gemini_copies(paths: CodewithPaths) -> LegacyImport:
    legacy = LegacyImport()
    folder = paths.app_dir(AppType.GEMINI)
    if not folder.is_dir():
        return legacy

    live_env = (
        dict(dotenv_values(paths.gemini_env, interpolate=False))
        if paths.gemini_env.exists()
        else None
    )
    for path in sorted(folder.glob(f"{GEMINI_COPY_PREFIX}*")):
        if _is_archived(path) or not path.is_file():
            continue
        name = _copy_name(path, GEMINI_COPY_PREFIX, "")
        if not name:
            continue
        env = dict(dotenv_values(path, interpolate=False))
        if not env:
            logger.warning(f"Skipping empty legacy Gemini copy {path}")
            legacy.errors.append((path, "no variables found"))
            continue
        legacy.providers[name] = _copy_provider(name, {GEMINI_ENV_SECTION: env})
        legacy.files.append(path)
        if legacy.current_id is None and live_env is not None and env == live_env:
            legacy.current_id = name
    return legacy


def _load_json_quietly(path: Path) -> Any:
    """Parse a live file for comparison only; unreadable means "no match"."""
    if not path.exists():
        return None
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError, OSError):
        return None
