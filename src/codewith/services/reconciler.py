"""Merge admin overrides into the SSOT and bring the live files along.

Version handling: an override is applied only if its version is greater
than ``appliedAdminVersion``. Older or repeated versions are ignored, so the
applied version never goes down.

Merge semantics are a targeted push per app:

- a provider named in the override replaces the local entry of that id as a
  whole (no field-level merge of ``settingsConfig``);
- providers the override does not name are kept;
- ``currentId`` present in the override replaces the local selection
  (explicit null selects the official default); absent keeps it;
- ``replaceProviders: true`` swaps in the override's provider set instead.

Apply order: the merged document is saved together with the list of apps
whose live files must change (``pendingApps``). Those apps are then
materialized one by one and the version is bumped only once all succeeded.
A failed write leaves the app pending and the version unchanged, so the next
sync cycle retries it. The provider the live files still carry is kept in
``materialized`` so the retry removes its fields, not the merged ones.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from pydantic import JsonValue
from pydantic import ValidationError as PydanticValidationError

from codewith.exceptions import InvalidOverrideError, MaterializationError
from codewith.models import (
    AdminOverride,
    AppConfig,
    AppOverride,
    AppType,
    Provider,
    ReconcilerState,
    SsotDocument,
)
from codewith.services.config_store import ConfigStore
from codewith.services.materializer import Materializer, MaterializeResult
from codewith.services.plugin_sync import resolve_plugin_sync_action

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    """Outcome of one ``Reconciler.apply`` call."""

    version: int
    applied: bool
    changed_apps: list[AppType] = field(default_factory=list)
    materialized: list[MaterializeResult] = field(default_factory=list)
    reason: str | None = None


def parse_override_config(override: AdminOverride) -> dict[AppType, AppOverride]:
    """Validate an override's ``config`` into per-app sections.

    Unknown app keys are skipped with a warning.

    Raises:
        InvalidOverrideError: If the payload is not shaped like an apps mapping.
    """
    config: JsonValue = override.config
    if config is None:
        return {}
    if not isinstance(config, dict):
        raise InvalidOverrideError(override.version, "config is not an object")

    sections: dict[AppType, AppOverride] = {}
    for key, raw in config.items():
        if key not in AppType.values():
            logger.warning(f"Override v{override.version}: ignoring unknown app '{key}'")
            continue
        if raw is None:
            continue
        try:
            section = AppOverride.model_validate(raw)
        except PydanticValidationError:
            raise InvalidOverrideError(override.version, f"invalid section for {key}") from None
        for provider_key, provider in section.providers.items():
            if provider_key != provider.id:
                raise InvalidOverrideError(
                    override.version,
                    f"{key}: provider key '{provider_key}' does not match id '{provider.id}'",
                )
        sections[AppType(key)] = section
    return sections


def merge_app_override(config: AppConfig, section: AppOverride) -> None:
    """Apply one app section to an AppConfig in place."""
    if section.replace_providers:
        config.providers = dict(section.providers)
    else:
        for provider_id, provider in section.providers.items():
            config.providers[provider_id] = provider
    if section.sets_current:
        config.current_id = section.current_id
    elif config.current_id is not None and config.current_id not in config.providers:
        # Selected provider was dropped by a full replace
        config.current_id = None


def _active_signature(config: AppConfig) -> tuple[str | None, Any]:
    provider = config.current_provider
    return config.current_id, provider.settings_config if provider else None


class Reconciler:
    """Applies AdminOverrides to the local SSOT in version order."""

    def __init__(self, store: ConfigStore, materializer: Materializer):
        self.store = store
        self.materializer = materializer

    def status(self) -> tuple[ReconcilerState, int | None]:
        """Return the device state and the applied admin version."""
        sync = self.store.load().sync
        applied = sync.applied_admin_version
        if applied is None:
            return ReconcilerState.UNSYNCED, None
        if sync.pending_apps or (sync.last_seen_admin_version or 0) > applied:
            return ReconcilerState.STALE, applied
        return ReconcilerState.SYNCED, applied

    def note_seen(self, version: int) -> None:
        """Remember that the server has ``version`` even if it is not applied yet."""

        def apply(doc: SsotDocument) -> None:
            doc.sync.last_seen_admin_version = max(doc.sync.last_seen_admin_version or 0, version)

        self.store.update(apply)

    def apply(self, override: AdminOverride) -> ReconcileResult:
        """Merge ``override`` into the SSOT if it is newer than what was applied.

        Returns:
            ReconcileResult; ``applied`` is False for stale versions.

        Raises:
            InvalidOverrideError: Payload rejected; nothing was saved.
            MaterializationError: Merge saved, some live files not written;
                ``appliedAdminVersion`` unchanged so the next cycle retries.
        """
        version = override.version
        with self.store.locked():
            doc = self.store.load()
            applied = doc.sync.applied_admin_version or 0
            if version <= applied:
                logger.debug(f"Ignoring admin override v{version} (applied: v{applied})")
                return ReconcileResult(version=version, applied=False, reason="not newer")

            sections = parse_override_config(override)
            merged = doc.model_copy(deep=True)
            for app, section in sections.items():
                merge_app_override(merged.app(app), section)
            problems = merged.selection_problems()
            if problems:
                app, problem = next(iter(problems.items()))
                raise InvalidOverrideError(version, f"{app.value}: {problem}")

            changed = [
                app
                for app in AppType
                if _active_signature(doc.app(app)) != _active_signature(merged.app(app))
            ]
            pending = list(dict.fromkeys([*doc.sync.pending_apps, *changed]))
            previous = {app: doc.last_materialized(app) for app in pending}

            def commit_merge(working: SsotDocument) -> None:
                working.apps = merged.apps
                working.sync.pending_apps = pending
                # The merged selection is not on disk yet
                working.materialized.update(previous)
                working.sync.last_seen_admin_version = max(
                    working.sync.last_seen_admin_version or 0, version
                )

            self.store.update(commit_merge)

            result = ReconcileResult(version=version, applied=True, changed_apps=changed)
            for app in pending:
                result.materialized.append(self._materialize(merged, app, previous[app]))

            def commit_version(working: SsotDocument) -> None:
                working.sync.applied_admin_version = version
                working.sync.pending_apps = []

            self.store.update(commit_version)

        logger.info(
            f"Applied admin override v{version} "
            f"(changed: {', '.join(a.value for a in changed) or 'none'})"
        )
        return result

    def _materialize(
        self, merged: SsotDocument, app: AppType, previous: Provider | None
    ) -> MaterializeResult:
        config = merged.app(app)
        try:
            materialized = self.materializer.materialize(app, config, previous)
        except MaterializationError as e:
            logger.error(f"Admin override left {app.value} live config unwritten: {e}")
            raise

        def clear_pending(working: SsotDocument) -> None:
            working.sync.pending_apps = [a for a in working.sync.pending_apps if a != app]
            working.materialized[app] = config.current_provider

        self.store.update(clear_pending)

        if app == AppType.CLAUDE:
            action = resolve_plugin_sync_action(
                merged.settings.claude_plugin_integration, config.is_official
            )
            try:
                self.materializer.apply_plugin_action(action)
            except MaterializationError as e:
                logger.warning(f"Claude plugin file not updated: {e}")
        return materialized
