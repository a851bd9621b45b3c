"""User-driven provider operations: add, edit, remove, switch.

Changes that affect the active provider are written to the live files first
and committed to the SSOT only if that succeeds. The one exception is a
partial Codex write: the live files already carry part of the new provider,
so the SSOT follows them and the error is re-raised for the user to retry.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from codewith.exceptions import (
    DuplicateProviderError,
    MaterializationError,
    PartialMaterializationError,
    ProviderInUseError,
    ProviderNotFoundError,
)
from codewith.models import AppConfig, AppType, PluginSyncAction, Provider, SsotDocument
from codewith.services.config_store import ConfigStore
from codewith.services.materializer import Materializer, MaterializeResult
from codewith.services.plugin_sync import resolve_plugin_sync_action

logger = logging.getLogger(__name__)


@dataclass
class SwitchResult:
    """Result of a switch (or of an edit to the active provider)."""

    app: AppType
    provider_id: str | None
    materialized: MaterializeResult | None = None
    plugin_action: PluginSyncAction | None = None
    plugin_error: str | None = None


class ProviderService:
    """Provider CRUD and switching for one device.

    Example usage:
        service = ProviderService(store, materializer)
        service.switch(AppType.CLAUDE, "acme")
    """

    def __init__(self, store: ConfigStore, materializer: Materializer):
        self.store = store
        self.materializer = materializer

    # =========================================================================
    # Queries
    # =========================================================================

    def list_providers(self, app: AppType) -> AppConfig:
        return self.store.load().app(app)

    def get_provider(self, app: AppType, provider_id: str) -> Provider:
        provider = self.list_providers(app).providers.get(provider_id)
        if provider is None:
            raise ProviderNotFoundError(app.value, provider_id)
        return provider

    # =========================================================================
    # Mutations
    # =========================================================================

    def add(self, app: AppType, provider: Provider) -> AppConfig:
        """Add a provider without selecting it.

        Raises:
            DuplicateProviderError: If the id is already used in this app.
        """

        def apply(config: AppConfig) -> None:
            if provider.id in config.providers:
                raise DuplicateProviderError(app.value, provider.id)
            config.providers[provider.id] = provider

        saved = self.store.mutate(app, apply)
        logger.info(f"Added provider {provider.id} to {app.value}")
        return saved

    def edit(self, app: AppType, provider: Provider) -> SwitchResult | None:
        """Replace a provider entry.

        When the provider is the active one, its new settings are written to
        the live files before the change is saved.

        Returns:
            SwitchResult if the live files were rewritten, None otherwise.
        """
        with self.store.locked():
            doc = self.store.load()
            config = doc.app(app)
            if provider.id not in config.providers:
                raise ProviderNotFoundError(app.value, provider.id)

            def apply(working: AppConfig) -> None:
                working.providers[provider.id] = provider

            if config.current_id != provider.id:
                self.store.mutate(app, apply)
                logger.info(f"Updated provider {provider.id} in {app.value}")
                return None

            target = config.model_copy(deep=True)
            apply(target)
            return self._materialize_then_commit(app, target, doc.last_materialized(app), apply)

    def remove(self, app: AppType, provider_id: str) -> AppConfig:
        """Delete a provider that is not currently selected.

        Raises:
            ProviderNotFoundError: If the id is unknown.
            ProviderInUseError: If the provider is the active selection.
        """

        def apply(config: AppConfig) -> None:
            if provider_id not in config.providers:
                raise ProviderNotFoundError(app.value, provider_id)
            if config.current_id == provider_id:
                raise ProviderInUseError(app.value, provider_id)
            del config.providers[provider_id]

        saved = self.store.mutate(app, apply)
        logger.info(f"Removed provider {provider_id} from {app.value}")
        return saved

    def switch(self, app: AppType, provider_id: str | None) -> SwitchResult:
        """Make ``provider_id`` the active provider (None selects the official default).

        Raises:
            ProviderNotFoundError: If the id is unknown. Nothing changes.
            MaterializationError: Live files unchanged, SSOT unchanged.
            PartialMaterializationError: SSOT saved with the new selection,
                live files partly updated.
        """
        with self.store.locked():
            doc = self.store.load()
            config = doc.app(app)
            if provider_id is not None and provider_id not in config.providers:
                raise ProviderNotFoundError(app.value, provider_id)

            def apply(working: AppConfig) -> None:
                working.current_id = provider_id

            target = config.model_copy(deep=True)
            apply(target)
            return self._materialize_then_commit(app, target, doc.last_materialized(app), apply)

    # =========================================================================
    # Claude plugin integration
    # =========================================================================

    def set_plugin_integration(self, enabled: bool) -> PluginSyncAction:
        """Persist the toggle and apply it to the plugin file right away."""
        with self.store.locked():

            def apply(doc: SsotDocument) -> bool:
                doc.settings.claude_plugin_integration = enabled
                return doc.app(AppType.CLAUDE).is_official

            is_official = self.store.update(apply)
            action = resolve_plugin_sync_action(enabled, is_official)
            self.materializer.apply_plugin_action(action)
            return action

    def plugin_integration_enabled(self) -> bool:
        return self.store.load().settings.claude_plugin_integration

    def sync_plugin_file(self, claude_config: AppConfig) -> tuple[PluginSyncAction, str | None]:
        """Re-evaluate and apply the plugin action for a Claude selection.

        Plugin file failures are logged and reported, never raised: the
        switch itself has already been committed.
        """
        enabled = self.plugin_integration_enabled()
        action = resolve_plugin_sync_action(enabled, claude_config.is_official)
        try:
            self.materializer.apply_plugin_action(action)
        except MaterializationError as e:
            logger.warning(f"Claude plugin file not updated: {e}")
            return action, str(e)
        return action, None

    # =========================================================================
    # Internals
    # =========================================================================

    def _materialize_then_commit(
        self,
        app: AppType,
        target: AppConfig,
        previous: Provider | None,
        apply: Callable[[AppConfig], None],
    ) -> SwitchResult:
        result = SwitchResult(app=app, provider_id=target.current_id)

        def commit(written: Provider | None) -> Callable[[SsotDocument], None]:
            def update(doc: SsotDocument) -> None:
                apply(doc.app(app))
                doc.materialized[app] = written

            return update

        try:
            result.materialized = self.materializer.materialize(app, target, previous)
        except PartialMaterializationError as e:
            # Part of the old provider is still on disk; the retry must remove it
            self.store.update(commit(previous))
            e.mark_committed()
            raise
        self.store.update(commit(target.current_provider))
        logger.info(f"{app.value} now uses {target.current_id or 'the official default'}")

        if app == AppType.CLAUDE:
            result.plugin_action, result.plugin_error = self.sync_plugin_file(target)
        return result
