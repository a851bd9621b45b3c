"""Composition root for the client side.

Every collaborator is built here once and handed to its users; nothing in
the services reaches for a process-wide instance.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path

import httpx

from codewith.config.paths import CodewithPaths
from codewith.config.settings import ClientSettings, SyncSettings
from codewith.services.config_store import ConfigStore
from codewith.services.materializer import Materializer
from codewith.services.migrations import MigrationEngine, MigrationResult
from codewith.services.provider_service import ProviderService
from codewith.services.reconciler import Reconciler
from codewith.services.sync_client import SyncClient
from codewith.utils.log_utils import LogRotationConfig, configure_logging

logger = logging.getLogger(__name__)


@dataclass
class Runtime:
    """The wired-up client services for one home directory."""

    paths: CodewithPaths
    store: ConfigStore
    materializer: Materializer
    providers: ProviderService
    reconciler: Reconciler
    migrations: MigrationEngine
    sync_settings: SyncSettings = field(default_factory=SyncSettings)
    transport: httpx.BaseTransport | None = None

    def startup(self) -> MigrationResult:
        """One-time work before any command touches the store."""
        return self.migrations.migrate_if_needed()

    def sync_client(self) -> SyncClient:
        """Build a SyncClient; raises ConfigurationError on a bad schedule."""
        return SyncClient(
            self.store,
            self.reconciler,
            self.sync_settings,
            transport=self.transport,
        )


def build_runtime(
    home: Path | None = None,
    sync_settings: SyncSettings | None = None,
    transport: httpx.BaseTransport | None = None,
) -> Runtime:
    """Construct the store, materializer and services for ``home``.

    Args:
        home: Home directory the file layout is resolved against
            (defaults to ``CODEWITH_HOME`` or the user's home).
        sync_settings: Sync settings (read from the environment when omitted).
        transport: Optional httpx transport handed to the SyncClient.
    """
    if home is None:
        home = ClientSettings().home
    paths = CodewithPaths.from_home(home)
    store = ConfigStore(paths.ssot_file, paths.lock_file)
    materializer = Materializer(paths)
    return Runtime(
        paths=paths,
        store=store,
        materializer=materializer,
        providers=ProviderService(store, materializer),
        reconciler=Reconciler(store, materializer),
        migrations=MigrationEngine(store, paths),
        sync_settings=sync_settings or SyncSettings(),
        transport=transport,
    )


def setup_logging(settings: ClientSettings, paths: CodewithPaths, level: str | None = None) -> None:
    """Configure logging from client settings, with an optional level override."""
    log_file = paths.log_file if settings.log_file_enabled else None
    configure_logging(
        level or settings.log_level,
        log_file=log_file,
        log_rotation=LogRotationConfig(
            max_size_mb=settings.log_max_size_mb,
            backup_count=settings.log_backup_count,
        ),
    )
