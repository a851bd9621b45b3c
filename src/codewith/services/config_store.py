"""Durable storage of the SSOT document.

ConfigStore is the only writer of ``~/.codewith/config.json``. Every
read-modify-write runs under two locks:

- a reentrant thread lock, so threads of one process take turns, and
- an exclusive OS file lock on ``config.json.lock``, so separate codewith
  processes (CLI, sync daemon) take turns.

Callers that must keep other writers out across several steps (merge, write
live files, commit) wrap them in ``with store.locked():``. The lock is
reentrant, so ``load``/``update`` inside that block do not deadlock.
"""

import json
import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import IO, Any, TypeVar

from pydantic import ValidationError as PydanticValidationError

from codewith.config.paths import CORRUPT_SUFFIX, LOCK_SUFFIX
from codewith.constants import SSOT_SCHEMA_VERSION
from codewith.exceptions import CorruptStoreError, InvalidSelectionError
from codewith.models import AppConfig, AppType, SsotDocument
from codewith.utils.file_utils import archive_file, atomic_write_json, ensure_dir
from codewith.utils.platform import acquire_file_lock, release_file_lock

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ConfigStore:
    """Load, validate and atomically save the SSOT document."""

    def __init__(self, path: Path, lock_path: Path | None = None):
        """Initialize the store.

        Args:
            path: Location of the SSOT JSON document.
            lock_path: Sidecar lock file (defaults to ``<path>.lock``).
        """
        self.path = path
        self.lock_path = lock_path or path.with_name(path.name + LOCK_SUFFIX)
        self._thread_lock = threading.RLock()
        self._depth = 0
        self._lock_handle: IO[Any] | None = None

    # =========================================================================
    # Locking
    # =========================================================================

    @contextmanager
    def locked(self) -> Iterator[None]:
        """Hold the store lock (thread + process) for the duration of the block."""
        with self._thread_lock:
            if self._depth == 0:
                ensure_dir(self.lock_path.parent)
                handle = open(self.lock_path, "a+")
                try:
                    acquire_file_lock(handle, blocking=True)
                except OSError:
                    handle.close()
                    raise
                self._lock_handle = handle
            self._depth += 1
            try:
                yield
            finally:
                self._depth -= 1
                if self._depth == 0 and self._lock_handle is not None:
                    release_file_lock(self._lock_handle)
                    self._lock_handle.close()
                    self._lock_handle = None

    # =========================================================================
    # Read / write
    # =========================================================================

    def load(self) -> SsotDocument:
        """Load the document, creating an empty one on first use.

        Returns:
            The current SSOT document.

        Raises:
            CorruptStoreError: If the file exists but cannot be parsed or
                violates the selection invariant. The file is not modified.
        """
        with self.locked():
            if not self.path.exists():
                logger.info(f"No config store at {self.path}; creating an empty one")
                doc = SsotDocument()
                self._write(doc)
                return doc
            return self._read()

    def save(self, doc: SsotDocument) -> None:
        """Validate and atomically persist the full document.

        Raises:
            InvalidSelectionError: If any app has a dangling ``currentId``.
                Nothing is written.
            OSError: If the write fails. The previous document stays intact.
        """
        for app, config in doc.apps.items():
            if config.selection_problem():
                raise InvalidSelectionError(app.value, str(config.current_id))
        with self.locked():
            self._write(doc)

    def update(self, fn: Callable[[SsotDocument], T]) -> T:
        """Apply ``fn`` to a copy of the document and save the result.

        Args:
            fn: Mutates the document in place; its return value is passed back.

        Returns:
            Whatever ``fn`` returned.

        Raises:
            InvalidSelectionError: If ``fn`` left a dangling selection. The
                stored document is unchanged.
        """
        with self.locked():
            working = self.load().model_copy(deep=True)
            result = fn(working)
            self.save(working)
            return result

    def mutate(self, app: AppType, fn: Callable[[AppConfig], AppConfig | None]) -> AppConfig:
        """Apply ``fn`` to one app's config and save.

        Args:
            app: App whose config is changed.
            fn: Mutates the AppConfig in place, or returns a replacement.

        Returns:
            The saved AppConfig.

        Raises:
            InvalidSelectionError: If the resulting ``currentId`` references a
                provider that does not exist. Nothing is saved.
        """

        def apply(doc: SsotDocument) -> AppConfig:
            config = doc.app(app)
            replacement = fn(config)
            if replacement is not None:
                doc.apps[app] = replacement
                config = replacement
            return config

        return self.update(apply)

    def reset(self, force: bool = False) -> Path | None:
        """Move an unreadable document aside and start from an empty one.

        The old file is renamed to ``config.json.corrupt-<timestamp>``, never
        deleted.

        Args:
            force: Reset even if the document is readable.

        Returns:
            Path the old file was moved to, or None if nothing was reset.
        """
        with self.locked():
            if not self.path.exists():
                self._write(SsotDocument())
                return None
            if not force:
                try:
                    self._read()
                    return None
                except CorruptStoreError:
                    pass
            stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
            archived = archive_file(self.path, f"{CORRUPT_SUFFIX}-{stamp}")
            logger.warning(f"Config store moved aside to {archived}")
            self._write(SsotDocument())
            return archived

    # =========================================================================
    # Internals
    # =========================================================================

    def _read(self) -> SsotDocument:
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError):
            raise CorruptStoreError(self.path, "not valid JSON") from None
        except OSError as e:
            raise CorruptStoreError(self.path, f"cannot read file: {e.strerror}") from None

        if not isinstance(raw, dict):
            raise CorruptStoreError(self.path, "top level is not an object")

        schema_version = raw.get("schemaVersion", 1)
        if not isinstance(schema_version, int) or schema_version > SSOT_SCHEMA_VERSION:
            raise CorruptStoreError(self.path, f"unsupported schema version {schema_version}")

        try:
            doc = SsotDocument.model_validate(raw)
        except PydanticValidationError as e:
            # Error details can echo field values (credentials), keep only locations
            locations = sorted({".".join(str(p) for p in err["loc"]) for err in e.errors()})
            raise CorruptStoreError(
                self.path, f"invalid fields: {', '.join(locations[:5])}"
            ) from None

        problems = doc.selection_problems()
        if problems:
            app, problem = next(iter(problems.items()))
            raise CorruptStoreError(self.path, f"{app.value}: {problem}")

        if doc.schema_version < SSOT_SCHEMA_VERSION:
            logger.info(
                f"Upgrading config store schema {doc.schema_version} -> {SSOT_SCHEMA_VERSION}"
            )
            doc.schema_version = SSOT_SCHEMA_VERSION
        return doc

    def _write(self, doc: SsotDocument) -> None:
        atomic_write_json(self.path, doc.to_json_dict())
        logger.debug(f"Saved config store {self.path}")
