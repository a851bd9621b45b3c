"""Cross-platform file locking.

Uses fcntl on POSIX and msvcrt on Windows. The SSOT store takes this lock on
a sidecar file so two codewith processes never interleave a read-modify-write.
"""

import logging
import sys
from typing import IO, Any, Final

logger = logging.getLogger(__name__)

IS_WINDOWS: Final[bool] = sys.platform == "win32"


def acquire_file_lock(file_handle: IO[Any], blocking: bool = False) -> bool:
    """Acquire an exclusive lock on a file.

    Args:
        file_handle: Open file handle to lock.
        blocking: If True, block until lock is acquired. If False, fail immediately
                  if lock is not available.

    Returns:
        True if lock was acquired, False if non-blocking and lock unavailable.

    Raises:
        OSError: If blocking=True and lock cannot be acquired, or other I/O errors.
    """
    if IS_WINDOWS:
        import msvcrt

        try:
            lock_mode = msvcrt.LK_LOCK if blocking else msvcrt.LK_NBLCK  # type: ignore[attr-defined]
            file_handle.seek(0)
            msvcrt.locking(file_handle.fileno(), lock_mode, 1)  # type: ignore[attr-defined]
            return True
        except OSError:
            if not blocking:
                return False
            raise
    else:
        import fcntl

        try:
            flags = fcntl.LOCK_EX
            if not blocking:
                flags |= fcntl.LOCK_NB
            fcntl.flock(file_handle, flags)
            return True
        except OSError:
            if not blocking:
                return False
            raise


def release_file_lock(file_handle: IO[Any]) -> None:
    """Release a file lock. Safe to call on an unlocked handle."""
    if IS_WINDOWS:
        import msvcrt

        try:
            file_handle.seek(0)
            msvcrt.locking(file_handle.fileno(), msvcrt.LK_UNLCK, 1)  # type: ignore[attr-defined]
        except OSError as e:
            logger.debug(f"Failed to release Windows file lock: {e}")
    else:
        import fcntl

        try:
            fcntl.flock(file_handle, fcntl.LOCK_UN)
        except OSError as e:
            logger.debug(f"Failed to release POSIX file lock: {e}")
