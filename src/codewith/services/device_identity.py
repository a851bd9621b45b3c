"""Stable, privacy-preserving device identifier.

The id is the sha256 of the OS machine uid (``/etc/machine-id``, the macOS
IOPlatformUUID or the Windows MachineGuid) so the raw uid never leaves the
machine. When none is available the hash falls back to hostname, user and
MAC address. The first computed value is cached in the SSOT; later changes
to the hardware do not change the id.
"""

import getpass
import hashlib
import logging
import platform
import re
import subprocess
import sys
import uuid
from pathlib import Path

from codewith.models import SsotDocument
from codewith.services.config_store import ConfigStore

logger = logging.getLogger(__name__)

_LINUX_MACHINE_ID_FILES = (Path("/etc/machine-id"), Path("/var/lib/dbus/machine-id"))
_MACOS_UUID_PATTERN = re.compile(r'"IOPlatformUUID"\s*=\s*"([^"]+)"')
_COMMAND_TIMEOUT_SECONDS = 5


def _read_machine_uid() -> str | None:
    if sys.platform == "win32":
        try:
            import winreg

            with winreg.OpenKey(  # type: ignore[attr-defined]
                winreg.HKEY_LOCAL_MACHINE,  # type: ignore[attr-defined]
                r"SOFTWARE\Microsoft\Cryptography",
            ) as key:
                value, _ = winreg.QueryValueEx(key, "MachineGuid")  # type: ignore[attr-defined]
                return str(value)
        except OSError as e:
            logger.debug(f"MachineGuid not readable: {e}")
            return None

    if sys.platform == "darwin":
        try:
            output = subprocess.run(
                ["ioreg", "-rd1", "-c", "IOPlatformExpertDevice"],
                capture_output=True,
                text=True,
                timeout=_COMMAND_TIMEOUT_SECONDS,
                check=False,
            ).stdout
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.debug(f"ioreg failed: {e}")
            return None
        match = _MACOS_UUID_PATTERN.search(output)
        return match.group(1) if match else None

    for path in _LINUX_MACHINE_ID_FILES:
        try:
            value = path.read_text(encoding="utf-8").strip()
        except OSError:
            continue
        if value:
            return value
    return None


def _fallback_fingerprint() -> str:
    return f"{platform.node()}:{getpass.getuser()}:{uuid.getnode()}"


def compute_device_id() -> str:
    """Hash the machine uid (or the fallback fingerprint) into a hex id."""
    uid = _read_machine_uid()
    if uid is None:
        logger.info("No OS machine id found; using host fingerprint for the device id")
        uid = _fallback_fingerprint()
    return hashlib.sha256(uid.encode("utf-8")).hexdigest()


def get_device_id(store: ConfigStore) -> str:
    """Return the cached device id, computing and saving it on first use."""
    cached = store.load().sync.device_id
    if cached:
        return cached

    computed = compute_device_id()

    def apply(doc: SsotDocument) -> str:
        if not doc.sync.device_id:
            doc.sync.device_id = computed
        return doc.sync.device_id

    return store.update(apply)
