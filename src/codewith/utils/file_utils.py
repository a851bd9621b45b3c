"""File system utilities for codewith.

Every write of a file another program may read at any moment (the SSOT
document, the live tool config) goes through ``atomic_write_text``: a temp
file in the same directory is flushed, fsynced and renamed over the target,
so readers see either the old or the new content and never a partial file.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

import yaml

from codewith.constants import JSON_INDENT

logger = logging.getLogger(__name__)


def ensure_dir(path: Path) -> None:
    """Ensure directory exists, creating it if necessary.

    Args:
        path: Directory path to ensure exists
    """
    path.mkdir(parents=True, exist_ok=True)


def write_temp_file(path: Path, content: str) -> Path:
    """Write content to a fsynced temp file next to ``path``.

    The caller renames it into place with ``os.replace`` (or removes it).

    Args:
        path: Final destination; the temp file is created in its directory.
        content: Text to write.

    Returns:
        Path of the temp file.
    """
    ensure_dir(path.parent)
    with tempfile.NamedTemporaryFile(
        "w",
        encoding="utf-8",
        dir=path.parent,
        prefix=f".{path.name}.",
        suffix=".tmp",
        delete=False,
    ) as handle:
        tmp_path = Path(handle.name)
        try:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        except BaseException:
            handle.close()
            discard_temp_file(tmp_path)
            raise
    return tmp_path


def discard_temp_file(tmp_path: Path) -> None:
    try:
        tmp_path.unlink(missing_ok=True)
    except OSError as e:
        logger.debug(f"Could not remove temp file {tmp_path}: {e}")


def atomic_write_text(path: Path, content: str) -> None:
    """Atomically replace ``path`` with ``content``.

    Args:
        path: File to write.
        content: Full new content.

    Raises:
        OSError: If the temp file cannot be written or renamed. The
            original file is left unchanged.
    """
    tmp_path = write_temp_file(path, content)
    try:
        os.replace(tmp_path, path)
    except BaseException:
        discard_temp_file(tmp_path)
        raise


def dump_json(data: Any) -> str:
    return json.dumps(data, indent=JSON_INDENT, ensure_ascii=False) + "\n"


def atomic_write_json(path: Path, data: Any) -> None:
    """Atomically write data as indented JSON."""
    atomic_write_text(path, dump_json(data))


def read_json(path: Path, default: Any = None) -> Any:
    """Read a JSON file.

    Args:
        path: Path to JSON file.
        default: Value returned when the file does not exist.

    Returns:
        Parsed JSON, or ``default`` if the file is missing.

    Raises:
        json.JSONDecodeError: If the file exists but is not valid JSON.
    """
    if not path.exists():
        return default
    return json.loads(path.read_text(encoding="utf-8"))


def read_yaml(path: Path) -> dict[str, Any]:
    """Read YAML file.

    Args:
        path: Path to YAML file

    Returns:
        Parsed YAML data as dictionary (empty if the file is empty)

    Raises:
        FileNotFoundError: If file doesn't exist
        yaml.YAMLError: If YAML is invalid
    """
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)

    return data or {}


def write_yaml(path: Path, data: dict[str, Any]) -> None:
    """Write data to YAML file.

    Args:
        path: Path to YAML file
        data: Data to write
    """
    ensure_dir(path.parent)
    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False, allow_unicode=True)


def archive_file(path: Path, suffix: str) -> Path:
    """Rename a file out of the way instead of deleting it.

    ``settings.json`` becomes ``settings.json<suffix>``; if that name is taken
    a counter is appended (``settings.json<suffix>.1`` and so on).

    Args:
        path: File to archive.
        suffix: Suffix to append, e.g. ``.migrated``.

    Returns:
        The archive path.
    """
    target = path.with_name(path.name + suffix)
    counter = 1
    while target.exists():
        target = path.with_name(f"{path.name}{suffix}.{counter}")
        counter += 1
    os.replace(path, target)
    logger.debug(f"Archived {path} -> {target}")
    return target
