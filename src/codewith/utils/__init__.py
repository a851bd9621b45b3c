"""Utility helpers for codewith."""

from codewith.utils.console import (
    console,
    print_error,
    print_header,
    print_info,
    print_panel,
    print_success,
    print_warning,
)
from codewith.utils.file_utils import (
    archive_file,
    atomic_write_json,
    atomic_write_text,
    ensure_dir,
    read_json,
    read_yaml,
    write_yaml,
)

__all__ = [
    "archive_file",
    "atomic_write_json",
    "atomic_write_text",
    "console",
    "ensure_dir",
    "print_error",
    "print_header",
    "print_info",
    "print_panel",
    "print_success",
    "print_warning",
    "read_json",
    "read_yaml",
    "write_yaml",
]
