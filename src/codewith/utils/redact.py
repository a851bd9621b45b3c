"""Masking of credentials in provider configs before they leave the machine.

Two passes: values stored under credential-looking keys are replaced
wholesale, and any remaining string is scanned for well-known secret formats.
"""

import re
from typing import Any

from codewith.constants import REDACTED_PLACEHOLDER

_SECRET_KEY_PATTERN = re.compile(
    r"(?i)(api[_-]?key|auth[_-]?token|access[_-]?token|secret|password|primaryapikey)"
)

_SECRET_VALUE_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
    (name, re.compile(pattern))
    for name, pattern in [
        ("AWS Access Key ID", r"AKIA[0-9A-Z]{16}"),
        ("GitHub Personal Access Token", r"ghp_[A-Za-z0-9_]{36,}"),
        ("Bearer Token", r"Bearer\s+[A-Za-z0-9\-._~+/]+=*"),
        ("JSON Web Token", r"eyJ[A-Za-z0-9_-]{10,}\.[A-Za-z0-9_-]{10,}\.[A-Za-z0-9_-]{10,}"),
        ("OpenAI / Anthropic SK Key", r"sk-[A-Za-z0-9_-]{20,}"),
        ("Password in URL", r"://[^:/?#\s]+:[^@/?#\s]{8,}@"),
    ]
]


def is_secret_key(key: str) -> bool:
    return bool(_SECRET_KEY_PATTERN.search(key))


def redact_text(text: str) -> str:
    """Replace known secret formats inside free text."""
    for _name, pattern in _SECRET_VALUE_PATTERNS:
        text = pattern.sub(REDACTED_PLACEHOLDER, text)
    return text


def redact_secrets(value: Any) -> Any:
    """Return a copy of a JSON value with credentials masked.

    Args:
        value: Any JSON-compatible value (dicts, lists, scalars).

    Returns:
        A new value of the same shape. Non-empty strings under credential
        keys become ``[REDACTED]``; other strings are pattern-scanned.
    """
    if isinstance(value, dict):
        redacted: dict[str, Any] = {}
        for key, item in value.items():
            if isinstance(item, str) and item and is_secret_key(str(key)):
                redacted[key] = REDACTED_PLACEHOLDER
            else:
                redacted[key] = redact_secrets(item)
        return redacted
    if isinstance(value, list):
        return [redact_secrets(item) for item in value]
    if isinstance(value, str):
        return redact_text(value)
    return value
