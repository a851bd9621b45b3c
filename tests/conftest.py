"""Pytest configuration and fixtures for codewith tests."""

from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest

from codewith.config.paths import CodewithPaths
from codewith.models import AppType, Provider, ProviderCategory
from codewith.services.config_store import ConfigStore
from codewith.services.materializer import Materializer
from codewith.services.provider_service import ProviderService
from codewith.services.reconciler import Reconciler

_ENV_PREFIXES = ("CODEWITH_",)


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep developer CODEWITH_* variables out of the tests."""
    import os

    for name in list(os.environ):
        if name.startswith(_ENV_PREFIXES):
            monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture
def home(tmp_path: Path) -> Path:
    """Temporary home directory holding ~/.codewith and the tools' dirs."""
    path = tmp_path / "home"
    path.mkdir()
    return path


@pytest.fixture
def paths(home: Path) -> CodewithPaths:
    return CodewithPaths.from_home(home)


@pytest.fixture
def store(paths: CodewithPaths) -> ConfigStore:
    return ConfigStore(paths.ssot_file, paths.lock_file)


@pytest.fixture
def materializer(paths: CodewithPaths) -> Materializer:
    return Materializer(paths)


@pytest.fixture
def provider_service(store: ConfigStore, materializer: Materializer) -> ProviderService:
    return ProviderService(store, materializer)


@pytest.fixture
def reconciler(store: ConfigStore, materializer: Materializer) -> Reconciler:
    return Reconciler(store, materializer)


def claude_provider(
    provider_id: str,
    token: str = "sk-test",
    base_url: str | None = None,
    category: ProviderCategory = ProviderCategory.THIRD_PARTY,
    **extra: Any,
) -> Provider:
    """Build a Claude provider with an env block like the real app writes."""
    env = {"ANTHROPIC_AUTH_TOKEN": token}
    if base_url:
        env["ANTHROPIC_BASE_URL"] = base_url
    return Provider(
        id=provider_id,
        name=provider_id.title(),
        category=category,
        settings_config={"env": env},
        **extra,
    )


def codex_provider(provider_id: str, api_key: str = "sk-codex", model: str = "gpt-5") -> Provider:
    return Provider(
        id=provider_id,
        name=provider_id.title(),
        settings_config={
            "auth": {"OPENAI_API_KEY": api_key},
            "config": f'model_provider = "{provider_id}"\nmodel = "{model}"\n',
        },
    )


def gemini_provider(provider_id: str, api_key: str = "gm-key") -> Provider:
    return Provider(
        id=provider_id,
        name=provider_id.title(),
        settings_config={"env": {"GEMINI_API_KEY": api_key}},
    )


@pytest.fixture
def make_claude_provider() -> Callable[..., Provider]:
    return claude_provider


@pytest.fixture
def make_codex_provider() -> Callable[..., Provider]:
    return codex_provider


@pytest.fixture
def make_gemini_provider() -> Callable[..., Provider]:
    return gemini_provider


@pytest.fixture
def seeded_store(store: ConfigStore) -> ConfigStore:
    """Store with two Claude providers, none selected."""

    def apply(doc: Any) -> None:
        config = doc.app(AppType.CLAUDE)
        for provider in (
            claude_provider("acme", token="sk-acme", base_url="https://acme.example"),
            claude_provider("relay", token="sk-relay", base_url="https://relay.example"),
        ):
            config.providers[provider.id] = provider
        doc.migrated = True

    store.update(apply)
    return store
