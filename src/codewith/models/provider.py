"""Provider and per-app configuration models."""

from typing import Any

from pydantic import ConfigDict, Field, JsonValue

from codewith.models.base import CamelModel
from codewith.models.enums import ProviderCategory


class Provider(CamelModel):
    """A named configuration of an external AI tool.

    ``settings_config`` is an opaque JSON value holding the app-native
    settings (Claude settings object, Codex ``{auth, config}``, Gemini
    ``{env}``). Unknown fields are preserved as-is.
    """

    model_config = ConfigDict(extra="allow")

    id: str = Field(min_length=1)
    name: str
    category: ProviderCategory = ProviderCategory.CUSTOM
    website_url: str | None = None
    settings_config: JsonValue = Field(default_factory=dict)
    in_failover_queue: bool = False

    @property
    def is_official(self) -> bool:
        return self.category == ProviderCategory.OFFICIAL

    def settings_dict(self) -> dict[str, Any]:
        """Return settings_config as a dict, or an empty dict for other shapes."""
        if isinstance(self.settings_config, dict):
            return self.settings_config
        return {}


class AppConfig(CamelModel):
    """The provider set and current selection of one app.

    Invariant: a non-null ``current_id`` is a key of ``providers``, and each
    key equals the provider's ``id``. The store enforces it on every save via
    ``selection_problem``; the model itself stays lenient so a broken
    document can be reported instead of failing deep inside pydantic.
    """

    current_id: str | None = None
    providers: dict[str, Provider] = Field(default_factory=dict)

    @property
    def current_provider(self) -> Provider | None:
        if self.current_id is None:
            return None
        return self.providers.get(self.current_id)

    @property
    def is_official(self) -> bool:
        """True when nothing is selected or the selection is an official provider."""
        provider = self.current_provider
        return provider is None or provider.is_official

    def selection_problem(self) -> str | None:
        """Describe an invariant violation, or return None when consistent."""
        for key, provider in self.providers.items():
            if key != provider.id:
                return f"provider key '{key}' does not match id '{provider.id}'"
        if self.current_id is not None and self.current_id not in self.providers:
            return f"currentId '{self.current_id}' is not a known provider"
        return None
