"""Shared pydantic base for models stored on disk or sent on the wire."""

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Model serialised with camelCase keys, constructible by field name."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict[str, Any]:
        """Dump to JSON-compatible data using the camelCase aliases."""
        return self.model_dump(mode="json", by_alias=True)
