"""Common models shared across resources."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class KlusterModel(BaseModel):
    """Base model for all Kluster models."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        use_enum_values=True,
    )


class CamelModel(KlusterModel):
    """Base model for APIs that speak camelCase JSON."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        from_attributes=True,
        populate_by_name=True,
        use_enum_values=True,
    )

    def to_payload(self) -> dict:
        """Serialize for a request body."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
