"""
Wire Model Base - camelCase JSON on the wire, snake_case in Python.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base for every model exchanged with the conversation platform or commerce API."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_wire(self) -> dict:
        """Serialize with wire aliases, dropping unset optional fields."""
        return self.model_dump(by_alias=True, exclude_none=True)
