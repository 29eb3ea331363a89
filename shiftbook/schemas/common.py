"""
Shared base for exported read models
"""

from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel

# Decimal in Python, a plain number in exported JSON
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class ExportModel(BaseModel):
    """camelCase on the wire, snake_case in Python"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def export(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
