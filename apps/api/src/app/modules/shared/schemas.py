"""
Shared Schema Base

The public JSON contract uses camelCase keys (studentId, trxId, ...).
Python attributes stay snake_case; input accepts either spelling.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelSchema(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class MessageResponse(CamelSchema):
    """Plain acknowledgement."""

    message: str
