"""Base schema for everything that goes over the wire.

Learn: The mobile and CLI clients speak camelCase JSON (userId, createdAt)
while Python code stays snake_case. The alias generator bridges the two;
populate_by_name lets tests and internal callers use either spelling, and
FastAPI serializes responses by alias.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

