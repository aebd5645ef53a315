"""Shared base for request/response schemas.

Learn: The web client speaks camelCase (`tenantId`, `memberIds`). Python
code keeps snake_case field names; the alias generator maps between them.
populate_by_name lets callers send either spelling.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )
