"""Base model shared by all API schemas."""
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """
    JSON fields are camelCase on the wire (isFavorite, folderId, exportedAt).

    Request bodies also accept the snake_case field names.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )
