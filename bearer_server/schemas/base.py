from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """Base schema with common configuration"""

    model_config = ConfigDict(
        from_attributes=True,
        arbitrary_types_allowed=True,
        extra="forbid",
    )


class SealedSchema(BaseSchema):
    """Base schema for values sealed into opaque tokens; immutable once built"""

    model_config = ConfigDict(
        from_attributes=True,
        extra="forbid",
        frozen=True,
    )
