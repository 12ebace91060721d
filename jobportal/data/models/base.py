"""
Base model classes for the job portal data models.

Provides common fields and functionality shared across all models.
"""

from datetime import datetime
from typing import Any, ClassVar, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field, model_validator

from jobportal.utils.timeutils import utcnow


class PyObjectId(ObjectId):
    """Custom ObjectId type for Pydantic v2 compatibility with MongoDB."""

    @classmethod
    def __get_pydantic_core_schema__(cls, _source_type: Any, _handler: Any) -> Any:
        from pydantic_core import core_schema

        return core_schema.union_schema(
            [
                core_schema.is_instance_schema(ObjectId),
                core_schema.chain_schema(
                    [
                        core_schema.str_schema(),
                        core_schema.no_info_plain_validator_function(cls.validate),
                    ]
                ),
            ],
            serialization=core_schema.plain_serializer_function_ser_schema(
                lambda v: str(v), when_used="json"
            ),
        )

    @classmethod
    def validate(cls, value: Any) -> ObjectId:
        """Validate and convert string to ObjectId."""
        if isinstance(value, ObjectId):
            return value
        if isinstance(value, str) and ObjectId.is_valid(value):
            return ObjectId(value)
        raise ValueError(f"Invalid ObjectId: {value}")


class TimestampMixin(BaseModel):
    """Mixin providing timestamp fields for models."""

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class BaseDocument(TimestampMixin):
    """
    Base document model for MongoDB collections.

    Provides common fields and configuration for all database documents.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
        use_enum_values=True,
        validate_default=True,
    )

    id: Optional[PyObjectId] = Field(default=None, alias="_id")

    def model_dump_mongo(self) -> dict[str, Any]:
        """Convert model to MongoDB-compatible dictionary."""
        data = self.model_dump(by_alias=True, exclude_none=True)
        if data.get("_id") is None:
            data.pop("_id", None)
        return data


class EmbeddedModel(BaseModel):
    """
    Base model for embedded documents (subdocuments).

    Use this for models that are embedded within other documents
    rather than stored in their own collection.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        use_enum_values=True,
    )


class PatchModel(BaseModel):
    """
    Base for partial-update schemas.

    Every updatable field is declared explicitly; anything else is rejected.
    Protected fields get a dedicated error so callers learn they cannot be
    changed rather than that they are unknown.
    """

    model_config = ConfigDict(extra="forbid", use_enum_values=True)

    PROTECTED_FIELDS: ClassVar[frozenset[str]] = frozenset(
        {"_id", "id", "created_by", "created_at", "updated_at"}
    )
    # Fields that may be cleared by explicitly passing None
    NULLABLE_FIELDS: ClassVar[frozenset[str]] = frozenset()

    @model_validator(mode="before")
    @classmethod
    def reject_protected_fields(cls, data: Any) -> Any:
        if isinstance(data, dict):
            protected = sorted(cls.PROTECTED_FIELDS.intersection(data))
            if protected:
                raise ValueError(f"Protected fields cannot be updated: {', '.join(protected)}")
        return data

    def to_update_fields(self) -> dict[str, Any]:
        """Field-by-field ``$set`` payload containing only the fields the caller set."""
        update: dict[str, Any] = {}
        for name in sorted(self.model_fields_set):
            value = getattr(self, name)
            if value is None and name not in self.NULLABLE_FIELDS:
                continue
            if isinstance(value, BaseModel):
                value = value.model_dump()
            update[name] = value
        return update
