"""Portable column types.

Production runs on PostgreSQL (JSONB, timestamptz); tests run on SQLite.
Structured fields cross the storage boundary only through PydanticJSON, so
services always see typed values.
"""

from datetime import UTC, datetime
from typing import Any

from pydantic import TypeAdapter, ValidationError
from sqlalchemy import JSON, DateTime
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.types import TypeDecorator

from decisionops.core.exceptions import InvalidArgumentError

JSONType = JSON().with_variant(JSONB(), "postgresql")


class UTCDateTime(TypeDecorator):
    """Timezone-aware UTC datetimes on every backend (SQLite drops tzinfo)."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)


class PydanticJSON(TypeDecorator):
    """JSON column validated through a pydantic TypeAdapter on both directions.

    Mutations must assign a new value; in-place edits are not tracked.
    """

    impl = JSON
    cache_ok = True

    def __init__(self, python_type: Any):
        super().__init__()
        self.payload_type = python_type
        self._adapter = TypeAdapter(python_type)

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(JSONB())
        return dialect.type_descriptor(JSON())

    def process_bind_param(self, value: Any, dialect) -> Any:
        if value is None:
            return None
        try:
            validated = self._adapter.validate_python(value)
        except ValidationError as e:
            raise InvalidArgumentError(f"Malformed structured value: {e}") from e
        return self._adapter.dump_python(validated, mode="json")

    def process_result_value(self, value: Any, dialect) -> Any:
        if value is None:
            return None
        return self._adapter.validate_python(value)
