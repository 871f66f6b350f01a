"""Shared pydantic base for request and response payloads."""
from datetime import datetime
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, PlainSerializer, model_serializer
from pydantic.alias_generators import to_camel

from karbarg.utils.datetime_helpers import ensure_utc


def to_utc_iso(dt: datetime) -> str:
    """ISO 8601 in UTC with a ``Z`` suffix; naive values are read as UTC."""
    return ensure_utc(dt).isoformat().replace("+00:00", "Z")


# SQLite hands back naive datetimes; JSON output must still carry the Z
UTCDateTime = Annotated[datetime, PlainSerializer(to_utc_iso, when_used="json")]


def _render_datetimes(value: Any) -> Any:
    if isinstance(value, datetime):
        return to_utc_iso(value)
    if isinstance(value, dict):
        return {key: _render_datetimes(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_render_datetimes(item) for item in value]
    return value


class BaseSchema(BaseModel):
    """camelCase on the wire, snake_case in Python, UTC timestamps everywhere.

    Declare timestamp fields as ``UTCDateTime`` so JSON dumps are normalized
    field by field; ``model_dump()`` in Python mode renders them the same way.
    """

    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    @model_serializer(mode="wrap")
    def serialize_model(self, handler):
        return _render_datetimes(handler(self))
