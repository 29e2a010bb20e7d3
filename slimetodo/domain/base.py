"""Shared pydantic configuration and field types for persisted models."""

import uuid
from datetime import date, datetime
from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict
from pydantic.alias_generators import to_camel


def new_id() -> str:
    """Generate an opaque unique id for a persisted entity."""
    return str(uuid.uuid4())


def _strip_time(value: Any) -> Any:
    """Drop the time component of datetimes and ISO datetime strings."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str) and len(value) > 10:
        return value[:10]
    return value


def _to_naive_local(value: datetime) -> datetime:
    """Convert aware datetimes to naive local time so comparisons never mix kinds."""
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


DateOnly = Annotated[date, BeforeValidator(_strip_time)]
LocalDateTime = Annotated[datetime, AfterValidator(_to_naive_local)]


class DomainModel(BaseModel):
    """Base for everything written to data.json (camelCase on disk, snake_case in Python)."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )
