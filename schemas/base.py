"""Base schema utilities and common types."""

from __future__ import annotations

from typing import Annotated, Any, TypeVar

import structlog
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from core.errors import ValidationError

logger = structlog.get_logger(__name__)

SchemaT = TypeVar("SchemaT", bound="BaseSchema")


class BaseSchema(BaseModel):
    """Base schema with common configuration.

    Fields accept both snake_case names and the camelCase keys that form
    submissions use (``studentId``, ``minCgpa`` ...).
    """

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        str_strip_whitespace=True,
        alias_generator=to_camel,
    )


# Common field types
Cgpa = Annotated[float, Field(ge=0.0, le=10.0)]
Email = Annotated[str, Field(max_length=254, pattern=r"^[^\s@]+@[^\s@]+\.[^\s@]+$")]


def number_or_zero(value: Any, field: str, subject: str | None = None) -> Any:
    """Coerce blank or non-numeric input to 0, logging a warning.

    Numeric input passes through untouched so range checks still apply.
    """
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    text = "" if value is None else str(value).strip()
    try:
        return float(text)
    except ValueError:
        if text:
            logger.warning(
                "Unparseable numeric value treated as 0",
                field=field,
                value=text,
                subject=subject,
            )
        return 0.0


def parse_record(model: type[SchemaT], data: Any, label: str) -> SchemaT:
    """Validate untyped input into ``model`` or raise ``ValidationError``."""
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'record'}: {err['msg']}"
            for err in e.errors()
        )
        raise ValidationError(
            f"Invalid {label} record: {problems}",
            errors=e.errors(include_url=False),
        ) from e
