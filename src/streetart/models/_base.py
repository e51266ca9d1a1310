"""Base model for persisted streetart records.

Every record model inherits from :class:`StreetArtBaseModel` which
provides:

* ``alias_generator=to_camel`` so the camelCase keys of the stored and
  legacy record format (``coverIndex``, ``createdAt``) map to
  snake_case fields.
* A ``model_validator(mode="before")`` that drops ``None`` values so the
  field default is used (older snapshots wrote ``null`` for empty text).
"""

from __future__ import annotations

import math
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, model_validator
from pydantic.alias_generators import to_camel


def parse_epoch_ms(value: Any) -> Any:
    """Coerce a numeric epoch-milliseconds value (int, float or numeric string) to ``int``.

    Anything else is passed through unchanged so pydantic reports it.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return value
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return value
        return int(value)
    return value


EpochMillis = Annotated[int, BeforeValidator(parse_epoch_ms)]
"""Annotated type for creation timestamps stored as epoch milliseconds."""


class StreetArtBaseModel(BaseModel):
    """Base for persisted record models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        return {key: value for key, value in values.items() if value is not None}
