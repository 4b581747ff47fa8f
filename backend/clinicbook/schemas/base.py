"""
Shared schema bases and field types: money as two-place strings, times as "HH:MM".
"""
from datetime import time
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic_core import core_schema

from ..core.timeutils import format_hhmm, parse_time


class StandardizedModel(BaseModel):
    """Base model for responses built from ORM rows and service views."""

    model_config = ConfigDict(from_attributes=True, use_enum_values=True, populate_by_name=True)


class Money(Decimal):
    """Money field that always serializes as a two-place string"""

    @classmethod
    def __get_pydantic_core_schema__(cls, source_type: Any, handler: Any) -> core_schema.CoreSchema:
        def validate_money(value: Any) -> Decimal:
            if isinstance(value, bool):
                raise ValueError("Cannot convert bool to Money")
            if isinstance(value, (int, float, str)):
                return Decimal(str(value))
            if isinstance(value, Decimal):
                return value
            raise ValueError(f"Cannot convert {type(value)} to Money")

        return core_schema.no_info_after_validator_function(
            validate_money,
            core_schema.union_schema(
                [
                    core_schema.is_instance_schema(Decimal),
                    core_schema.int_schema(),
                    core_schema.float_schema(),
                    core_schema.str_schema(),
                ]
            ),
            serialization=core_schema.plain_serializer_function_ser_schema(
                lambda value: f"{Decimal(value):.2f}",
                info_arg=False,
                return_schema=core_schema.str_schema(),
            ),
        )


class ClockTime(time):
    """Wall-clock time accepted as "HH:MM" and always rendered as "HH:MM"."""

    @classmethod
    def __get_pydantic_core_schema__(cls, source_type: Any, handler: Any) -> core_schema.CoreSchema:
        def validate_clock(value: Any) -> time:
            try:
                return parse_time(value)
            except ValueError as exc:
                raise ValueError(f"Invalid time format: {value}. Expected HH:MM format.") from exc

        return core_schema.no_info_after_validator_function(
            validate_clock,
            core_schema.union_schema(
                [core_schema.str_schema(), core_schema.is_instance_schema(time)]
            ),
            serialization=core_schema.plain_serializer_function_ser_schema(
                format_hhmm,
                info_arg=False,
                return_schema=core_schema.str_schema(),
            ),
        )
