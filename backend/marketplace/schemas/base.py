"""
Schema bases shared by every request and response model.

Requests forbid unknown fields. Responses are read straight off ORM rows
(``from_attributes``). Money travels as a JSON number.
"""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, ConfigDict
from pydantic_core import core_schema

from ..core.timezone_utils import ensure_utc


class StrictRequestModel(BaseModel):
    """Request DTO base that always forbids unexpected fields."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)


class ResponseModel(BaseModel):
    model_config = ConfigDict(from_attributes=True, use_enum_values=True)


# SQLite hands back naive datetimes; responses always carry UTC offsets.
UtcDatetime = Annotated[datetime, AfterValidator(ensure_utc)]


class Money(Decimal):
    """Decimal amount that accepts numbers or numeric strings and serializes as float."""

    @classmethod
    def __get_pydantic_core_schema__(cls, source_type: Any, handler: Any) -> core_schema.CoreSchema:
        def validate_money(value: Any) -> Decimal:
            if isinstance(value, Decimal):
                return value
            if isinstance(value, (int, float, str)):
                try:
                    return Decimal(str(value))
                except ArithmeticError:
                    raise ValueError(f"Invalid amount: {value!r}")
            raise ValueError(f"Cannot convert {type(value).__name__} to Money")

        return core_schema.no_info_after_validator_function(
            validate_money,
            core_schema.union_schema(
                [
                    core_schema.int_schema(),
                    core_schema.float_schema(),
                    core_schema.str_schema(),
                    core_schema.is_instance_schema(Decimal),
                ]
            ),
            serialization=core_schema.plain_serializer_function_ser_schema(
                float,
                info_arg=False,
                return_schema=core_schema.float_schema(),
            ),
        )
