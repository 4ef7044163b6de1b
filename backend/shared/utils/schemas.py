"""
Shared Pydantic schemas used across the application.

Wire format is camelCase JSON; Python attributes stay snake_case.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """
    Base model that reads and writes camelCase keys.

    Fields can still be populated by their Python name, which keeps
    service code and tests free of aliases.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class ErrorResponse(BaseModel):
    """Standard error body returned by AppException handlers."""

    detail: str


class ReceivedResponse(BaseModel):
    """Acknowledgement returned to gateway notifications."""

    received: bool = True
