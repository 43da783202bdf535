"""
FluentRoute - Result Envelope Schemas
======================================

What:  The tagged ``Success | Failure`` result returned instead of raising.
How:   Two frozen Pydantic models discriminated by the ``success`` literal.
       Values are never mutated; normalization builds a copy.
Who:   Returned by the HTTP utilities and by JWTManager.

Invariants:
    - Success carries only ``data``; it has no message, code or error.
    - A normalized Failure has a non-empty ``message`` and an integer ``code``.
"""

from typing import Any, Generic, Literal, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class Success(BaseModel, Generic[T]):
    """Operation succeeded; ``data`` holds the result."""

    model_config = ConfigDict(frozen=True)

    success: Literal[True] = True
    data: T


class Failure(BaseModel):
    """
    Operation failed.

    Fields are optional until the envelope goes through ``build_response``,
    which fills ``message`` and ``code`` from whatever ``error`` holds.
    """

    model_config = ConfigDict(frozen=True)

    success: Literal[False] = False
    error: Any = Field(default=None, exclude=True)
    message: Optional[str] = None
    code: Optional[int] = None
    error_type: Optional[str] = None
    additional_data: Any = None


Envelope = Union[Success[T], Failure]
