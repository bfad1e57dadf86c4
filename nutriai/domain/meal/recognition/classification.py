"""
Classified errors.

Closed set of normalized failure variants. Every raw failure met by the
orchestrator (provider exception, validation problem, anything else) is
turned into exactly one of these before any decision is taken.
"""

from __future__ import annotations

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class _ClassifiedBase(BaseModel):
    """Fields shared by every variant."""

    model_config = ConfigDict(frozen=True)

    message: str = Field(..., description="Technical message")
    code: str = Field(..., min_length=1, description="Machine readable code")
    cause: str = Field("Error", description="Type name of the raw failure")
    stack: Optional[str] = Field(None, description="Formatted traceback, if any")

    @property
    def is_provider_failure(self) -> bool:
        """True for failures reported by an upstream provider."""
        return False


class ValidationFailure(_ClassifiedBase):
    """Caller input missing or malformed. Never reaches a provider."""

    kind: Literal["ValidationError"] = "ValidationError"
    status_code: Literal[400] = 400
    retryable: Literal[False] = False


class ApiFailure(_ClassifiedBase):
    """Upstream provider rejected the call with an HTTP-like status."""

    kind: Literal["ApiError"] = "ApiError"
    status_code: int = Field(..., ge=400, le=599)
    retryable: bool = False

    @property
    def is_provider_failure(self) -> bool:
        return True


class TimeoutFailure(_ClassifiedBase):
    """Upstream provider did not answer in time."""

    kind: Literal["TimeoutError"] = "TimeoutError"
    status_code: Literal[503, 504] = 504
    retryable: Literal[True] = True

    @property
    def is_provider_failure(self) -> bool:
        return True


class UnknownFailure(_ClassifiedBase):
    """Failure without any usable status signal."""

    kind: Literal["UnknownError"] = "UnknownError"
    status_code: Literal[500] = 500
    retryable: Literal[False] = False


ClassifiedError = Annotated[
    Union[ValidationFailure, ApiFailure, TimeoutFailure, UnknownFailure],
    Field(discriminator="kind"),
]
