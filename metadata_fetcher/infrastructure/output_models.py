"""
Pydantic models for the structured failure values written to the output.

These models are the contract for the JSON emitted in place of metadata text
when a locator could not be processed and the error policy asks for markers.
"""

from pydantic import BaseModel

from ..application.domain import printable
from ..application.exceptions import FetchError


class FailureDetails(BaseModel):
    """Describes why one locator produced no metadata."""

    type: str
    stage: str
    message: str
    locator: str


class FailureMarker(BaseModel):
    """The JSON member value for a failed locator: `{"error": {...}}`."""

    error: FailureDetails

    @classmethod
    def from_error(cls, error: FetchError) -> "FailureMarker":
        return cls(
            error=FailureDetails(
                type=type(error.cause).__name__,
                stage=error.stage.value,
                message=printable(str(error.cause)),
                locator=printable(str(error.locator)),
            )
        )
