"""Pipeline error values and domain exceptions.

Per-item failures are recorded on the item as a ``PipelineError`` value and
never raised past the stage that produced them. The canonical text form
(``ParseFailure(detail)``, ``NoContent``...) is what the persistence layer
stores, so the codec below must round-trip exactly.
"""

from enum import Enum
from typing import Any

from pydantic import model_validator

from src.data_model import StrictBaseModel


class HemerotecaError(Exception):
    """Base exception for all hemeroteca errors."""


class PipelineErrorKind(str, Enum):
    """Closed set of per-item pipeline failures.

    - EMPTY_INPUT: Content to process was empty
    - PARSE_FAILURE: Content could not be parsed (carries detail)
    - NO_CONTENT: Parsing succeeded but produced no text
    - NETWORK_FAILURE: Content could not be fetched (carries detail)
    - UNKNOWN: Anything else, including unreadable stored values
    """

    EMPTY_INPUT = "EmptyInput"
    PARSE_FAILURE = "ParseFailure"
    NO_CONTENT = "NoContent"
    NETWORK_FAILURE = "NetworkFailure"
    UNKNOWN = "Unknown"


_KINDS_WITH_DETAIL = frozenset(
    {PipelineErrorKind.PARSE_FAILURE, PipelineErrorKind.NETWORK_FAILURE}
)

# Tags written by earlier releases of the store
_LEGACY_TAGS: dict[str, PipelineErrorKind] = {
    "EmptyString": PipelineErrorKind.EMPTY_INPUT,
    "ParsingError": PipelineErrorKind.PARSE_FAILURE,
    "NetworkError": PipelineErrorKind.NETWORK_FAILURE,
    "UnknownError": PipelineErrorKind.UNKNOWN,
}


class PipelineErrorParseError(HemerotecaError, ValueError):
    """Raised when a stored error string is not a known variant."""


class PipelineError(StrictBaseModel):
    """A terminal per-item pipeline failure.

    Attributes:
        kind: Variant tag.
        detail: Payload for ParseFailure and NetworkFailure, None otherwise.
    """

    kind: PipelineErrorKind
    detail: str | None = None

    @model_validator(mode="after")
    def validate_detail(self) -> "PipelineError":
        """Ensure payload presence matches the variant."""
        if self.kind in _KINDS_WITH_DETAIL and self.detail is None:
            msg = f"{self.kind.value} requires a detail"
            raise ValueError(msg)
        if self.kind not in _KINDS_WITH_DETAIL and self.detail is not None:
            msg = f"{self.kind.value} does not carry a detail"
            raise ValueError(msg)
        return self

    @classmethod
    def empty_input(cls) -> "PipelineError":
        """Build an EmptyInput error."""
        return cls(kind=PipelineErrorKind.EMPTY_INPUT)

    @classmethod
    def parse_failure(cls, detail: str) -> "PipelineError":
        """Build a ParseFailure error."""
        return cls(kind=PipelineErrorKind.PARSE_FAILURE, detail=detail)

    @classmethod
    def no_content(cls) -> "PipelineError":
        """Build a NoContent error."""
        return cls(kind=PipelineErrorKind.NO_CONTENT)

    @classmethod
    def network_failure(cls, detail: str) -> "PipelineError":
        """Build a NetworkFailure error."""
        return cls(kind=PipelineErrorKind.NETWORK_FAILURE, detail=detail)

    @classmethod
    def unknown(cls) -> "PipelineError":
        """Build an Unknown error."""
        return cls(kind=PipelineErrorKind.UNKNOWN)

    def to_text(self) -> str:
        """Encode to the canonical text form.

        Returns:
            ``Tag`` or ``Tag(detail)``.
        """
        if self.kind in _KINDS_WITH_DETAIL:
            return f"{self.kind.value}({self.detail})"
        return self.kind.value

    @classmethod
    def from_text(cls, text: str) -> "PipelineError":
        """Decode the canonical text form.

        The tag is everything before the first ``(``; the detail is
        everything between it and the final ``)``, so details may
        themselves contain parentheses.

        Args:
            text: Encoded error.

        Returns:
            Decoded PipelineError.

        Raises:
            PipelineErrorParseError: If the text is not a known variant.
        """
        tag, sep, rest = text.partition("(")
        detail: str | None = None
        if sep:
            if not rest.endswith(")"):
                msg = f"Unterminated detail in pipeline error: {text!r}"
                raise PipelineErrorParseError(msg)
            detail = rest[:-1]

        kind = cls._kind_for_tag(tag)
        if kind is None:
            msg = f"Unknown pipeline error tag: {tag!r}"
            raise PipelineErrorParseError(msg)
        if (kind in _KINDS_WITH_DETAIL) != (detail is not None):
            msg = f"Malformed pipeline error: {text!r}"
            raise PipelineErrorParseError(msg)
        return cls(kind=kind, detail=detail)

    @staticmethod
    def _kind_for_tag(tag: str) -> PipelineErrorKind | None:
        try:
            return PipelineErrorKind(tag)
        except ValueError:
            return _LEGACY_TAGS.get(tag)

    def to_dict(self) -> dict[str, str | None]:
        """Convert to dictionary for serialization.

        Returns:
            Dictionary with kind and detail.
        """
        return {"kind": self.kind.value, "detail": self.detail}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PipelineError":
        """Build from a dictionary produced by ``to_dict``."""
        return cls(kind=PipelineErrorKind(data["kind"]), detail=data.get("detail"))

    def __str__(self) -> str:
        return self.to_text()


class PipelineErrorException(HemerotecaError):
    """Carries a PipelineError out of a helper that cannot return it.

    Raised by content cleaning and caught by the stage that records the
    error on the item.
    """

    def __init__(self, error: PipelineError) -> None:
        """Initialize the exception.

        Args:
            error: The pipeline error value.
        """
        super().__init__(error.to_text())
        self.error = error


class MalformedEntryError(HemerotecaError, ValueError):
    """Raised when a feed entry lacks a required field."""

    def __init__(self, field: str, channel: str) -> None:
        """Initialize the error.

        Args:
            field: Name of the missing field.
            channel: Channel the entry came from.
        """
        super().__init__(f"Feed entry from {channel!r} has no {field}")
        self.field = field
        self.channel = channel
