"""Exception taxonomy for the extraction pipeline and the ingestor."""

from __future__ import annotations

from enum import Enum


class FetchErrorKind(str, Enum):
    TIMEOUT = "timeout"
    HTTP_STATUS = "http_status"
    NETWORK = "network"
    ABORTED = "aborted"


class ExtractErrorKind(str, Enum):
    PARSE_FAILURE = "parse_failure"


class ConversionErrorKind(str, Enum):
    CONVERTER_UNAVAILABLE = "converter_unavailable"
    MALFORMED_INPUT = "malformed_input"


class ReadLaterError(Exception):
    """Base exception for all collector errors."""


class FetchError(ReadLaterError):
    """Raised when a page or image cannot be retrieved."""

    def __init__(
        self,
        kind: FetchErrorKind,
        message: str,
        *,
        url: str | None = None,
        status: int | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.url = url
        self.status = status


class ExtractError(ReadLaterError):
    """Raised only when HTML cannot be parsed at all."""

    def __init__(self, kind: ExtractErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind


class ImageError(ReadLaterError):
    """Per-image failure.  Recorded on the ImageRef, never propagated."""


class FormatConversionError(ReadLaterError):
    """Raised by optional binary converters (docx, xlsx, rtf)."""

    def __init__(self, kind: ConversionErrorKind, fmt: str, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.fmt = fmt
