"""
Exception hierarchy for SieveText.

Every per-document error maps onto one ``FailureKind`` so the batch driver can
count it and move on.
"""

from __future__ import annotations

from typing import Optional

from sievetext.protocols import FailureKind


class SieveTextError(Exception):
    """Base class for all SieveText errors."""


class DecodeError(SieveTextError):
    """A container record or embedded HTTP response could not be decoded."""

    kind = FailureKind.DECODE_ERROR


class ArchiveFormatError(DecodeError):
    """Malformed or truncated WARC framing."""


class HttpDecodeError(DecodeError):
    """Unparsable HTTP response, broken body framing or content-encoding."""


class UnsupportedInputError(DecodeError):
    """An input file that is neither HTML nor a WARC archive."""


class ExtractionError(SieveTextError):
    """A rendering, segmentation or language collaborator failed."""

    kind = FailureKind.EXTRACT_ERROR

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.cause = cause


class ExtractionCancelled(SieveTextError):
    """Raised inside an extraction whose caller has given up on it."""


class OutputShardError(SieveTextError):
    """No worker could open its output shard."""


class ConfigurationError(SieveTextError):
    """The configuration file is missing or invalid."""
