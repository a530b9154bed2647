"""
Core dataclasses and collaborator contracts for SieveText.

This module defines the data that flows through the decode-and-extract
pipeline and the narrow protocols through which the pipeline talks to its
external collaborators (HTML rendering, sentence segmentation, language
identification and stop-word lists).

Data flow:
- ArchiveRecord: one WARC record as read from a container file
- DecodedResponse: the HTTP response reconstructed from a record
- SourceDocument: one HTML payload plus its provenance
- ExtractionOutcome: sentences or a classified failure
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, Iterator, List, Optional, Protocol, Tuple, runtime_checkable

# ============================================================================
# Enums
# ============================================================================


class RecordType(Enum):
    """WARC record types (WARC/1.0 and 1.1)."""

    WARCINFO = "warcinfo"
    RESPONSE = "response"
    REQUEST = "request"
    RESOURCE = "resource"
    METADATA = "metadata"
    REVISIT = "revisit"
    CONVERSION = "conversion"
    CONTINUATION = "continuation"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Optional[str]) -> "RecordType":
        """Map a ``WARC-Type`` header value to a record type."""
        if not value:
            return cls.OTHER
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.OTHER


class FailureKind(Enum):
    """Per-document failure classes, counted separately by the batch driver."""

    TIMEOUT = "timeout"
    DECODE_ERROR = "decode"
    EXTRACT_ERROR = "extract"


# ============================================================================
# Archive and HTTP data
# ============================================================================


class HttpHeaders:
    """
    Ordered header fields with case-insensitive lookup.

    Duplicated fields are preserved in their original order.
    """

    __slots__ = ("_fields",)

    def __init__(self, fields: Optional[List[Tuple[str, str]]] = None) -> None:
        self._fields: List[Tuple[str, str]] = list(fields or [])

    def add(self, name: str, value: str) -> None:
        self._fields.append((name, value))

    def get_all(self, name: str) -> List[str]:
        key = name.lower()
        return [value for field_name, value in self._fields if field_name.lower() == key]

    def get_first(self, name: str) -> Optional[str]:
        values = self.get_all(name)
        return values[0] if values else None

    def get_last(self, name: str) -> Optional[str]:
        values = self.get_all(name)
        return values[-1] if values else None

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        value = self.get_first(name)
        return default if value is None else value

    def remove(self, name: str) -> None:
        key = name.lower()
        self._fields = [(n, v) for n, v in self._fields if n.lower() != key]

    def items(self) -> List[Tuple[str, str]]:
        return list(self._fields)

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str):
            return False
        key = name.lower()
        return any(field_name.lower() == key for field_name, _ in self._fields)

    def __iter__(self) -> Iterator[Tuple[str, str]]:
        return iter(list(self._fields))

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        return f"HttpHeaders({self._fields!r})"


@dataclass(frozen=True)
class ArchiveRecord:
    """One record of a WARC container file."""

    record_type: RecordType
    raw_content: bytes
    target_uri: Optional[str] = None
    target_id: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict, compare=False)


@dataclass
class DecodedResponse:
    """
    An HTTP response reconstructed from an archive record.

    ``body`` always holds the decoded payload: chunked framing has been
    reassembled and the declared content-encoding has been reversed.
    """

    status_line: str
    protocol: str
    status_code: int
    headers: HttpHeaders
    body: bytes

    @property
    def content_type(self) -> Optional[str]:
        """Media type of the last ``Content-Type`` header, lower-cased and without parameters."""
        value = self.headers.get_last("Content-Type")
        if value is None:
            return None
        media_type = value.split(";", 1)[0].strip().lower()
        return media_type or None

    @property
    def charset(self) -> Optional[str]:
        """The ``charset`` parameter of the content type, if declared."""
        value = self.headers.get_last("Content-Type")
        if value is None:
            return None
        for param in value.split(";")[1:]:
            name, _, param_value = param.partition("=")
            if name.strip().lower() == "charset":
                charset = param_value.strip().strip("\"'")
                return charset or None
        return None

    def is_html(self) -> bool:
        return self.content_type == "text/html"


@dataclass(frozen=True)
class SourceDocument:
    """An HTML payload to extract sentences from, with its provenance."""

    html: str
    file_name: Optional[str] = None
    target_uri: Optional[str] = None
    target_id: Optional[str] = None

    def annotation(self) -> str:
        """Space-joined identifiers used as the per-document header line."""
        names = [name for name in (self.target_uri, self.target_id, self.file_name) if name]
        return " ".join(names)


# ============================================================================
# Extraction data
# ============================================================================


@dataclass(frozen=True)
class Paragraph:
    """A whitespace-normalized rendered line with its resolved language."""

    text: str
    language: str


@dataclass(frozen=True)
class Sentence:
    """A sentence carrying the language of the paragraph it came from."""

    text: str
    language: str


@dataclass(frozen=True)
class ExtractionOutcome:
    """Either the extracted sentences of a document or a classified failure."""

    sentences: Optional[List[str]] = None
    failure: Optional[FailureKind] = None
    message: Optional[str] = None

    def __post_init__(self) -> None:
        if (self.sentences is None) == (self.failure is None):
            raise ValueError("An outcome holds either sentences or a failure")

    @classmethod
    def success(cls, sentences: List[str]) -> "ExtractionOutcome":
        return cls(sentences=list(sentences))

    @classmethod
    def failed(cls, kind: FailureKind, message: str = "") -> "ExtractionOutcome":
        return cls(failure=kind, message=message)

    @property
    def ok(self) -> bool:
        return self.failure is None

    @property
    def is_timeout(self) -> bool:
        return self.failure is FailureKind.TIMEOUT


# ============================================================================
# Collaborator protocols
# ============================================================================


@runtime_checkable
class Renderer(Protocol):
    """Turns raw markup into an ordered sequence of rendered text lines."""

    def render(self, html: str) -> List[str]:
        ...


@runtime_checkable
class SentenceSegmenter(Protocol):
    """Splits text into sentences and words using language-specific rules."""

    def segment(self, text: str, language: str) -> List[str]:
        ...

    def tokenize(self, text: str, language: str) -> List[str]:
        ...


@runtime_checkable
class LanguageIdentifier(Protocol):
    """Identifies the language of a text; ``None`` when it cannot tell."""

    def detect(self, text: str) -> Optional[str]:
        ...


@runtime_checkable
class StopWordProvider(Protocol):
    """Supplies the stop-word list of a language; ``None`` when unavailable."""

    def words_for(self, language: str) -> Optional[FrozenSet[str]]:
        ...
