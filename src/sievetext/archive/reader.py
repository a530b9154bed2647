"""
Lazy WARC container reader.

A WARC file is a sequence of records. Each record starts with a version line
(``WARC/1.0``), followed by header fields up to one blank line, followed by
exactly ``Content-Length`` bytes of content. The whole stream may be gzip
compressed, commonly as one gzip member per record.
"""

from __future__ import annotations

import gzip
import io
import zlib
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Dict, Iterator, Optional, Union

import structlog

from sievetext.exceptions import ArchiveFormatError
from sievetext.protocols import ArchiveRecord, RecordType

logger = structlog.get_logger(__name__)

GZIP_MAGIC = b"\x1f\x8b"
VERSION_PREFIX = b"WARC/"
_READ_CHUNK = 1 << 16
_MAX_HEADER_LINE = 1 << 16

# Decompression errors surfaced while reading a gzip-wrapped stream.
_GZIP_ERRORS = (gzip.BadGzipFile, EOFError, zlib.error)


def _peek(stream: BinaryIO, size: int) -> tuple[BinaryIO, bytes]:
    """Return the first ``size`` bytes of ``stream`` without consuming them."""
    if hasattr(stream, "peek"):
        return stream, stream.peek(size)[:size]  # type: ignore[attr-defined]
    if stream.seekable():
        position = stream.tell()
        head = stream.read(size)
        stream.seek(position)
        return stream, head
    buffered = io.BufferedReader(stream)  # type: ignore[arg-type]
    return buffered, buffered.peek(size)[:size]


def _read_exactly(stream: BinaryIO, length: int) -> bytes:
    parts = []
    remaining = length
    while remaining > 0:
        chunk = stream.read(min(remaining, _READ_CHUNK))
        if not chunk:
            break
        parts.append(chunk)
        remaining -= len(chunk)
    return b"".join(parts)


def _parse_header_block(stream: BinaryIO) -> Dict[str, str]:
    headers: Dict[str, str] = {}
    last_name: Optional[str] = None
    while True:
        line = stream.readline(_MAX_HEADER_LINE)
        if not line:
            raise ArchiveFormatError("Truncated WARC header block")
        if line in (b"\r\n", b"\n"):
            return headers
        text = line.decode("utf-8", errors="replace").rstrip("\r\n")
        if text[:1] in (" ", "\t") and last_name is not None:
            headers[last_name] = f"{headers[last_name]} {text.strip()}"
            continue
        name, sep, value = text.partition(":")
        if not sep or not name.strip():
            raise ArchiveFormatError(f"Malformed WARC header line: {text[:80]!r}")
        last_name = name.strip()
        headers[last_name] = value.strip()


def _lookup(headers: Dict[str, str], name: str) -> Optional[str]:
    key = name.lower()
    for header_name, value in headers.items():
        if header_name.lower() == key:
            return value
    return None


def _read_record(stream: BinaryIO, version_line: bytes) -> ArchiveRecord:
    headers = _parse_header_block(stream)

    length_value = _lookup(headers, "Content-Length")
    if length_value is None:
        raise ArchiveFormatError("WARC record without Content-Length")
    try:
        length = int(length_value)
    except ValueError:
        raise ArchiveFormatError(f"Invalid WARC Content-Length: {length_value!r}") from None
    if length < 0:
        raise ArchiveFormatError(f"Negative WARC Content-Length: {length}")

    content = _read_exactly(stream, length)
    if len(content) < length:
        raise ArchiveFormatError(f"Truncated WARC record: expected {length} content bytes, got {len(content)}")

    return ArchiveRecord(
        record_type=RecordType.parse(_lookup(headers, "WARC-Type")),
        raw_content=content,
        target_uri=_lookup(headers, "WARC-Target-URI"),
        target_id=_lookup(headers, "WARC-TREC-ID") or _lookup(headers, "WARC-Record-ID"),
        headers=headers,
    )


def _iter_plain_records(stream: BinaryIO) -> Iterator[ArchiveRecord]:
    while True:
        line = stream.readline(_MAX_HEADER_LINE)
        if not line:
            return
        if not line.strip():
            # Records are separated by CRLF CRLF
            continue
        if not line.startswith(VERSION_PREFIX):
            raise ArchiveFormatError(f"Expected WARC version line, got {line[:40]!r}")
        yield _read_record(stream, line)


def iter_records(stream: BinaryIO, gzipped: Optional[bool] = None) -> Iterator[ArchiveRecord]:
    """
    Lazily yield the records of a WARC stream.

    Args:
        stream: Binary stream positioned at the start of the container
        gzipped: Whether the stream is gzip-wrapped. Detected from the magic
            bytes when None.

    Raises:
        ArchiveFormatError: On malformed or truncated framing. All complete
            records before the defect have been yielded by then.
    """
    if gzipped is None:
        stream, head = _peek(stream, 2)
        gzipped = head == GZIP_MAGIC

    if not gzipped:
        yield from _iter_plain_records(stream)
        return

    with gzip.GzipFile(fileobj=stream, mode="rb") as unzipped:
        try:
            yield from _iter_plain_records(unzipped)  # type: ignore[arg-type]
        except _GZIP_ERRORS as e:
            raise ArchiveFormatError(f"Corrupt gzip stream: {e}") from e


@contextmanager
def open_records(path: Union[str, Path]) -> Iterator[Iterator[ArchiveRecord]]:
    """Open a ``.warc`` or ``.warc.gz`` file and iterate its records."""
    path = Path(path)
    with open(path, "rb") as raw:
        gzipped = True if path.name.endswith(".gz") else None
        logger.debug("Reading WARC file", path=str(path), gzipped=gzipped)
        yield iter_records(raw, gzipped=gzipped)
