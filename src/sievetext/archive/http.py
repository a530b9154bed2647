"""
Reconstruction of the HTTP response embedded in a WARC ``response`` record.

Decoding happens in three layers:

1. Status line and header block.
2. Body framing: chunked, Content-Length, or read to end of record.
3. Content-encoding reversal: gzip, x-gzip, deflate or identity.

``html_from_record`` adds the final HTML gate and byte-to-text decoding.
"""

from __future__ import annotations

import codecs
import re
import zlib
from typing import TYPE_CHECKING, Callable, Dict, List, Optional, Tuple

import charset_normalizer
import structlog
from bs4.dammit import EncodingDetector

from sievetext.exceptions import HttpDecodeError
from sievetext.protocols import ArchiveRecord, DecodedResponse, HttpHeaders, RecordType, SourceDocument

if TYPE_CHECKING:
    from sievetext.config.config import DecodingConfig

logger = structlog.get_logger(__name__)

_STATUS_LINE = re.compile(r"^(HTTP/\d+(?:\.\d+)?)\s+(\d{3})(?:\s+(.*))?$", re.IGNORECASE)
_HEADER_END = re.compile(rb"\r?\n\r?\n")

# Headers describing framing that no longer applies to a decompressed body.
OBSOLETE_HEADERS = ("Content-Length", "Content-Encoding", "Content-MD5")


# --- Content-encodings ---


def _gunzip(data: bytes) -> bytes:
    # wbits=MAX_WBITS|16 accepts only a gzip header and trailer.
    decompressor = zlib.decompressobj(zlib.MAX_WBITS | 16)
    result = decompressor.decompress(data) + decompressor.flush()
    if not decompressor.eof:
        raise zlib.error("incomplete gzip stream")
    return result


def _inflate(data: bytes) -> bytes:
    # Servers disagree on whether "deflate" means raw or zlib-wrapped data.
    try:
        decompressor = zlib.decompressobj(-zlib.MAX_WBITS)
        result = decompressor.decompress(data) + decompressor.flush()
        if decompressor.eof:
            return result
    except zlib.error:
        pass
    decompressor = zlib.decompressobj(zlib.MAX_WBITS)
    result = decompressor.decompress(data) + decompressor.flush()
    if not decompressor.eof:
        raise zlib.error("incomplete deflate stream")
    return result


CONTENT_DECODERS: Dict[str, Callable[[bytes], bytes]] = {
    "gzip": _gunzip,
    "x-gzip": _gunzip,
    "deflate": _inflate,
}


def _split_codings(values: List[str]) -> List[str]:
    codings: List[str] = []
    for value in values:
        codings.extend(token.strip().lower() for token in value.split(",") if token.strip())
    return codings


def decode_content(body: bytes, headers: HttpHeaders) -> Tuple[bytes, bool]:
    """
    Reverse the content-codings declared in ``headers``.

    Returns the decoded body and whether any decompression was applied.
    """
    codings = _split_codings(headers.get_all("Content-Encoding"))
    if not codings or not body:
        return body, False

    applied = False
    # Codings are listed in the order they were applied.
    for coding in reversed(codings):
        if coding == "identity":
            continue
        decoder = CONTENT_DECODERS.get(coding)
        if decoder is None:
            raise HttpDecodeError(f"Unsupported content-encoding: {coding}")
        try:
            body = decoder(body)
        except zlib.error as e:
            raise HttpDecodeError(f"Corrupt {coding} body: {e}") from e
        applied = True
    return body, applied


# --- Body framing ---


def _read_chunked(data: bytes) -> bytes:
    parts: List[bytes] = []
    pos = 0
    while True:
        line_end = data.find(b"\n", pos)
        if line_end < 0:
            raise HttpDecodeError("Truncated chunked body: missing chunk-size line")
        size_text = data[pos:line_end].split(b";", 1)[0].strip()
        try:
            size = int(size_text, 16)
        except ValueError:
            raise HttpDecodeError(f"Invalid chunk size: {size_text[:20]!r}") from None
        if size < 0:
            raise HttpDecodeError(f"Invalid chunk size: {size_text[:20]!r}")
        pos = line_end + 1
        if size == 0:
            # Trailer fields, if any, are ignored.
            return b"".join(parts)
        chunk = data[pos : pos + size]
        if len(chunk) < size:
            raise HttpDecodeError(f"Truncated chunk: expected {size} bytes, got {len(chunk)}")
        parts.append(chunk)
        pos += size
        # CRLF after the chunk data
        if data[pos : pos + 2] == b"\r\n":
            pos += 2
        elif data[pos : pos + 1] == b"\n":
            pos += 1


def _content_length(headers: HttpHeaders) -> Optional[int]:
    length: Optional[int] = None
    for value in headers.get_all("Content-Length"):
        value = value.strip()
        if value.isdigit():
            length = int(value)
    return length


def _is_chunked(headers: HttpHeaders) -> bool:
    codings = _split_codings(headers.get_all("Transfer-Encoding"))
    return bool(codings) and codings[-1] == "chunked"


def frame_body(remainder: bytes, protocol: str, headers: HttpHeaders) -> bytes:
    """
    Resolve the body framing of a response whose header block ended before ``remainder``.

    Without chunked coding or a valid Content-Length the body runs to the
    end of the record, whatever ``protocol`` or Connection say.
    """
    if _is_chunked(headers):
        return _read_chunked(remainder)

    length = _content_length(headers)
    if length is not None:
        if len(remainder) < length:
            raise HttpDecodeError(f"Truncated body: Content-Length {length}, got {len(remainder)} bytes")
        return remainder[:length]

    logger.debug("Reading body to end of record", protocol=protocol, size=len(remainder))
    return remainder


# --- Response parsing ---


def _parse_head(head: bytes) -> Tuple[str, str, int, HttpHeaders]:
    text = head.decode("iso-8859-1")
    lines = text.replace("\r\n", "\n").split("\n")

    status_line = lines[0].strip()
    match = _STATUS_LINE.match(status_line)
    if match is None:
        raise HttpDecodeError(f"Invalid HTTP status line: {status_line[:80]!r}")

    headers = HttpHeaders()
    fields: List[List[str]] = []
    for line in lines[1:]:
        if not line:
            continue
        if line[0] in " \t":
            if not fields:
                raise HttpDecodeError("Header continuation line without a header")
            fields[-1][1] = f"{fields[-1][1]} {line.strip()}"
            continue
        name, sep, value = line.partition(":")
        if not sep or not name.strip():
            raise HttpDecodeError(f"Invalid HTTP header line: {line[:80]!r}")
        fields.append([name.strip(), value.strip()])
    for name, value in fields:
        headers.add(name, value)

    return status_line, match.group(1).upper(), int(match.group(2)), headers


def parse_response(raw: bytes) -> DecodedResponse:
    """
    Parse raw HTTP response bytes into a DecodedResponse.

    Raises:
        HttpDecodeError: If the status line, headers, framing or
            content-encoding cannot be decoded.
    """
    match = _HEADER_END.search(raw)
    if match is None:
        # A response made of a status line and headers only.
        if not raw.strip():
            raise HttpDecodeError("Empty HTTP response")
        head, remainder = raw, b""
    else:
        head, remainder = raw[: match.start()], raw[match.end() :]

    status_line, protocol, status_code, headers = _parse_head(head)
    body = frame_body(remainder, protocol, headers)
    body, decompressed = decode_content(body, headers)
    if decompressed:
        for name in OBSOLETE_HEADERS:
            headers.remove(name)

    return DecodedResponse(
        status_line=status_line,
        protocol=protocol,
        status_code=status_code,
        headers=headers,
        body=body,
    )


def decode_record(record: ArchiveRecord) -> Optional[DecodedResponse]:
    """Decode the HTTP response of ``record``; ``None`` for non-response records."""
    if record.record_type is not RecordType.RESPONSE:
        return None
    return parse_response(record.raw_content)


# --- Text decoding ---


def _known_charset(name: Optional[str]) -> Optional[str]:
    if not name:
        return None
    try:
        return codecs.lookup(name).name
    except LookupError:
        logger.debug("Unknown charset", charset=name)
        return None


def sniff_charset(body: bytes, sniff_bytes: int) -> Optional[str]:
    """Find a ``<meta>`` or XML charset declaration in the first ``sniff_bytes`` of ``body``."""
    if sniff_bytes <= 0:
        return None
    return EncodingDetector.find_declared_encoding(body[:sniff_bytes], is_html=True, search_entire_document=True)


def detect_charset(body: bytes) -> Optional[str]:
    """Guess the charset of undeclared ``body`` bytes with charset_normalizer."""
    if not body:
        return None
    try:
        result = charset_normalizer.from_bytes(body).best()
    except Exception as e:
        logger.debug("Charset detection failed", error=str(e))
        return None
    if result is None:
        return None
    return result.encoding


def decode_text(body: bytes, declared: Optional[str], config: DecodingConfig) -> str:
    """Decode ``body`` with the declared, sniffed, detected or default charset."""
    charset = (
        _known_charset(declared)
        or _known_charset(sniff_charset(body, config.sniff_bytes))
        or _known_charset(detect_charset(body))
        or config.default_charset
    )
    return body.decode(charset, errors="replace")


def html_from_record(
    record: ArchiveRecord, config: DecodingConfig, file_name: Optional[str] = None
) -> Optional[SourceDocument]:
    """
    Return the HTML document carried by ``record``.

    ``None`` when the record is not a response or the response is not
    ``text/html``.

    Raises:
        HttpDecodeError: If the embedded response cannot be decoded.
    """
    response = decode_record(record)
    if response is None:
        return None
    if not response.is_html():
        logger.debug(
            "Skipping non-HTML response",
            target_uri=record.target_uri,
            content_type=response.content_type,
        )
        return None
    return SourceDocument(
        html=decode_text(response.body, response.charset, config),
        file_name=file_name,
        target_uri=record.target_uri,
        target_id=record.target_id,
    )
