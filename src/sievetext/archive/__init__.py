"""WARC container reading and embedded HTTP response decoding."""

from .http import decode_record, decode_text, html_from_record, parse_response
from .reader import iter_records, open_records

__all__ = [
    "decode_record",
    "decode_text",
    "html_from_record",
    "iter_records",
    "open_records",
    "parse_response",
]
