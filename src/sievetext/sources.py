"""
Input discovery and per-file document sources.

An input file is either a single HTML document (``.html``, ``.htm``) or a
WARC archive (``.warc``, ``.warc.gz``) holding many captured responses.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Optional, Union

import structlog

from sievetext.archive.http import decode_text, html_from_record
from sievetext.archive.reader import open_records
from sievetext.config.config import DecodingConfig
from sievetext.exceptions import DecodeError, UnsupportedInputError
from sievetext.protocols import SourceDocument

logger = structlog.get_logger(__name__)


class InputKind(Enum):
    HTML = "html"
    WARC = "warc"


_SUFFIXES = (
    (".warc.gz", InputKind.WARC),
    (".warc", InputKind.WARC),
    (".html", InputKind.HTML),
    (".htm", InputKind.HTML),
)

DecodeErrorHandler = Callable[[DecodeError], None]


def input_kind(path: Union[str, Path]) -> Optional[InputKind]:
    """Classify ``path`` by its file extension; None when unsupported."""
    name = Path(path).name.lower()
    for suffix, kind in _SUFFIXES:
        if name.endswith(suffix):
            return kind
    return None


def discover_inputs(paths: Iterable[Union[str, Path]]) -> List[Path]:
    """
    Expand files and directories into the ordered list of supported inputs.

    Directories are searched recursively and their files sorted by path.
    Explicitly named files with an unsupported extension are skipped with a
    warning.

    Raises:
        FileNotFoundError: If a path does not exist.
    """
    inputs: List[Path] = []
    seen = set()
    for raw in paths:
        path = Path(raw)
        if not path.exists():
            raise FileNotFoundError(f"Input path does not exist: {path}")
        if path.is_dir():
            candidates = sorted(p for p in path.rglob("*") if p.is_file() and input_kind(p) is not None)
        elif input_kind(path) is None:
            logger.warning("Skipping input with unsupported extension", path=str(path))
            continue
        else:
            candidates = [path]
        for candidate in candidates:
            key = candidate.resolve()
            if key not in seen:
                seen.add(key)
                inputs.append(candidate)
    logger.info("Discovered inputs", count=len(inputs))
    return inputs


def _raise(error: DecodeError) -> None:
    raise error


def iter_documents(
    path: Path,
    decoding: DecodingConfig,
    on_error: Optional[DecodeErrorHandler] = None,
) -> Iterator[SourceDocument]:
    """
    Yield the HTML documents held by the input file ``path``.

    A record that fails to decode is passed to ``on_error`` and skipped. A
    malformed archive is passed to ``on_error`` once and ends the iteration;
    documents already yielded stay valid. Without ``on_error``, errors are
    raised.
    """
    handle = on_error or _raise
    kind = input_kind(path)

    if kind is InputKind.HTML:
        body = path.read_bytes()
        yield SourceDocument(html=decode_text(body, None, decoding), file_name=str(path))
        return

    if kind is not InputKind.WARC:
        logger.warning("Skipping unsupported input file", file_name=str(path))
        handle(UnsupportedInputError(f"Unsupported input file: {path}"))
        return

    with open_records(path) as records:
        while True:
            try:
                record = next(records, None)
            except DecodeError as e:
                logger.warning("Malformed archive, keeping records read so far", file_name=str(path), error=str(e))
                handle(e)
                return
            if record is None:
                return
            try:
                document = html_from_record(record, decoding, file_name=str(path))
            except DecodeError as e:
                logger.warning(
                    "Skipping undecodable record", file_name=str(path), target_uri=record.target_uri, error=str(e)
                )
                handle(e)
                continue
            if document is not None:
                yield document
