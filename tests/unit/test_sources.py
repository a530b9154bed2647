"""
Unit tests for input discovery and per-file document sources.
"""

import pytest
from sievetext.config import DecodingConfig
from sievetext.exceptions import ArchiveFormatError, DecodeError, HttpDecodeError, UnsupportedInputError
from sievetext.protocols import FailureKind
from sievetext.sources import InputKind, discover_inputs, input_kind, iter_documents

from tests.helpers.warc import html_page, http_response, warc_file, warc_record

TRUNCATED_RECORD = b"WARC/1.0\r\nWARC-Type: response\r\nContent-Length: 500\r\n\r\nshort"


@pytest.mark.parametrize(
    "name,expected",
    [
        ("crawl.warc.gz", InputKind.WARC),
        ("CRAWL.WARC", InputKind.WARC),
        ("page.html", InputKind.HTML),
        ("page.HTM", InputKind.HTML),
        ("notes.txt", None),
        ("archive.gz", None),
    ],
)
def test_input_kind(name, expected):
    assert input_kind(name) is expected


class TestDiscoverInputs:
    """Test cases for discover_inputs."""

    def test_directories_are_searched_recursively_in_order(self, tmp_path):
        (tmp_path / "b").mkdir()
        (tmp_path / "a" / "nested").mkdir(parents=True)
        for relative in ["b/two.html", "a/nested/one.warc.gz", "a/zero.warc", "a/skip.txt"]:
            (tmp_path / relative).write_bytes(b"")

        inputs = discover_inputs([tmp_path])

        assert [p.relative_to(tmp_path).as_posix() for p in inputs] == [
            "a/nested/one.warc.gz",
            "a/zero.warc",
            "b/two.html",
        ]

    def test_explicit_files_keep_their_order(self, tmp_path):
        first = tmp_path / "z.html"
        second = tmp_path / "a.html"
        first.write_text("")
        second.write_text("")

        assert discover_inputs([first, second]) == [first, second]

    def test_duplicates_removed(self, tmp_path):
        page = tmp_path / "page.html"
        page.write_text("")

        assert discover_inputs([page, tmp_path, page]) == [page]

    def test_unsupported_file_skipped(self, tmp_path):
        notes = tmp_path / "notes.txt"
        notes.write_text("")

        assert discover_inputs([notes]) == []

    def test_missing_path(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            discover_inputs([tmp_path / "missing.warc"])


class TestIterDocuments:
    """Test cases for iter_documents."""

    def test_html_file(self, tmp_path):
        path = tmp_path / "page.html"
        path.write_bytes("<p>Größe</p>".encode("utf-8"))

        documents = list(iter_documents(path, DecodingConfig()))

        assert len(documents) == 1
        assert documents[0].html == "<p>Größe</p>"
        assert documents[0].file_name == str(path)
        assert documents[0].target_uri is None

    def test_html_file_sniffed_charset(self, tmp_path):
        path = tmp_path / "latin.html"
        path.write_bytes('<meta charset="iso-8859-1"><p>caf\xe9</p>'.encode("iso-8859-1"))

        (document,) = iter_documents(path, DecodingConfig())

        assert "café" in document.html

    @pytest.mark.parametrize("gzipped", [False, True])
    def test_warc_file(self, write_warc, gzipped):
        path = write_warc("crawl.warc.gz" if gzipped else "crawl.warc", ["One.", "Two."], gzipped=gzipped)

        documents = list(iter_documents(path, DecodingConfig()))

        assert [d.target_uri for d in documents] == [
            f"http://example.com/{path.name}/0",
            f"http://example.com/{path.name}/1",
        ]
        assert [d.target_id for d in documents] == [f"{path.name}-0", f"{path.name}-1"]
        assert all(d.file_name == str(path) for d in documents)
        assert "One." in documents[0].html

    def test_non_html_and_non_response_records_skipped(self, tmp_path):
        records = [
            warc_record(b"software: test\r\n", warc_type="warcinfo", target_uri=None),
            warc_record(http_response(b"{}", headers=[("Content-Type", "application/json")])),
            warc_record(http_response(html_page("Kept."))),
        ]
        path = tmp_path / "mixed.warc"
        path.write_bytes(warc_file(records))

        documents = list(iter_documents(path, DecodingConfig()))

        assert len(documents) == 1
        assert "Kept." in documents[0].html

    def test_undecodable_record_skipped(self, tmp_path):
        broken = http_response(b"not gzip", headers=[("Content-Type", "text/html"), ("Content-Encoding", "gzip")])
        records = [warc_record(broken), warc_record(http_response(html_page("Kept.")))]
        path = tmp_path / "partly.warc"
        path.write_bytes(warc_file(records))
        errors = []

        documents = list(iter_documents(path, DecodingConfig(), on_error=errors.append))

        assert len(documents) == 1
        assert len(errors) == 1
        assert isinstance(errors[0], HttpDecodeError)

    def test_malformed_archive_keeps_earlier_documents(self, tmp_path):
        path = tmp_path / "truncated.warc"
        path.write_bytes(warc_file([warc_record(http_response(html_page("Kept.")))]) + TRUNCATED_RECORD)
        errors = []

        documents = list(iter_documents(path, DecodingConfig(), on_error=errors.append))

        assert len(documents) == 1
        assert len(errors) == 1
        assert isinstance(errors[0], ArchiveFormatError)

    def test_errors_raised_without_handler(self, tmp_path):
        path = tmp_path / "garbage.warc"
        path.write_bytes(b"this is not an archive\r\n")

        with pytest.raises(DecodeError):
            list(iter_documents(path, DecodingConfig()))

    def test_unsupported_input_is_decode_error(self, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_text("plain text")
        errors = []

        assert list(iter_documents(path, DecodingConfig(), on_error=errors.append)) == []
        assert len(errors) == 1
        assert isinstance(errors[0], UnsupportedInputError)
        assert errors[0].kind is FailureKind.DECODE_ERROR
