"""
Test configuration for SieveText.

Provides deterministic stand-ins for the external collaborators (renderer,
segmenter, language detector, stop words) and fixtures writing in-memory
WARC payloads to disk.
"""

# Standard library imports
from pathlib import Path
from typing import Sequence

# Third-party imports
import pytest

# Local imports
from sievetext.config import Config, ExtractionConfig
from sievetext.extractor import SentenceExtractor
from tests.helpers.fakes import FakeStopWords, LineRenderer, RecordingDetector, RegexSegmenter, english_paragraph
from tests.helpers.warc import html_page, http_response, warc_file, warc_record

# ============================================================================
# Pytest Configuration
# ============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests for individual components")
    config.addinivalue_line("markers", "integration: Integration tests across modules")
    config.addinivalue_line("markers", "slow: Tests that take >10 seconds")


# ============================================================================
# Collaborator Fixtures
# ============================================================================


@pytest.fixture
def renderer() -> LineRenderer:
    return LineRenderer()


@pytest.fixture
def detector() -> RecordingDetector:
    return RecordingDetector()


@pytest.fixture
def segmenter() -> RegexSegmenter:
    return RegexSegmenter()


@pytest.fixture
def stop_words() -> FakeStopWords:
    return FakeStopWords()


@pytest.fixture
def make_extractor(renderer, detector, segmenter, stop_words):
    """Build a SentenceExtractor over the fake collaborators."""

    def _make(**config_values) -> SentenceExtractor:
        return SentenceExtractor(
            ExtractionConfig(**config_values),
            renderer=renderer,
            segmenter=segmenter,
            detector=detector,
            stop_words=stop_words,
        )

    return _make


# ============================================================================
# Text and File Fixtures
# ============================================================================


@pytest.fixture
def english_text() -> str:
    """About 500 characters of English prose."""
    return english_paragraph(500)


@pytest.fixture
def write_warc(tmp_path: Path):
    """Write a WARC file holding one HTML response per page text."""

    def _write(name: str, pages: Sequence[str], gzipped: bool = False) -> Path:
        records = [
            warc_record(
                http_response(html_page(text)),
                target_uri=f"http://example.com/{name}/{i}",
                trec_id=f"{name}-{i}",
            )
            for i, text in enumerate(pages)
        ]
        path = tmp_path / name
        path.write_bytes(warc_file(records, gzipped=gzipped))
        return path

    return _write


@pytest.fixture
def config(tmp_path: Path) -> Config:
    """Default configuration writing into a temporary output directory."""
    return Config.model_validate(
        {
            "extraction": {"min_paragraph_length": 50},
            "output": {"output_dir": str(tmp_path / "out")},
        }
    )
