"""
SieveText - main-content sentence extraction from HTML and WARC files.
"""

from __future__ import annotations

__version__ = "0.1.0"

from .config import Config, ExtractionConfig
from .extractor import SentenceExtractor, TimeoutExecutor
from .pipeline import BatchDriver, BatchReport

__all__ = ["__version__", "BatchDriver", "BatchReport", "Config", "ExtractionConfig", "SentenceExtractor", "TimeoutExecutor"]
