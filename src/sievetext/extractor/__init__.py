"""
SieveText sentence extraction.

- SentenceExtractor: the paragraph and sentence filtering policy
- TimeoutExecutor: bounded execution with cooperative cancellation
- Default collaborators: SoupRenderer (BeautifulSoup), SpacySegmenter and
  SpacyStopWords (spaCy), LangdetectDetector (langdetect)
"""

from .filters import MatchingWordFilter, MinLengthParagraph, StopWordFilter, passes_thresholds
from .language_detector import LangdetectDetector
from .policy import CancelToken, SentenceExtractor, normalize_whitespace
from .renderer import SoupRenderer
from .segmenter import SpacySegmenter
from .stopwords import SpacyStopWords, StopWordCache
from .timeout import TimeoutExecutor

__all__ = [
    "CancelToken",
    "LangdetectDetector",
    "MatchingWordFilter",
    "MinLengthParagraph",
    "SentenceExtractor",
    "SoupRenderer",
    "SpacySegmenter",
    "SpacyStopWords",
    "StopWordCache",
    "StopWordFilter",
    "TimeoutExecutor",
    "normalize_whitespace",
    "passes_thresholds",
]
