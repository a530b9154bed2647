"""
Sentence extraction policy.

Turns one HTML document into the ordered list of sentences judged to be main
content:

1. Render the markup into raw lines, one paragraph per line.
2. Normalize whitespace and drop paragraphs rejected by the paragraph
   predicates (minimum length by default) before any language detection.
3. Resolve the paragraph language once and drop non-target languages.
4. Segment into sentences and keep those accepted by every sentence
   predicate (stop words and matching words by default).
5. Concatenate in document order, optionally separating paragraphs.
"""

from __future__ import annotations

import re
import threading
from typing import Callable, Iterator, List, Optional, Sequence, TypeVar

import structlog

from sievetext.config.config import ExtractionConfig, normalize_language
from sievetext.exceptions import ExtractionCancelled, ExtractionError
from sievetext.protocols import LanguageIdentifier, Paragraph, Renderer, Sentence, SentenceSegmenter, StopWordProvider

from .filters import ParagraphPredicate, SentencePredicate, default_paragraph_filters, default_sentence_filters
from .stopwords import StopWordCache

logger = structlog.get_logger(__name__)

T = TypeVar("T")

_WHITESPACE = re.compile(r"\s+")


def normalize_whitespace(text: str) -> str:
    """Collapse whitespace runs into one space and trim both ends."""
    return _WHITESPACE.sub(" ", text).strip()


class CancelToken:
    """Cooperative cancellation flag shared between a caller and one extraction."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise ExtractionCancelled("Extraction cancelled")


class SentenceExtractor:
    """
    Extracts valid sentences from HTML documents.

    The extractor is stateless between documents and safe to share between
    worker threads as long as its collaborators are.

    Args:
        config: Extraction thresholds and target languages
        renderer: HTML to raw lines, defaults to SoupRenderer
        segmenter: Sentence and word splitting, defaults to SpacySegmenter
        detector: Language identification, defaults to LangdetectDetector
        stop_words: Stop-word lists, defaults to SpacyStopWords
        paragraph_filters: Replace the default paragraph predicates
        sentence_filters: Replace the default sentence predicates
    """

    def __init__(
        self,
        config: ExtractionConfig,
        renderer: Optional[Renderer] = None,
        segmenter: Optional[SentenceSegmenter] = None,
        detector: Optional[LanguageIdentifier] = None,
        stop_words: Optional[StopWordProvider] = None,
        paragraph_filters: Optional[Sequence[ParagraphPredicate]] = None,
        sentence_filters: Optional[Sequence[SentencePredicate]] = None,
    ) -> None:
        self.config = config

        if renderer is None:
            from .renderer import SoupRenderer

            renderer = SoupRenderer()
        if segmenter is None:
            from .segmenter import SpacySegmenter

            segmenter = SpacySegmenter()
        if detector is None and config.language_override is None:
            from .language_detector import LangdetectDetector

            detector = LangdetectDetector()
        if stop_words is None:
            from .stopwords import SpacyStopWords

            stop_words = SpacyStopWords()

        self.renderer = renderer
        self.segmenter = segmenter
        self.detector = detector
        self.stop_words = StopWordCache(stop_words, config.extra_stop_words, config.stop_words_ignore_case)
        self.paragraph_filters: List[ParagraphPredicate] = (
            list(paragraph_filters) if paragraph_filters is not None else default_paragraph_filters(config)
        )
        self.sentence_filters: List[SentencePredicate] = (
            list(sentence_filters)
            if sentence_filters is not None
            else default_sentence_filters(config, self.stop_words)
        )

    # --- Collaborator calls ---

    @staticmethod
    def _call(stage: str, fn: Callable[..., T], *args: object) -> T:
        try:
            return fn(*args)
        except (ExtractionCancelled, ExtractionError):
            raise
        except Exception as e:
            raise ExtractionError(f"{stage} failed: {e}", cause=e) from e

    def resolve_language(self, text: str) -> Optional[str]:
        if self.config.language_override is not None:
            return self.config.language_override
        assert self.detector is not None
        language = self._call("Language detection", self.detector.detect, text)
        return normalize_language(language) if language else None

    # --- Policy stages ---

    def paragraphs(self, html: str, cancel_token: Optional[CancelToken] = None) -> Iterator[Paragraph]:
        """Yield the paragraphs of ``html`` that pass length and language checks."""
        lines = self._call("Rendering", self.renderer.render, html)
        for line in lines:
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()
            text = normalize_whitespace(line)
            if not text or not all(accept(text) for accept in self.paragraph_filters):
                continue
            language = self.resolve_language(text)
            if not self.config.is_target_language(language):
                continue
            assert language is not None
            yield Paragraph(text=text, language=language)

    def sentences(self, paragraph: Paragraph) -> List[str]:
        """Return the sentences of ``paragraph`` that pass every sentence predicate."""
        spans = self._call("Sentence segmentation", self.segmenter.segment, paragraph.text, paragraph.language)
        kept: List[str] = []
        for span in spans:
            text = span.strip()
            if not text:
                continue
            sentence = Sentence(text=text, language=paragraph.language)
            words = self._call("Word tokenization", self.segmenter.tokenize, text, paragraph.language)
            if all(accept(sentence, words) for accept in self.sentence_filters):
                kept.append(text)
        return kept

    def extract(self, html: str, cancel_token: Optional[CancelToken] = None) -> List[str]:
        """
        Extract the valid sentences of one HTML document.

        Raises:
            ExtractionError: If a collaborator fails; no partial result.
            ExtractionCancelled: If ``cancel_token`` was cancelled.
        """
        separator = self.config.paragraph_separator
        result: List[str] = []
        contributed = False
        for paragraph in self.paragraphs(html, cancel_token):
            sentences = self.sentences(paragraph)
            if not sentences:
                continue
            if separator is not None and contributed:
                result.append(separator)
            result.extend(sentences)
            contributed = True
        return result
