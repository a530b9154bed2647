"""
Sentence segmentation and word tokenization with spaCy.
"""

from __future__ import annotations

from typing import Any, List, Optional

import spacy
import structlog

from sievetext.utils.cache import ReadThroughCache

logger = structlog.get_logger(__name__)

# spaCy's language-neutral tokenizer, used for languages it has no rules for.
MULTI_LANGUAGE = "xx"


class SpacySegmenter:
    """
    Rule-based segmentation on blank spaCy pipelines.

    One pipeline per language (tokenizer plus ``sentencizer``) is built on
    first use and shared by all workers. Languages unknown to spaCy fall back
    to the multi-language pipeline.
    """

    name = "spacy"

    def __init__(self) -> None:
        self._pipelines: ReadThroughCache[str, Any] = ReadThroughCache(
            self._load_pipeline, missing=None, name="spacy_pipelines"
        )

    def _load_pipeline(self, language: str) -> Optional[Any]:
        try:
            nlp = spacy.blank(language)
        except (ImportError, ValueError) as e:
            if language == MULTI_LANGUAGE:
                raise
            logger.info("No spaCy rules for language, using multi-language rules", language=language, error=str(e))
            return self._pipelines.get(MULTI_LANGUAGE)
        nlp.add_pipe("sentencizer")
        logger.debug("spaCy pipeline loaded", language=language)
        return nlp

    def pipeline(self, language: str) -> Any:
        return self._pipelines.get(language or MULTI_LANGUAGE)

    def segment(self, text: str, language: str) -> List[str]:
        doc = self.pipeline(language)(text)
        return [sentence.text for sentence in doc.sents]

    def tokenize(self, text: str, language: str) -> List[str]:
        doc = self.pipeline(language).make_doc(text)
        return [token.text for token in doc if not (token.is_punct or token.is_space)]
