"""
Configuration management for SieveText using Pydantic.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Dict, FrozenSet, List, Literal, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from sievetext.exceptions import ConfigurationError

# --- Setup Logging ---
log = logging.getLogger(__name__)

ALL_LANGUAGES = "all"

# A word made of alphabetic characters, possibly joined by hyphens.
DEFAULT_MATCHING_WORD_PATTERN = r"^[^\W\d_](?:[^\W\d_]|-)*$"

DEFAULT_MIN_PARAGRAPH_LENGTH = 400
DEFAULT_MIN_STOP_WORDS = 1
DEFAULT_MIN_MATCHING_WORD_RATIO = 0.5


def normalize_language(language: str) -> str:
    """Reduce a language tag to its lower-cased primary subtag ("en-US" -> "en")."""
    return re.split(r"[-_]", language.strip(), maxsplit=1)[0].lower()


# --- Nested Configuration Models ---


class ExtractionConfig(BaseModel):
    """
    Settings of the sentence extraction policy and its execution.

    Immutable after construction; one instance is shared read-only by all
    workers. The defaults favour precision over recall: only English
    paragraphs of at least 400 characters, sentences with at least one stop
    word and at least half of their words being plain alphabetic words.
    """

    model_config = ConfigDict(frozen=True)

    target_languages: Union[Literal["all"], FrozenSet[str]] = Field(
        default=frozenset({"en"}),
        description="ISO codes of the languages to extract, or 'all'.",
    )
    language_override: Optional[str] = Field(
        default=None,
        description="Treat every paragraph as this language and skip detection.",
    )
    min_paragraph_length: int = Field(
        default=DEFAULT_MIN_PARAGRAPH_LENGTH, ge=0, description="Minimum paragraph length in characters."
    )
    min_stop_words: int = Field(default=DEFAULT_MIN_STOP_WORDS, ge=0)
    min_stop_word_ratio: float = Field(default=0.0, ge=0.0, le=1.0)
    min_matching_words: int = Field(default=0, ge=0)
    min_matching_word_ratio: float = Field(default=DEFAULT_MIN_MATCHING_WORD_RATIO, ge=0.0, le=1.0)
    matching_word_pattern: str = Field(
        default=DEFAULT_MATCHING_WORD_PATTERN,
        description="Regular expression a word must fully match to count as a matching word.",
    )
    paragraph_separator: Optional[str] = Field(
        default=None,
        description="Pseudo-sentence inserted between sentences of different paragraphs. None disables it.",
    )
    stop_words_ignore_case: bool = Field(default=True, description="Match stop words ignoring case.")
    extra_stop_words: Dict[str, List[str]] = Field(
        default_factory=dict, description="Additional stop words per language code."
    )
    timeout_seconds: Optional[float] = Field(
        default=None, description="Wall-clock bound per document in seconds. None means unbounded."
    )
    worker_count: int = Field(default=1, ge=1, description="Number of parallel workers.")

    @field_validator("target_languages", mode="before")
    @classmethod
    def parse_target_languages(cls, v: object) -> object:
        if isinstance(v, str):
            if v.strip().lower() == ALL_LANGUAGES:
                return ALL_LANGUAGES
            v = v.split(",")
        if isinstance(v, (list, tuple, set, frozenset)):
            languages = frozenset(normalize_language(str(lang)) for lang in v if str(lang).strip())
            if not languages:
                raise ValueError("target_languages must name at least one language or be 'all'")
            return languages
        return v

    @field_validator("language_override")
    @classmethod
    def normalize_override(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        if not v.strip():
            raise ValueError("language_override must not be empty")
        return normalize_language(v)

    @field_validator("matching_word_pattern")
    @classmethod
    def validate_pattern(cls, v: str) -> str:
        try:
            re.compile(v)
        except re.error as e:
            raise ValueError(f"Invalid matching_word_pattern: {e}") from e
        return v

    @field_validator("timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v <= 0:
            raise ValueError(f"Non-positive timeout: {v}")
        return v

    @model_validator(mode="before")
    @classmethod
    def override_sets_target(cls, data: object) -> object:
        # A fixed language is also the only target language.
        if isinstance(data, dict) and data.get("language_override"):
            data = dict(data)
            data["target_languages"] = [str(data["language_override"])]
        return data

    @property
    def extracts_all_languages(self) -> bool:
        return self.target_languages == ALL_LANGUAGES

    @property
    def separates_paragraphs(self) -> bool:
        return self.paragraph_separator is not None

    def is_target_language(self, language: Optional[str]) -> bool:
        if language is None:
            return False
        if self.extracts_all_languages:
            return True
        return normalize_language(language) in self.target_languages


class DecodingConfig(BaseModel):
    """How embedded responses and HTML files are turned into text."""

    model_config = ConfigDict(frozen=True)

    default_charset: str = Field(default="utf-8", description="Charset used when none is declared.")
    sniff_bytes: int = Field(default=1024, ge=0, description="Bytes scanned for a <meta> charset declaration.")

    @field_validator("default_charset")
    @classmethod
    def validate_charset(cls, v: str) -> str:
        import codecs

        try:
            codecs.lookup(v)
        except LookupError as e:
            raise ValueError(f"Unknown charset: {v}") from e
        return v


class OutputConfig(BaseModel):
    """Where and how extracted sentences are written."""

    output_dir: Path = Field(default=Path("./output"), description="Directory receiving one shard per worker.")
    write_names: bool = Field(
        default=False, description="Precede each document's sentences with two blank lines and its names."
    )
    shard_prefix: str = Field(default="part-m-", description="File name prefix of output shards.")


class MonitoringConfig(BaseModel):
    """Configuration for logging and metrics."""

    log_level: str = Field(default="INFO", description="Logging level (e.g., DEBUG, INFO, WARNING).")
    log_file: str | None = Field(default=None, description="Path to log file. If None, logs to console.")
    prometheus_port: int | None = Field(
        default=None, description="Port for the Prometheus metrics exporter. None to disable."
    )

    @field_validator("log_file", mode="before")
    @classmethod
    def create_parent_dir(cls, v: str | Path | None) -> str | None:
        if v is None:
            return None
        path = Path(v)
        path.parent.mkdir(parents=True, exist_ok=True)
        return str(path)


# --- Main Configuration Class ---


class Config(BaseSettings):
    project_name: str = "SieveText"
    version: str = "0.1.0"
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    decoding: DecodingConfig = Field(default_factory=DecodingConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)

    model_config = SettingsConfigDict(env_prefix="SIEVE_", env_nested_delimiter="__", case_sensitive=False)

    @classmethod
    def from_yaml(cls, path: Path) -> Config:
        log.debug("Loading configuration from YAML file: %s", path)
        if not path.is_file():
            raise ConfigurationError(f"Configuration file not found or is not a file: {path}")
        with open(path, "r", encoding="utf-8") as f:
            try:
                yaml_data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Configuration file is not valid YAML: {path}: {e}") from e
        if not yaml_data:
            log.warning("Configuration file is empty: %s. Using default settings.", path)
            yaml_data = {}
        try:
            return cls.model_validate(yaml_data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration in {path}: {e}") from e


def find_config_file() -> Path | None:
    current_dir = Path.cwd()
    paths_to_check = [
        current_dir / "sievetext.yaml",
        current_dir / "sievetext.yml",
    ]
    for path in paths_to_check:
        if path.exists():
            return path
    return None


def load_config(path: Path | None = None) -> Config:
    """Load configuration from ``path``, a discovered file, or defaults."""
    config_path = path or find_config_file()
    if config_path is None:
        log.info("No config file found. Using default settings.")
        return Config()
    log.info("Loading configuration from: %s", config_path)
    return Config.from_yaml(config_path)
