from .config import (
    ALL_LANGUAGES,
    Config,
    DecodingConfig,
    ExtractionConfig,
    MonitoringConfig,
    OutputConfig,
    find_config_file,
    load_config,
    normalize_language,
)

__all__ = [
    "ALL_LANGUAGES",
    "Config",
    "DecodingConfig",
    "ExtractionConfig",
    "MonitoringConfig",
    "OutputConfig",
    "find_config_file",
    "load_config",
    "normalize_language",
]
