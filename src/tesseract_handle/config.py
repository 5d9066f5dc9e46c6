"""Configuration classes for the tesseract handle."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml

from src.tesseract_handle.utils.image_processing import ImagePreprocessingConfig

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "eng"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class OutputFormat(Enum):
    """Output formats produced by a recognition pass."""

    TEXT = "text"
    MARKUP = "hocr"
    DATA = "tsv"


@dataclass
class EngineConfig:
    """Configuration used to create an engine handle."""

    data_path: Optional[str] = None
    language: str = DEFAULT_LANGUAGE
    config_file: Optional[str] = None
    # Applied in order; a repeated name keeps its last value.
    options: List[Tuple[str, str]] = field(default_factory=list)
    reset_adaptive: bool = True
    preprocessing: Optional[ImagePreprocessingConfig] = None

    def __post_init__(self):
        if not self.language:
            self.language = DEFAULT_LANGUAGE
        if not self.data_path:
            self.data_path = None
        self.options = normalize_options(self.options)

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> "EngineConfig":
        """Create EngineConfig from dictionary, handling preprocessing separately."""
        config_dict = dict(config_dict)
        preprocessing_dict = config_dict.pop("preprocessing", None)
        preprocessing = (
            ImagePreprocessingConfig(**preprocessing_dict)
            if preprocessing_dict
            else None
        )
        return cls(**config_dict, preprocessing=preprocessing)


def normalize_options(
    options: Union[Dict[str, Any], List[Tuple[str, Any]], None]
) -> List[Tuple[str, str]]:
    """
    Turn an options mapping or pair sequence into an ordered list of string pairs.

    Args:
        options: Mapping of name to value, or a sequence of (name, value) pairs

    Returns:
        List of (name, value) tuples with values converted to strings
    """
    if not options:
        return []
    items = options.items() if isinstance(options, dict) else options
    normalized = []
    for item in items:
        name, value = item
        if isinstance(value, bool):
            value = "1" if value else "0"
        normalized.append((str(name), str(value)))
    return normalized


def load_engine_config(config_path: Union[str, Path]) -> EngineConfig:
    """
    Load an engine configuration from a YAML file.

    The file must contain a top-level ``tesseract`` section.

    Args:
        config_path: Path to the YAML file

    Returns:
        Parsed EngineConfig
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    logger.info(f"Loading configuration from {config_path}")
    with open(config_path) as f:
        config_data = yaml.safe_load(f) or {}

    if not config_data.get("tesseract"):
        raise ValueError("Invalid configuration: 'tesseract' section missing")

    return EngineConfig.from_dict(config_data["tesseract"])


def configure_logging(level: Union[int, str] = logging.INFO) -> None:
    """Configure root logging with the package's default format."""
    if isinstance(level, str):
        level = level.upper()
    logging.basicConfig(level=level, format=LOG_FORMAT)
