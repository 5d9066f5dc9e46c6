"""Tests for engine configuration."""

import pytest
import yaml

from src.tesseract_handle.config import (
    DEFAULT_LANGUAGE,
    EngineConfig,
    load_engine_config,
    normalize_options,
)
from src.tesseract_handle.utils.image_processing import ImagePreprocessingConfig


class TestEngineConfig:
    """Tests for EngineConfig."""

    def test_defaults(self):
        config = EngineConfig()

        assert config.language == DEFAULT_LANGUAGE
        assert config.data_path is None
        assert config.options == []
        assert config.reset_adaptive is True
        assert config.preprocessing is None

    def test_empty_strings_fall_back(self):
        config = EngineConfig(data_path="", language="")

        assert config.data_path is None
        assert config.language == DEFAULT_LANGUAGE

    def test_options_mapping(self):
        config = EngineConfig(options={"tessedit_pageseg_mode": 6, "debug_file": "/dev/null"})

        assert config.options == [
            ("tessedit_pageseg_mode", "6"),
            ("debug_file", "/dev/null"),
        ]

    def test_from_dict(self):
        config = EngineConfig.from_dict(
            {
                "language": "eng+fra",
                "options": [["tessedit_pageseg_mode", "4"]],
                "preprocessing": {"binarize": True, "resize_width": 1200},
            }
        )

        assert config.language == "eng+fra"
        assert config.options == [("tessedit_pageseg_mode", "4")]
        assert config.preprocessing == ImagePreprocessingConfig(
            binarize=True, resize_width=1200
        )


class TestNormalizeOptions:
    """Tests for normalize_options."""

    def test_bools_become_flags(self):
        assert normalize_options([("a", True), ("b", False)]) == [("a", "1"), ("b", "0")]

    def test_duplicates_preserved_in_order(self):
        options = [("a", "1"), ("b", "2"), ("a", "3")]

        assert normalize_options(options) == options

    def test_none(self):
        assert normalize_options(None) == []


class TestLoadEngineConfig:
    """Tests for loading configuration from YAML."""

    def test_load(self, tmp_path):
        path = tmp_path / "engine.yaml"
        path.write_text(
            yaml.dump(
                {
                    "tesseract": {
                        "language": "deu",
                        "data_path": "/opt/tessdata",
                        "reset_adaptive": False,
                        "options": {"preserve_interword_spaces": 1},
                    }
                }
            )
        )

        config = load_engine_config(path)

        assert config.language == "deu"
        assert config.data_path == "/opt/tessdata"
        assert config.reset_adaptive is False
        assert config.options == [("preserve_interword_spaces", "1")]

    def test_missing_section(self, tmp_path):
        path = tmp_path / "engine.yaml"
        path.write_text("other: {}\n")

        with pytest.raises(ValueError, match="'tesseract' section missing"):
            load_engine_config(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_engine_config(tmp_path / "nope.yaml")
