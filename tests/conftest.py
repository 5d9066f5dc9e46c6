"""
Pytest configuration and fixtures for tesseract handle tests.
"""

import io
from typing import Any, Callable, Dict, List, Optional

import pytest
from PIL import Image, ImageDraw

from src.tesseract_handle.base import EngineBackend
from src.tesseract_handle.exceptions import RecognitionError
from src.tesseract_handle.raster import PillowDecoder

PARAMETER_LISTING = (
    "Tesseract parameters:\n"
    "log_level\t2147483647\tLogging level\n"
    "tessedit_pageseg_mode\t6\tPage seg mode\n"
    "tessedit_char_whitelist\t\tWhitelist of chars to recognize\n"
    "classify_enable_learning\t1\tEnable adaptive classifier\n"
    "preserve_interword_spaces\t0\tPreserve multiple interword spaces\n"
)

SAMPLE_DATA = {
    "level": [1, 5, 5, 5],
    "page_num": [1, 1, 1, 1],
    "block_num": [0, 1, 1, 1],
    "par_num": [0, 1, 1, 1],
    "line_num": [0, 1, 1, 1],
    "word_num": [0, 1, 2, 3],
    "left": [0, 10, 80, 150],
    "top": [0, 12, 12, 12],
    "width": [200, 60, 60, 5],
    "height": [60, 20, 20, 20],
    "conf": [-1, 96.5, 91.0, 12.0],
    "text": ["", "Hello", "World", " "],
}


class FakeBackend(EngineBackend):
    """
    In-memory engine backend that records every call.

    Each recognition without a preceding adaptive reset marks its output
    as adapted, so tests can tell whether state leaked between calls.
    """

    def __init__(
        self,
        available: Optional[List[str]] = None,
        known_variables: Optional[List[str]] = None,
        text: str = "Hello World\n",
        init_result: bool = True,
        recognition_error: Optional[Exception] = None,
    ):
        self.available = available if available is not None else ["eng", "fra", "osd"]
        self.known_variables = (
            known_variables
            if known_variables is not None
            else ["tessedit_pageseg_mode", "tessedit_char_whitelist", "log_level"]
        )
        self.text = text
        self.init_result = init_result
        self.recognition_error = recognition_error
        self.calls: List[str] = []
        self.variables: Dict[str, str] = {}
        self.loaded: List[str] = []
        self.data_path = ""
        self.image: Optional[Image.Image] = None
        self.adapted = False
        self.end_count = 0
        self.on_clear: Optional[Callable[[], None]] = None

    @property
    def name(self) -> str:
        return "Fake"

    def version(self) -> str:
        return "5.3.0-fake"

    def init(self, data_path, language, config_file=None) -> bool:
        self.calls.append("init")
        self.data_path = data_path or "/usr/share/tessdata/"
        requested = language.split("+")
        if not self.init_result or any(lang not in self.available for lang in requested):
            return False
        self.loaded = requested
        return True

    def set_variable(self, name: str, value: str) -> bool:
        self.calls.append(f"set_variable:{name}={value}")
        if name not in self.known_variables:
            return False
        self.variables[name] = value
        return True

    def set_image(self, image: Image.Image) -> None:
        self.calls.append("set_image")
        self.image = image

    def _recognize(self, kind: str) -> None:
        self.calls.append(kind)
        if self.image is None:
            raise RecognitionError("no image")
        if self.recognition_error is not None:
            raise self.recognition_error

    def _adaptive_text(self) -> str:
        text = self.text + (" (adapted)" if self.adapted else "")
        self.adapted = True
        return text

    def recognize_to_text(self) -> str:
        self._recognize("recognize_to_text")
        return self._adaptive_text()

    def recognize_to_markup(self, page_number: int = 0) -> str:
        self._recognize("recognize_to_markup")
        words = self._adaptive_text().split()
        spans = "".join(
            f"<span class='ocrx_word' id='word_1_{i}'>{w}</span>" for i, w in enumerate(words, 1)
        )
        return (
            '<?xml version="1.0" encoding="UTF-8"?>\n'
            "<html xmlns='http://www.w3.org/1999/xhtml'><body>"
            f"<div class='ocr_page' id='page_{page_number + 1}'>{spans}</div>"
            "</body></html>\n"
        )

    def recognize_to_data(self) -> Dict[str, List[Any]]:
        self._recognize("recognize_to_data")
        return {key: list(values) for key, values in SAMPLE_DATA.items()}

    def clear(self) -> None:
        self.calls.append("clear")
        if self.on_clear is not None:
            self.on_clear()
        self.image = None

    def clear_adaptive_classifier(self) -> None:
        self.calls.append("clear_adaptive_classifier")
        self.adapted = False

    def list_available_languages(self) -> List[str]:
        return list(self.available)

    def list_loaded_languages(self) -> List[str]:
        return list(self.loaded)

    def get_data_path(self) -> str:
        return self.data_path

    def print_variables(self) -> str:
        lines = [f"{name}\t{value}" for name, value in self.variables.items()]
        return "Tesseract parameters:\n" + "\n".join(lines) + "\n"

    def end(self) -> None:
        self.calls.append("end")
        self.end_count += 1


class SpyDecoder(PillowDecoder):
    """PillowDecoder that remembers every raster it produced."""

    def __init__(self):
        self.rasters = []

    def decode_from_bytes(self, buf):
        raster = super().decode_from_bytes(buf)
        self.rasters.append(raster)
        return raster

    def decode_from_file(self, path):
        raster = super().decode_from_file(path)
        self.rasters.append(raster)
        return raster


def render_png(text: str = "Hello", size=(200, 60), mode: str = "RGB") -> bytes:
    """Render text onto a white image and return it PNG-encoded."""
    image = Image.new(mode, size, color="white")
    ImageDraw.Draw(image).text((10, 20), text, fill="black")
    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def fake_backend() -> FakeBackend:
    """Return a fresh fake backend."""
    return FakeBackend()


@pytest.fixture
def make_backend():
    """Return the FakeBackend class for tests that need custom behaviour."""
    return FakeBackend


@pytest.fixture
def make_png():
    return render_png


@pytest.fixture
def spy_decoder() -> SpyDecoder:
    return SpyDecoder()


@pytest.fixture(scope="session")
def png_bytes() -> bytes:
    """Return a small PNG image with dark text on white."""
    return render_png()


@pytest.fixture
def png_file(tmp_path, png_bytes):
    """Write the sample PNG to a temporary file and return its path."""
    path = tmp_path / "sample.png"
    path.write_bytes(png_bytes)
    return path


@pytest.fixture(scope="session")
def parameter_listing() -> str:
    return PARAMETER_LISTING
