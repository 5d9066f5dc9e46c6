"""Abstract capabilities the handle needs from an OCR engine and an image codec."""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from PIL import Image

if TYPE_CHECKING:
    from src.tesseract_handle.raster import Raster


class EngineBackend(ABC):
    """
    One engine instance bound to language data.

    A backend is owned by exactly one EngineHandle, which performs all
    liveness checks; backend methods may assume they are called between a
    successful init() and end().
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the name of the engine."""
        pass

    @abstractmethod
    def version(self) -> str:
        """Return the engine version string."""
        pass

    @abstractmethod
    def init(
        self,
        data_path: Optional[str],
        language: str,
        config_file: Optional[str] = None,
    ) -> bool:
        """
        Initialize the engine.

        Args:
            data_path: Directory holding language data, or None for the default
            language: Language identifier, e.g. "eng" or "eng+fra"
            config_file: Optional engine config file applied at init

        Returns:
            True on success, False if the engine could not be initialized
        """
        pass

    @abstractmethod
    def set_variable(self, name: str, value: str) -> bool:
        """Set one engine variable. Returns False if the engine rejects it."""
        pass

    @abstractmethod
    def set_image(self, image: Image.Image) -> None:
        """Bind a decoded image as the engine's current image."""
        pass

    @abstractmethod
    def recognize_to_text(self) -> str:
        """Recognize the bound image and return UTF-8 text."""
        pass

    @abstractmethod
    def recognize_to_markup(self, page_number: int = 0) -> str:
        """Recognize the bound image and return hOCR markup."""
        pass

    @abstractmethod
    def recognize_to_data(self) -> Dict[str, List[Any]]:
        """
        Recognize the bound image and return word-level data.

        Returns:
            Column-oriented dictionary with the keys of tesseract's TSV
            output: level, page_num, block_num, par_num, line_num, word_num,
            left, top, width, height, conf, text
        """
        pass

    @abstractmethod
    def clear(self) -> None:
        """Drop the bound image and any per-image recognition results."""
        pass

    def clear_adaptive_classifier(self) -> None:
        """Reset adaptive classifier state. Override if the engine keeps any."""
        pass

    @abstractmethod
    def list_available_languages(self) -> List[str]:
        """Return languages installed under the data path."""
        pass

    @abstractmethod
    def list_loaded_languages(self) -> List[str]:
        """Return languages loaded by init()."""
        pass

    @abstractmethod
    def get_data_path(self) -> str:
        """Return the data path the engine resolved at init()."""
        pass

    @abstractmethod
    def print_variables(self) -> str:
        """Return a listing of every engine variable with its current value."""
        pass

    def end(self) -> None:
        """Release engine resources. Override if needed."""
        pass


class ImageDecoder(ABC):
    """Decodes encoded image data into a Raster."""

    @abstractmethod
    def decode_from_bytes(self, buf: bytes) -> "Raster":
        """
        Decode an in-memory encoded image.

        Raises:
            ImageDecodeError: If the buffer is empty, truncated or not an image
        """
        pass

    @abstractmethod
    def decode_from_file(self, path: str) -> "Raster":
        """
        Decode an image file.

        Raises:
            ImageDecodeError: If the file is missing or not a decodable image
        """
        pass
