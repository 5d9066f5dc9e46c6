"""Decoded image ownership for a single recognition call."""

import io
import logging
import os
from typing import Optional, Tuple, Union

from PIL import Image, UnidentifiedImageError

from src.tesseract_handle.base import ImageDecoder
from src.tesseract_handle.exceptions import ImageDecodeError

logger = logging.getLogger(__name__)

BYTES_SOURCE = "<bytes>"

# Errors Pillow raises for unreadable, truncated or hostile input.
DECODE_ERRORS = (
    UnidentifiedImageError,
    Image.DecompressionBombError,
    OSError,
    EOFError,
    SyntaxError,
    ValueError,
)


class Raster:
    """
    Owns one decoded image until it is closed.

    Closing is idempotent and releases the pixel buffer and any file handle
    Pillow keeps open for the source.
    """

    def __init__(self, image: Image.Image, source: str = BYTES_SOURCE):
        self._image: Optional[Image.Image] = image
        self.source = source
        self.size: Tuple[int, int] = image.size

    @property
    def image(self) -> Image.Image:
        if self._image is None:
            raise ValueError(f"Raster from {self.source} has already been closed")
        return self._image

    @property
    def closed(self) -> bool:
        return self._image is None

    def close(self) -> None:
        image, self._image = self._image, None
        if image is not None:
            image.close()

    def __enter__(self) -> "Raster":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self.closed else f"{self.size[0]}x{self.size[1]}"
        return f"Raster(source={self.source!r}, {state})"


class PillowDecoder(ImageDecoder):
    """Image decoder backed by Pillow. Multi-frame images yield their first frame."""

    def decode_from_bytes(self, buf: bytes) -> Raster:
        if not buf:
            raise ImageDecodeError(BYTES_SOURCE, "empty buffer")
        return self._decode(io.BytesIO(bytes(buf)), BYTES_SOURCE)

    def decode_from_file(self, path: Union[str, os.PathLike]) -> Raster:
        path = os.fspath(path)
        if not os.path.isfile(path):
            raise ImageDecodeError(path, "file does not exist")
        return self._decode(path, path)

    @staticmethod
    def _decode(fp, source: str) -> Raster:
        image = None
        try:
            image = Image.open(fp)
            # Image.open is lazy; load() forces a full decode so truncated
            # data fails here and not inside the engine.
            image.load()
        except DECODE_ERRORS as e:
            if image is not None:
                image.close()
            logger.error(f"Error decoding image from {source}: {str(e)}")
            raise ImageDecodeError(source, str(e)) from e

        logger.debug(f"Decoded {image.format} image {image.size} from {source}")
        return Raster(image, source)
