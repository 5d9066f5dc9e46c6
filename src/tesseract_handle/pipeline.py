"""Recognition pipeline: decode, bind, recognize and clean up."""

import logging
import os
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union

from src.tesseract_handle.base import EngineBackend, ImageDecoder
from src.tesseract_handle.config import OutputFormat
from src.tesseract_handle.exceptions import (
    ArgumentError,
    RecognitionError,
    TesseractHandleError,
)
from src.tesseract_handle.handle import EngineHandle
from src.tesseract_handle.raster import PillowDecoder, Raster
from src.tesseract_handle.utils.image_processing import preprocess_image

logger = logging.getLogger(__name__)

ImageSource = Union[bytes, bytearray, memoryview, str, os.PathLike]

DATA_COLUMNS = (
    "level",
    "page_num",
    "block_num",
    "par_num",
    "line_num",
    "word_num",
    "left",
    "top",
    "width",
    "height",
    "conf",
    "text",
)


@dataclass
class RecognitionResult:
    """Output of one recognition pass."""

    text: str
    output_format: OutputFormat
    source: str


@dataclass
class WordBox:
    """One recognized word with its confidence and bounding box."""

    text: str
    confidence: float
    box: Tuple[int, int, int, int]  # left, top, right, bottom
    block_num: int = 0
    line_num: int = 0
    word_num: int = 0


def as_output_format(value: Union[OutputFormat, str]) -> OutputFormat:
    """Accept an OutputFormat, its value ("text", "hocr", "tsv") or its name."""
    if isinstance(value, OutputFormat):
        return value
    if isinstance(value, str):
        try:
            return OutputFormat(value.lower())
        except ValueError:
            pass
        try:
            return OutputFormat[value.upper()]
        except KeyError:
            pass
    raise ArgumentError(f"Unsupported output format: {value!r}")


def decode_source(image: ImageSource, decoder: ImageDecoder) -> Raster:
    """Decode raw bytes or an image file path into a Raster."""
    if isinstance(image, (bytes, bytearray, memoryview)):
        return decoder.decode_from_bytes(bytes(image))
    if isinstance(image, (str, os.PathLike)):
        return decoder.decode_from_file(os.fspath(image))
    raise ArgumentError(
        f"Image must be bytes or a file path, got {type(image).__name__}"
    )


def data_to_tsv(data: Dict[str, List[Any]]) -> str:
    """Render column-oriented word data as tab separated text with a header row."""
    columns = [c for c in DATA_COLUMNS if c in data] or list(data)
    rows = ["\t".join(columns)]
    for i in range(len(data[columns[0]]) if columns else 0):
        rows.append("\t".join(str(data[c][i]) for c in columns))
    return "\n".join(rows) + "\n"


def data_to_word_boxes(data: Dict[str, List[Any]]) -> List[WordBox]:
    """Keep the non-empty, scored words of column-oriented word data."""
    boxes = []
    for i, text in enumerate(data["text"]):
        text = str(text)
        conf = float(data["conf"][i])
        if not text.strip() or conf < 0:
            continue
        left, top = int(data["left"][i]), int(data["top"][i])
        boxes.append(
            WordBox(
                text=text,
                confidence=conf,
                box=(
                    left,
                    top,
                    left + int(data["width"][i]),
                    top + int(data["height"][i]),
                ),
                block_num=int(data["block_num"][i]),
                line_num=int(data["line_num"][i]),
                word_num=int(data["word_num"][i]),
            )
        )
    return boxes


class RecognitionPipeline:
    """
    Runs one recognition pass per call against an engine handle.

    For each call the pipeline owns exactly one Raster. Once the handle
    lock is held, the raster is closed and the engine cleared on every
    exit path, in that order.
    """

    def __init__(self, decoder: Optional[ImageDecoder] = None):
        self.decoder = decoder or PillowDecoder()

    def _execute(
        self,
        handle: EngineHandle,
        image: ImageSource,
        recognize_fn: Callable[[EngineBackend], Any],
    ) -> Tuple[Any, str]:
        handle.engine()
        raster = decode_source(image, self.decoder)
        source = raster.source

        with raster, handle.lock:
            backend = handle.engine()
            original = raster.image
            prepared = None

            try:
                if handle.config.reset_adaptive:
                    backend.clear_adaptive_classifier()
                prepared = preprocess_image(original, handle.config.preprocessing)
                backend.set_image(prepared)
                output = recognize_fn(backend)
            except TesseractHandleError:
                raise
            except Exception as e:
                logger.error(f"Error recognizing image from {source}: {str(e)}")
                raise RecognitionError(f"Recognition failed: {str(e)}") from e
            finally:
                if prepared is not None and prepared is not original:
                    prepared.close()
                raster.close()
                backend.clear()

        return output, source

    def run(
        self,
        handle: EngineHandle,
        image: ImageSource,
        output_format: Union[OutputFormat, str] = OutputFormat.TEXT,
    ) -> RecognitionResult:
        """
        Recognize one image.

        Args:
            handle: Live engine handle
            image: Encoded image bytes or a path to an image file
            output_format: TEXT, MARKUP (hOCR) or DATA (TSV)

        Returns:
            RecognitionResult with the decoded output

        Raises:
            LivenessError: If the handle has been released
            ImageDecodeError: If the image cannot be decoded
            RecognitionError: If the engine fails on the decoded image
        """
        output_format = as_output_format(output_format)
        if output_format is OutputFormat.TEXT:
            output, source = self._execute(handle, image, lambda b: b.recognize_to_text())
        elif output_format is OutputFormat.MARKUP:
            output, source = self._execute(handle, image, lambda b: b.recognize_to_markup(0))
        else:
            data, source = self._execute(handle, image, lambda b: b.recognize_to_data())
            output = data_to_tsv(data)

        if isinstance(output, bytes):
            output = output.decode("utf-8")
        logger.debug(
            f"Recognized {source} as {output_format.value} ({len(output)} chars)"
        )
        return RecognitionResult(text=output, output_format=output_format, source=source)

    def run_data(self, handle: EngineHandle, image: ImageSource) -> List[WordBox]:
        """Recognize one image and return its words with confidences and boxes."""
        data, source = self._execute(handle, image, lambda b: b.recognize_to_data())
        boxes = data_to_word_boxes(data)
        logger.debug(f"Recognized {len(boxes)} words in {source}")
        return boxes

    def run_many(
        self,
        handle: EngineHandle,
        images: Iterable[ImageSource],
        output_format: Union[OutputFormat, str] = OutputFormat.TEXT,
    ) -> List[RecognitionResult]:
        """Recognize several images one after another on the same handle."""
        return [self.run(handle, image, output_format) for image in images]
