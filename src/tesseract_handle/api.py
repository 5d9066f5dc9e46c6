"""
Public operations of the tesseract handle.

Example:
    >>> from src.tesseract_handle.api import create_engine, recognize
    >>> with create_engine(language="eng") as engine:
    ...     with open("scan.png", "rb") as f:
    ...         print(recognize(engine, f.read()))
"""

import logging
import os
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from src.tesseract_handle.base import EngineBackend
from src.tesseract_handle.config import (
    DEFAULT_LANGUAGE,
    EngineConfig,
    OutputFormat,
    load_engine_config,
)
from src.tesseract_handle.engines.tesseract import TesseractBackend, load_parameter_table
from src.tesseract_handle.handle import EngineHandle, EngineInfo
from src.tesseract_handle.parameters import Parameter, ParameterTable
from src.tesseract_handle.parameters import validate_options as _validate_options
from src.tesseract_handle.pipeline import ImageSource, RecognitionPipeline, WordBox

logger = logging.getLogger(__name__)

_pipeline = RecognitionPipeline()


def engine_version(backend: Optional[EngineBackend] = None) -> str:
    """Return the version of the OCR engine."""
    return (backend or TesseractBackend()).version()


def create_engine(
    data_path: Optional[str] = None,
    language: Optional[str] = None,
    config_file: Optional[str] = None,
    options: Union[Dict[str, Any], Iterable[Tuple[str, Any]], None] = None,
    *,
    reset_adaptive: bool = True,
    backend: Optional[EngineBackend] = None,
) -> EngineHandle:
    """
    Create a live engine handle.

    Args:
        data_path: tessdata directory; empty or None uses the default search path
        language: Language identifier; empty or None uses DEFAULT_LANGUAGE
        config_file: Optional tesseract config file
        options: Variables applied in order at init, as a mapping or (name, value) pairs
        reset_adaptive: Reset adaptive classifier state before every recognition
        backend: Engine backend to own, defaults to TesseractBackend

    Returns:
        Live EngineHandle

    Raises:
        EngineInitError: If the engine cannot be initialized for the language
        InvalidVariableError: If one of the options is rejected
    """
    config = EngineConfig(
        data_path=data_path or None,
        language=language or DEFAULT_LANGUAGE,
        config_file=config_file or None,
        options=options,
        reset_adaptive=reset_adaptive,
    )
    return EngineHandle.create(config, backend=backend)


def create_engine_from_config(
    config_path: Union[str, os.PathLike], *, backend: Optional[EngineBackend] = None
) -> EngineHandle:
    """
    Create a live engine handle from the ``tesseract`` section of a YAML file.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file has no ``tesseract`` section
        EngineInitError: If the engine cannot be initialized for the language
    """
    config = load_engine_config(config_path)
    return EngineHandle.create(config, backend=backend)


def set_variable(handle: EngineHandle, name: str, value: Any) -> EngineHandle:
    return handle.set_variable(name, value)


def validate_options(
    names: Sequence[str],
    values: Sequence[str],
    table: Optional[ParameterTable] = None,
) -> List[bool]:
    """
    Check option pairs without creating an engine.

    Args:
        names: Parameter names
        values: Parameter values, paired with names by position
        table: Parameter table, defaults to the installed engine's table

    Returns:
        One boolean per pair

    Raises:
        ArgumentError: If names and values differ in length
    """
    if table is None and len(names) == len(values):
        table = load_parameter_table()
    return _validate_options(names, values, table)


def engine_info(handle: EngineHandle) -> EngineInfo:
    return handle.info()


def engine_parameters(
    pattern: str = "", table: Optional[ParameterTable] = None
) -> List[Parameter]:
    """List engine parameters whose name contains pattern."""
    table = table if table is not None else load_parameter_table()
    return table.search(pattern)


def dump_variables(handle: EngineHandle, destination: Union[str, os.PathLike]) -> str:
    return handle.dump_variables(destination)


def recognize(
    handle: EngineHandle,
    image: ImageSource,
    output_format: Union[OutputFormat, str] = OutputFormat.TEXT,
) -> str:
    """
    Recognize an image and return the engine output as text.

    Args:
        handle: Live engine handle
        image: Encoded image bytes or a path to an image file
        output_format: OutputFormat.TEXT for plain text, OutputFormat.MARKUP
            for hOCR, OutputFormat.DATA for word-level TSV

    Returns:
        Recognized output as a UTF-8 string
    """
    return _pipeline.run(handle, image, output_format).text


def recognize_data(handle: EngineHandle, image: ImageSource) -> List[WordBox]:
    return _pipeline.run_data(handle, image)


def recognize_many(
    handle: EngineHandle,
    images: Iterable[ImageSource],
    output_format: Union[OutputFormat, str] = OutputFormat.TEXT,
) -> List[str]:
    return [result.text for result in _pipeline.run_many(handle, images, output_format)]
