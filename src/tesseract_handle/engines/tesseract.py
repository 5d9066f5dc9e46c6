"""Tesseract engine backend driven through pytesseract."""

import logging
import os
import re
import shlex
import subprocess
from functools import lru_cache
from typing import Any, Dict, List, Optional, Tuple

import pytesseract
from PIL import Image

from src.tesseract_handle.base import EngineBackend
from src.tesseract_handle.config import DEFAULT_LANGUAGE
from src.tesseract_handle.exceptions import (
    ArgumentError,
    EngineInitError,
    RecognitionError,
    TesseractHandleError,
    VariableDumpError,
)
from src.tesseract_handle.parameters import ParameterTable

logger = logging.getLogger(__name__)

# 'List of available languages in "/usr/share/tessdata/" (3):'
LANGS_HEADER = re.compile(r'^List of available languages(?: in "(?P<path>.*)")?')

ENGINE_FAILURES = (
    pytesseract.TesseractError,
    pytesseract.TesseractNotFoundError,
    RuntimeError,  # raised by pytesseract on timeout
)


def run_tesseract_cli(args: List[str], timeout: Optional[float] = None) -> str:
    """
    Run the tesseract executable without an input image and return stdout.

    Args:
        args: Command line arguments
        timeout: Seconds before the process is killed, None to wait forever

    Returns:
        Decoded standard output

    Raises:
        pytesseract.TesseractNotFoundError: If the executable is missing
        pytesseract.TesseractError: If tesseract exits with an error
    """
    cmd = [pytesseract.pytesseract.tesseract_cmd, *args]
    try:
        proc = subprocess.run(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            timeout=timeout or None,
        )
    except FileNotFoundError as e:
        raise pytesseract.TesseractNotFoundError() from e
    except subprocess.TimeoutExpired as e:
        raise RuntimeError("Tesseract process timeout") from e
    if proc.returncode != 0:
        message = proc.stderr.decode("utf-8", errors="replace").strip()
        raise pytesseract.TesseractError(proc.returncode, message)
    return proc.stdout.decode("utf-8", errors="replace")


def tessdata_args(data_path: Optional[str]) -> List[str]:
    return ["--tessdata-dir", data_path] if data_path else []


def list_languages(data_path: Optional[str] = None) -> Tuple[Optional[str], List[str]]:
    """
    List the languages installed under a data path.

    Args:
        data_path: tessdata directory, or None for the engine's default lookup

    Returns:
        Tuple of (resolved data path or None if not reported, language codes)
    """
    # pytesseract.get_languages drops the header line, which carries the
    # resolved tessdata path.
    output = run_tesseract_cli(tessdata_args(data_path) + ["--list-langs"])
    resolved = None
    languages = []
    for line in output.splitlines():
        line = line.strip()
        if not line:
            continue
        header = LANGS_HEADER.match(line)
        if header:
            resolved = header.group("path")
            continue
        languages.append(line)
    return resolved, languages


@lru_cache(maxsize=8)
def load_parameter_table(
    data_path: Optional[str] = None, language: str = DEFAULT_LANGUAGE
) -> ParameterTable:
    """
    Read the engine's parameter table.

    Results are cached per (data_path, language).

    Raises:
        EngineInitError: If tesseract cannot start to list its parameters
    """
    args = tessdata_args(data_path) + ["-l", language, "--print-parameters"]
    try:
        table = ParameterTable.parse(run_tesseract_cli(args))
    except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError) as e:
        logger.error(f"Failed to read tesseract parameters: {str(e)}")
        raise EngineInitError(language, data_path, str(e)) from e
    logger.debug(f"Loaded {len(table)} tesseract parameters")
    return table


class TesseractBackend(EngineBackend):
    """
    Engine backend that runs the tesseract executable once per recognition.

    Variables are kept in insertion order and passed on every run, so a
    variable set after init applies to all later recognitions. Each run is
    a fresh process and never carries adaptive classifier state over from
    an earlier image.
    """

    def __init__(self, tesseract_cmd: Optional[str] = None, timeout: float = 0):
        """
        Initialize TesseractBackend.

        Args:
            tesseract_cmd: Path to the tesseract executable (optional)
            timeout: Seconds allowed per recognition, 0 for no limit
        """
        self._tesseract_cmd = tesseract_cmd
        self._timeout = timeout
        self._data_path: Optional[str] = None
        self._resolved_data_path: Optional[str] = None
        self._languages: List[str] = []
        self._config_file: Optional[str] = None
        self._variables: Dict[str, str] = {}
        self._image: Optional[Image.Image] = None
        self._initialized = False

    @property
    def name(self) -> str:
        return "Tesseract"

    def version(self) -> str:
        if self._tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = self._tesseract_cmd
        return str(pytesseract.get_tesseract_version())

    def init(
        self,
        data_path: Optional[str],
        language: str,
        config_file: Optional[str] = None,
    ) -> bool:
        if self._tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = self._tesseract_cmd

        try:
            resolved, available = list_languages(data_path)
        except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError) as e:
            logger.error(f"Failed to start tesseract: {str(e)}")
            raise EngineInitError(language, data_path, str(e)) from e

        requested = [lang for lang in language.split("+") if lang]
        missing = [lang for lang in requested if lang not in available]
        if not requested or missing:
            logger.error(
                f"Language data not found for {missing or language!r}; "
                f"available: {available}"
            )
            return False

        data_dir = resolved or data_path or os.environ.get("TESSDATA_PREFIX", "")
        if config_file and not self._config_exists(config_file, data_dir):
            logger.error(f"Tesseract config file not found: {config_file}")
            return False

        self._data_path = data_path
        self._resolved_data_path = data_dir
        self._languages = requested
        self._config_file = config_file
        self._variables = {}
        self._initialized = True
        logger.info(f"Initialized tesseract with languages: {'+'.join(requested)}")
        return True

    @staticmethod
    def _config_exists(config_file: str, data_dir: str) -> bool:
        if os.path.isfile(config_file):
            return True
        return bool(data_dir) and os.path.isfile(
            os.path.join(data_dir, "configs", config_file)
        )

    def _parameter_table(self) -> ParameterTable:
        return load_parameter_table(self._data_path, self._languages[0])

    def set_variable(self, name: str, value: str) -> bool:
        if name not in self._parameter_table():
            return False
        # Re-inserting moves the name to the end so the pass order on the
        # command line matches the order values were set in.
        self._variables.pop(name, None)
        self._variables[name] = value
        return True

    def _variable_args(self) -> List[str]:
        args = []
        for name, value in self._variables.items():
            args += ["-c", f"{name}={value}"]
        return args

    def _config_string(self) -> str:
        args = tessdata_args(self._data_path) + self._variable_args()
        if self._config_file:
            args.append(self._config_file)
        return " ".join(shlex.quote(arg) for arg in args)

    @property
    def _lang(self) -> str:
        return "+".join(self._languages)

    def set_image(self, image: Image.Image) -> None:
        self._image = image

    def _bound_image(self) -> Image.Image:
        if self._image is None:
            raise RecognitionError("No image is bound to the engine")
        return self._image

    def recognize_to_text(self) -> str:
        image = self._bound_image()
        try:
            return pytesseract.image_to_string(
                image,
                lang=self._lang,
                config=self._config_string(),
                timeout=self._timeout,
            )
        except ENGINE_FAILURES as e:
            logger.error(f"Tesseract text recognition failed: {str(e)}")
            raise RecognitionError(f"Recognition failed: {str(e)}") from e

    def recognize_to_markup(self, page_number: int = 0) -> str:
        if page_number != 0:
            raise ArgumentError("A single image only produces page 0")
        image = self._bound_image()
        try:
            hocr = pytesseract.image_to_pdf_or_hocr(
                image,
                lang=self._lang,
                config=self._config_string(),
                extension="hocr",
                timeout=self._timeout,
            )
        except ENGINE_FAILURES as e:
            logger.error(f"Tesseract hOCR recognition failed: {str(e)}")
            raise RecognitionError(f"Recognition failed: {str(e)}") from e
        return hocr.decode("utf-8")

    def recognize_to_data(self) -> Dict[str, List[Any]]:
        image = self._bound_image()
        try:
            return pytesseract.image_to_data(
                image,
                lang=self._lang,
                config=self._config_string(),
                output_type=pytesseract.Output.DICT,
                timeout=self._timeout,
            )
        except ENGINE_FAILURES as e:
            logger.error(f"Tesseract data recognition failed: {str(e)}")
            raise RecognitionError(f"Recognition failed: {str(e)}") from e

    def clear(self) -> None:
        self._image = None

    def clear_adaptive_classifier(self) -> None:
        logger.debug("Adaptive classifier starts empty for every tesseract run")

    def list_available_languages(self) -> List[str]:
        try:
            _, available = list_languages(self._data_path)
        except ENGINE_FAILURES as e:
            logger.error(f"Failed to list tesseract languages: {str(e)}")
            raise TesseractHandleError(f"Could not list languages: {str(e)}") from e
        return available

    def list_loaded_languages(self) -> List[str]:
        return list(self._languages)

    def get_data_path(self) -> str:
        return self._resolved_data_path or ""

    def print_variables(self) -> str:
        args = (
            tessdata_args(self._data_path)
            + ["-l", self._lang]
            + self._variable_args()
            + ["--print-parameters"]
        )
        try:
            return run_tesseract_cli(args, timeout=self._timeout)
        except ENGINE_FAILURES as e:
            logger.error(f"Failed to print tesseract parameters: {str(e)}")
            raise VariableDumpError(f"Could not read engine variables: {str(e)}") from e

    def end(self) -> None:
        self._image = None
        self._variables = {}
        self._initialized = False
        logger.debug("Tesseract backend ended")
