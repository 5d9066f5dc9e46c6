"""Exception types raised by the tesseract handle."""

from typing import Optional


class TesseractHandleError(Exception):
    """Base class for all errors raised by the tesseract handle."""

    pass


class EngineInitError(TesseractHandleError):
    """Raised when the engine cannot be initialized with the requested data."""

    def __init__(self, language: str, data_path: Optional[str] = None, reason: str = ""):
        self.language = language
        self.data_path = data_path
        self.reason = reason
        where = data_path or "the default tessdata path"
        message = (
            f"Unable to initialize tesseract with language '{language}' "
            f"(data path: {where})."
        )
        if reason:
            message += f" {reason}."
        message += (
            " Make sure the training data for this language is installed, see"
            " https://github.com/tesseract-ocr/tessdata"
        )
        super().__init__(message)


class LivenessError(TesseractHandleError):
    """Raised when an operation is attempted on a released engine handle."""

    pass


class InvalidVariableError(TesseractHandleError):
    """Raised when the engine rejects a variable name or value."""

    def __init__(self, name: str, value: str):
        self.name = name
        self.value = value
        super().__init__(f"Unsupported tesseract parameter: {name}={value!r}")


class ArgumentError(TesseractHandleError, ValueError):
    """Raised for malformed call arguments."""

    pass


class ImageDecodeError(TesseractHandleError):
    """Raised when an input buffer or file cannot be decoded as an image."""

    def __init__(self, source: str, reason: str = ""):
        self.source = source
        message = f"Failed to read image from {source}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class RecognitionError(TesseractHandleError):
    """Raised when recognition fails after an image was bound to the engine."""

    pass


class VariableDumpError(TesseractHandleError, IOError):
    """Raised when engine variables cannot be written to a destination."""

    pass
