"""Engine handle: owns one engine backend and guards every access to it."""

import logging
import os
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Union

from src.tesseract_handle.base import EngineBackend
from src.tesseract_handle.config import EngineConfig
from src.tesseract_handle.engines.tesseract import TesseractBackend
from src.tesseract_handle.exceptions import (
    EngineInitError,
    InvalidVariableError,
    LivenessError,
    VariableDumpError,
)
from src.tesseract_handle.parameters import apply_options

logger = logging.getLogger(__name__)


class HandleState(Enum):
    UNINITIALIZED = "uninitialized"
    LIVE = "live"
    DEAD = "dead"


@dataclass
class EngineInfo:
    """Data path and language information for a live engine."""

    data_path: str
    loaded: List[str] = field(default_factory=list)
    available: List[str] = field(default_factory=list)


class EngineHandle:
    """
    Single owner of an initialized engine backend.

    Use EngineHandle.create() to obtain a live handle. Every operation
    checks liveness first; after release() all of them raise LivenessError.
    Recognition on one handle is serialized through ``lock``.

    Example:
        >>> with EngineHandle.create(EngineConfig(language="eng")) as handle:
        ...     print(handle.info().loaded)
        ['eng']
    """

    def __init__(self, backend: EngineBackend, config: EngineConfig):
        self._backend: Optional[EngineBackend] = backend
        self.config = config
        self.state = HandleState.UNINITIALIZED
        self.lock = threading.Lock()
        self.data_path: Optional[str] = None
        self.language = config.language

    @classmethod
    def create(
        cls,
        config: Optional[EngineConfig] = None,
        *,
        backend: Optional[EngineBackend] = None,
    ) -> "EngineHandle":
        """
        Initialize an engine and return a live handle.

        Args:
            config: Engine configuration, defaults to EngineConfig()
            backend: Engine backend to own, defaults to a new TesseractBackend

        Returns:
            EngineHandle in the LIVE state

        Raises:
            EngineInitError: If the engine cannot be initialized
            InvalidVariableError: If the engine rejects one of config.options
        """
        config = config or EngineConfig()
        handle = cls(backend or TesseractBackend(), config)
        handle._initialize()
        return handle

    def _initialize(self) -> None:
        backend = self._backend
        config = self.config
        try:
            if not backend.init(config.data_path, config.language, config.config_file):
                raise EngineInitError(config.language, config.data_path)
            rejected = apply_options(backend, config.options)
            if rejected is not None:
                raise InvalidVariableError(*rejected)
        except Exception as e:
            logger.error(f"Engine creation failed: {str(e)}")
            self._backend = None
            self.state = HandleState.DEAD
            backend.end()
            raise

        self.data_path = backend.get_data_path()
        self.state = HandleState.LIVE
        logger.info(
            f"Created {backend.name} engine handle for '{config.language}' "
            f"with {len(config.options)} option(s)"
        )

    def engine(self) -> EngineBackend:
        """Return the backend, or raise LivenessError if the handle is not live."""
        backend = self._backend
        if backend is None or self.state is not HandleState.LIVE:
            raise LivenessError(
                f"Engine handle is {self.state.value}; the engine pointer is dead"
            )
        return backend

    @property
    def is_live(self) -> bool:
        return self._backend is not None and self.state is HandleState.LIVE

    def set_variable(self, name: str, value: Union[str, int, float, bool]) -> "EngineHandle":
        """
        Set one engine variable on the live engine.

        Returns:
            This handle, for chaining

        Raises:
            LivenessError: If the handle has been released
            InvalidVariableError: If the engine rejects the variable
        """
        if isinstance(value, bool):
            value = "1" if value else "0"
        value = str(value)
        with self.lock:
            backend = self.engine()
            if not backend.set_variable(name, value):
                logger.error(f"Engine rejected variable {name}={value!r}")
                raise InvalidVariableError(name, value)
        logger.debug(f"Set variable {name}={value!r}")
        return self

    def info(self) -> EngineInfo:
        backend = self.engine()
        return EngineInfo(
            data_path=backend.get_data_path(),
            loaded=backend.list_loaded_languages(),
            available=backend.list_available_languages(),
        )

    def dump_variables(self, destination: Union[str, os.PathLike]) -> str:
        """
        Write every engine variable and its current value to a file.

        Args:
            destination: File path to write to

        Returns:
            The destination path

        Raises:
            LivenessError: If the handle has been released
            VariableDumpError: If the destination cannot be written
        """
        backend = self.engine()
        destination = os.fspath(destination)
        # A failed listing must not truncate an existing destination.
        listing = backend.print_variables()
        try:
            f = open(destination, "w", encoding="utf-8")
        except OSError as e:
            logger.error(f"Cannot open {destination} for writing: {str(e)}")
            raise VariableDumpError(f"Cannot open {destination} for writing: {str(e)}") from e
        with f:
            f.write(listing)
        logger.info(f"Engine variables written to {destination}")
        return destination

    def release(self) -> None:
        """Release the engine. Safe to call more than once."""
        with self.lock:
            backend, self._backend = self._backend, None
            self.state = HandleState.DEAD
        if backend is not None:
            backend.end()
            logger.info(f"Released {backend.name} engine handle")

    def __enter__(self) -> "EngineHandle":
        self.engine()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()

    def __repr__(self) -> str:
        return f"EngineHandle(language={self.language!r}, state={self.state.value})"
