"""Engine parameter table and validation of name/value options."""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from src.tesseract_handle.exceptions import ArgumentError

if TYPE_CHECKING:
    from src.tesseract_handle.base import EngineBackend

logger = logging.getLogger(__name__)

TABLE_HEADER = "Tesseract parameters:"


@dataclass(frozen=True)
class Parameter:
    """One engine parameter with its default value and description."""

    name: str
    default: str
    description: str = ""


class ParameterTable:
    """
    Engine-independent table of the parameters an engine understands.

    The table is read-only. Validation works on a scratch copy of the
    values, so nothing done through it is visible to a live engine or to
    later validations.
    """

    def __init__(self, parameters: Iterable[Parameter]):
        self._parameters: Dict[str, Parameter] = {}
        for parameter in parameters:
            self._parameters[parameter.name] = parameter

    @classmethod
    def parse(cls, text: str) -> "ParameterTable":
        """
        Parse the output of ``tesseract --print-parameters``.

        Each parameter line is ``name<TAB>value<TAB>description``; the
        header line and blank lines are skipped.

        Args:
            text: Raw listing

        Returns:
            ParameterTable holding every parsed parameter
        """
        parameters = []
        for line in text.splitlines():
            line = line.rstrip("\r")
            if not line.strip() or line.startswith(TABLE_HEADER):
                continue
            fields = line.split("\t", 2)
            if len(fields) < 2 or not fields[0]:
                logger.debug(f"Skipping unparseable parameter line: {line!r}")
                continue
            description = fields[2] if len(fields) == 3 else ""
            parameters.append(Parameter(fields[0], fields[1], description.strip()))
        return cls(parameters)

    def __contains__(self, name: object) -> bool:
        return name in self._parameters

    def __len__(self) -> int:
        return len(self._parameters)

    def __iter__(self) -> Iterator[Parameter]:
        return iter(self._parameters.values())

    def get(self, name: str) -> Optional[Parameter]:
        return self._parameters.get(name)

    def search(self, pattern: str = "") -> List[Parameter]:
        """Return parameters whose name contains pattern, case-insensitively, sorted by name."""
        pattern = pattern.lower()
        return sorted(
            (p for p in self._parameters.values() if pattern in p.name.lower()),
            key=lambda p: p.name,
        )

    def try_set_all(self, pairs: Iterable[Tuple[str, str]]) -> List[bool]:
        """
        Set each pair, in order, into a throwaway copy of the table's values.

        A pair is accepted when its name is a known parameter. The engine
        does not reject values, only names, so neither does this.

        Args:
            pairs: (name, value) pairs

        Returns:
            One boolean per pair
        """
        scratch = {p.name: p.default for p in self._parameters.values()}
        results = []
        for name, value in pairs:
            accepted = name in scratch
            if accepted:
                scratch[name] = value
            results.append(accepted)
        return results


def validate_options(
    names: Sequence[str], values: Sequence[str], table: ParameterTable
) -> List[bool]:
    """
    Check option pairs against a parameter table without touching any engine.

    Args:
        names: Parameter names
        values: Parameter values, paired with names by position
        table: Parameter table to validate against

    Returns:
        List of booleans, one per pair, True if the pair would be accepted

    Raises:
        ArgumentError: If names and values differ in length
    """
    if isinstance(names, str) or isinstance(values, str):
        raise ArgumentError("names and values must be sequences of strings")
    if len(names) != len(values):
        raise ArgumentError(
            f"names and values must have equal length, got {len(names)} and {len(values)}"
        )
    return table.try_set_all(zip(names, (str(v) for v in values)))


def apply_options(
    backend: "EngineBackend", options: Iterable[Tuple[str, str]]
) -> Optional[Tuple[str, str]]:
    """
    Apply option pairs to a backend in input order.

    Stops at the first pair the backend rejects.

    Args:
        backend: Initialized engine backend
        options: (name, value) pairs; a later pair overrides an earlier one

    Returns:
        The rejected (name, value) pair, or None if every pair was applied
    """
    for name, value in options:
        if not backend.set_variable(name, value):
            logger.error(f"Engine rejected option {name}={value!r}")
            return name, value
        logger.debug(f"Applied option {name}={value!r}")
    return None
