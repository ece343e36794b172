"""In-memory spreadsheet model handed to the package serializer."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Union

MAX_SHEET_NAME = 31
_INVALID_SHEET_CHARS = re.compile(r"[\[\]:*?/\\]")
_LETTERS = re.compile(r"^[A-Z]+$")


@dataclass(frozen=True)
class TextCell:
    value: str
    bold: bool = False
    centered: bool = False


@dataclass(frozen=True)
class NumberCell:
    value: Union[int, Decimal]
    bold: bool = False


@dataclass(frozen=True)
class CurrencyCell:
    value: Decimal
    currency_code: str
    bold: bool = False


@dataclass(frozen=True)
class EmptyCell:
    pass


Cell = Union[TextCell, NumberCell, CurrencyCell, EmptyCell]
EMPTY = EmptyCell()


def column_letter(index: int) -> str:
    """Return the spreadsheet letters for a 0-based column index (0 -> "A")."""

    if index < 0:
        raise ValueError(f"Column index must be non-negative, got {index}")
    letters = []
    number = index + 1
    while number:
        number, remainder = divmod(number - 1, 26)
        letters.append(chr(ord("A") + remainder))
    return "".join(reversed(letters))


def column_index(letters: str) -> int:
    """Inverse of :func:`column_letter`."""

    letters = letters.upper()
    if not _LETTERS.match(letters):
        raise ValueError(f"Invalid column letters: {letters!r}")
    number = 0
    for char in letters:
        number = number * 26 + (ord(char) - ord("A") + 1)
    return number - 1


def cell_reference(row: int, column: int) -> str:
    """Return an ``A1`` style reference for 0-based ``row`` and ``column``."""

    return f"{column_letter(column)}{row + 1}"


@dataclass
class Worksheet:
    name: str
    frozen_rows: int = 0
    column_widths: Dict[int, float] = field(default_factory=dict)
    rows: List[List[Cell]] = field(default_factory=list)

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def column_count(self) -> int:
        return max((len(row) for row in self.rows), default=0)


def _check_sheet_name(name: str, existing: Iterable[str]) -> None:
    if not name or not name.strip():
        raise ValueError("Worksheet name must not be empty")
    if len(name) > MAX_SHEET_NAME:
        raise ValueError(f"Worksheet name longer than {MAX_SHEET_NAME} characters: {name!r}")
    if _INVALID_SHEET_CHARS.search(name):
        raise ValueError(f"Worksheet name contains a reserved character: {name!r}")
    if name.lower() in {other.lower() for other in existing}:
        raise ValueError(f"Duplicate worksheet name: {name!r}")


class Workbook:
    """Ordered collection of worksheets.

    Sheets are addressed by the integer handle ``add_worksheet`` returns.
    """

    def __init__(self, title: str = "", creator: str = "") -> None:
        self.title = title
        self.creator = creator
        self._worksheets: List[Worksheet] = []

    @property
    def worksheets(self) -> Sequence[Worksheet]:
        return tuple(self._worksheets)

    def add_worksheet(self, name: str, frozen_rows: int = 0) -> int:
        _check_sheet_name(name, (sheet.name for sheet in self._worksheets))
        if frozen_rows < 0:
            raise ValueError("frozen_rows must be non-negative")
        self._worksheets.append(Worksheet(name=name, frozen_rows=frozen_rows))
        return len(self._worksheets) - 1

    def _sheet(self, sheet: int) -> Worksheet:
        if not 0 <= sheet < len(self._worksheets):
            raise IndexError(f"No worksheet with handle {sheet}")
        return self._worksheets[sheet]

    def add_row(self, sheet: int, cells: Iterable[Cell]) -> None:
        self._sheet(sheet).rows.append(list(cells))

    def set_column_width(self, sheet: int, column: int, width: float) -> None:
        if column < 0:
            raise ValueError(f"Column index must be non-negative, got {column}")
        if width <= 0:
            raise ValueError(f"Column width must be positive, got {width}")
        self._sheet(sheet).column_widths[column] = width

    def worksheet(self, sheet: int) -> Worksheet:
        return self._sheet(sheet)

    def find(self, name: str) -> Optional[Worksheet]:
        for sheet in self._worksheets:
            if sheet.name == name:
                return sheet
        return None
