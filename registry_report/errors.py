"""Exceptions raised by the export engine."""

from __future__ import annotations


class ExportError(Exception):
    """An export could not produce a workbook."""

    stage = "export"

    def __init__(self, message: str, *, stage: str | None = None) -> None:
        super().__init__(message)
        if stage is not None:
            self.stage = stage


class WorkbookWriteError(ExportError):
    """The spreadsheet package could not be written."""

    stage = "serialize"
