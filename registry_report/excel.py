"""Write a :class:`~registry_report.workbook.Workbook` as an ``.xlsx`` package.

The package is the minimal set of Office Open XML parts a spreadsheet reader
needs: a content-type manifest, package and workbook relationships, core
properties, one shared style table, an empty shared-string table and one part
per worksheet. Text is stored as inline strings so no second pass over the
cells is needed.
"""

from __future__ import annotations

import math
import re
import tempfile
import zipfile
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Tuple

from .errors import WorkbookWriteError
from .logging_setup import get_logger
from .workbook import (
    Cell,
    CurrencyCell,
    EmptyCell,
    NumberCell,
    TextCell,
    Workbook,
    Worksheet,
    cell_reference,
    column_letter,
)

logger = get_logger("registry_report.excel")

XML_HEADER = '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'

NS_MAIN = "http://schemas.openxmlformats.org/spreadsheetml/2006/main"
NS_REL = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"
NS_PKG_REL = "http://schemas.openxmlformats.org/package/2006/relationships"
NS_CONTENT_TYPES = "http://schemas.openxmlformats.org/package/2006/content-types"

REL_OFFICE_DOCUMENT = NS_REL + "/officeDocument"
REL_CORE_PROPERTIES = NS_PKG_REL + "/metadata/core-properties"
REL_WORKSHEET = NS_REL + "/worksheet"
REL_STYLES = NS_REL + "/styles"
REL_SHARED_STRINGS = NS_REL + "/sharedStrings"

CT_RELS = "application/vnd.openxmlformats-package.relationships+xml"
CT_CORE = "application/vnd.openxmlformats-package.core-properties+xml"
CT_WORKBOOK = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet.main+xml"
CT_WORKSHEET = "application/vnd.openxmlformats-officedocument.spreadsheetml.worksheet+xml"
CT_STYLES = "application/vnd.openxmlformats-officedocument.spreadsheetml.styles+xml"
CT_SHARED_STRINGS = "application/vnd.openxmlformats-officedocument.spreadsheetml.sharedStrings+xml"

# Fixed entry timestamps keep identical workbooks byte-identical.
_ZIP_DATE_TIME = (1980, 1, 1, 0, 0, 0)
_FIRST_CUSTOM_FORMAT = 164

_ESCAPES = {"&": "&amp;", "<": "&lt;", ">": "&gt;", '"': "&quot;", "'": "&apos;"}
_ESCAPE_PATTERN = re.compile(r"[&<>\"']")
_ILLEGAL_XML = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]")


def xml_escape(text: str) -> str:
    """Escape the five XML metacharacters and drop characters XML forbids."""

    text = _ILLEGAL_XML.sub("", str(text))
    return _ESCAPE_PATTERN.sub(lambda match: _ESCAPES[match.group(0)], text)


def _number_literal(value) -> str:
    if isinstance(value, bool):
        raise TypeError(f"Booleans are not numeric cell values: {value!r}")
    if isinstance(value, Decimal):
        if not value.is_finite():
            raise ValueError(f"Cannot store non-finite number {value}")
        return format(value, "f")
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"Cannot store non-finite number {value}")
        return repr(value)
    raise TypeError(f"Unsupported numeric cell value: {value!r}")


def currency_format_code(currency_code: str) -> str:
    code = currency_code.replace('"', "").strip()
    return f'#,##0.00 "{code}"' if code else "#,##0.00"


StyleKey = Tuple[bool, bool, Optional[str]]


class StyleTable:
    """Cell formats shared by every sheet.

    Slot 0 is the default format and slot 1 plain bold; other combinations
    get a slot the first time a cell asks for one.
    """

    DEFAULT: StyleKey = (False, False, None)
    BOLD: StyleKey = (True, False, None)

    def __init__(self) -> None:
        self._slots: List[StyleKey] = []
        self._index: Dict[StyleKey, int] = {}
        self._formats: Dict[str, int] = {}
        self.slot(self.DEFAULT)
        self.slot(self.BOLD)

    def slot(self, key: StyleKey) -> int:
        index = self._index.get(key)
        if index is None:
            _, _, fmt = key
            if fmt is not None and fmt not in self._formats:
                self._formats[fmt] = _FIRST_CUSTOM_FORMAT + len(self._formats)
            index = self._index[key] = len(self._slots)
            self._slots.append(key)
        return index

    def for_cell(self, cell: Cell) -> int:
        if isinstance(cell, TextCell):
            return self.slot((cell.bold, cell.centered, None))
        if isinstance(cell, NumberCell):
            return self.slot((cell.bold, False, None))
        if isinstance(cell, CurrencyCell):
            return self.slot((cell.bold, False, currency_format_code(cell.currency_code)))
        return 0

    def __len__(self) -> int:
        return len(self._slots)

    def to_xml(self) -> str:
        parts = [XML_HEADER, f'<styleSheet xmlns="{NS_MAIN}">']
        if self._formats:
            parts.append(f'<numFmts count="{len(self._formats)}">')
            for code, fmt_id in self._formats.items():
                parts.append(f'<numFmt numFmtId="{fmt_id}" formatCode="{xml_escape(code)}"/>')
            parts.append("</numFmts>")
        parts.append(
            '<fonts count="2">'
            '<font><sz val="11"/><name val="Calibri"/><family val="2"/></font>'
            '<font><b/><sz val="11"/><name val="Calibri"/><family val="2"/></font>'
            "</fonts>"
            '<fills count="2">'
            '<fill><patternFill patternType="none"/></fill>'
            '<fill><patternFill patternType="gray125"/></fill>'
            "</fills>"
            '<borders count="1"><border><left/><right/><top/><bottom/><diagonal/></border></borders>'
            '<cellStyleXfs count="1"><xf numFmtId="0" fontId="0" fillId="0" borderId="0"/></cellStyleXfs>'
        )
        parts.append(f'<cellXfs count="{len(self._slots)}">')
        for bold, centered, fmt in self._slots:
            fmt_id = self._formats[fmt] if fmt is not None else 0
            attrs = f'numFmtId="{fmt_id}" fontId="{1 if bold else 0}" fillId="0" borderId="0" xfId="0"'
            if bold:
                attrs += ' applyFont="1"'
            if fmt is not None:
                attrs += ' applyNumberFormat="1"'
            if centered:
                parts.append(f'<xf {attrs} applyAlignment="1"><alignment horizontal="center"/></xf>')
            else:
                parts.append(f"<xf {attrs}/>")
        parts.append("</cellXfs>")
        parts.append(
            '<cellStyles count="1"><cellStyle name="Normal" xfId="0" builtinId="0"/></cellStyles>'
            "</styleSheet>"
        )
        return "".join(parts)


def _cell_xml(cell: Cell, ref: str, styles: StyleTable) -> str:
    style = styles.for_cell(cell)
    style_attr = f' s="{style}"' if style else ""
    if isinstance(cell, TextCell):
        value = xml_escape(cell.value)
        space = ' xml:space="preserve"' if value != value.strip() or "\n" in value else ""
        return f'<c r="{ref}"{style_attr} t="inlineStr"><is><t{space}>{value}</t></is></c>'
    if isinstance(cell, (NumberCell, CurrencyCell)):
        return f'<c r="{ref}"{style_attr}><v>{_number_literal(cell.value)}</v></c>'
    if isinstance(cell, EmptyCell):
        return f'<c r="{ref}"/>'
    raise TypeError(f"Unknown cell type: {type(cell).__name__}")


def _dimension(sheet: Worksheet) -> str:
    if not sheet.row_count or not sheet.column_count:
        return "A1"
    return f"A1:{column_letter(sheet.column_count - 1)}{sheet.row_count}"


def worksheet_xml(sheet: Worksheet, styles: StyleTable, active: bool = False) -> str:
    parts = [
        XML_HEADER,
        f'<worksheet xmlns="{NS_MAIN}" xmlns:r="{NS_REL}">',
        f'<dimension ref="{_dimension(sheet)}"/>',
        "<sheetViews>",
    ]
    tab = ' tabSelected="1"' if active else ""
    if sheet.frozen_rows > 0:
        top_left = cell_reference(sheet.frozen_rows, 0)
        parts.append(
            f'<sheetView{tab} workbookViewId="0">'
            f'<pane ySplit="{sheet.frozen_rows}" topLeftCell="{top_left}" '
            'activePane="bottomLeft" state="frozen"/>'
            f'<selection pane="bottomLeft" activeCell="{top_left}" sqref="{top_left}"/>'
            "</sheetView>"
        )
    else:
        parts.append(f'<sheetView{tab} workbookViewId="0"/>')
    parts.append("</sheetViews>")
    parts.append('<sheetFormatPr defaultRowHeight="15"/>')

    if sheet.column_widths:
        parts.append("<cols>")
        for column, width in sorted(sheet.column_widths.items()):
            parts.append(
                f'<col min="{column + 1}" max="{column + 1}" width="{width:g}" customWidth="1"/>'
            )
        parts.append("</cols>")

    parts.append("<sheetData>")
    for row_index, row in enumerate(sheet.rows):
        cells = "".join(
            _cell_xml(cell, cell_reference(row_index, column), styles)
            for column, cell in enumerate(row)
        )
        parts.append(f'<row r="{row_index + 1}">{cells}</row>')
    parts.append("</sheetData>")
    parts.append(
        '<pageMargins left="0.7" right="0.7" top="0.75" bottom="0.75" header="0.3" footer="0.3"/>'
    )
    parts.append("</worksheet>")
    return "".join(parts)


def _sheet_part(index: int) -> str:
    return f"xl/worksheets/sheet{index + 1}.xml"


def content_types_xml(sheet_count: int) -> str:
    overrides = [
        ("/docProps/core.xml", CT_CORE),
        ("/xl/workbook.xml", CT_WORKBOOK),
        ("/xl/styles.xml", CT_STYLES),
        ("/xl/sharedStrings.xml", CT_SHARED_STRINGS),
    ]
    overrides.extend(("/" + _sheet_part(index), CT_WORKSHEET) for index in range(sheet_count))
    parts = [
        XML_HEADER,
        f'<Types xmlns="{NS_CONTENT_TYPES}">',
        f'<Default Extension="rels" ContentType="{CT_RELS}"/>',
        '<Default Extension="xml" ContentType="application/xml"/>',
    ]
    parts.extend(
        f'<Override PartName="{name}" ContentType="{content_type}"/>'
        for name, content_type in overrides
    )
    parts.append("</Types>")
    return "".join(parts)


def _relationships_xml(relationships: Sequence[Tuple[str, str]]) -> str:
    parts = [XML_HEADER, f'<Relationships xmlns="{NS_PKG_REL}">']
    parts.extend(
        f'<Relationship Id="rId{index}" Type="{rel_type}" Target="{target}"/>'
        for index, (rel_type, target) in enumerate(relationships, start=1)
    )
    parts.append("</Relationships>")
    return "".join(parts)


def root_relationships_xml() -> str:
    return _relationships_xml(
        [
            (REL_OFFICE_DOCUMENT, "xl/workbook.xml"),
            (REL_CORE_PROPERTIES, "docProps/core.xml"),
        ]
    )


def workbook_relationships_xml(sheet_count: int) -> str:
    relationships = [
        (REL_WORKSHEET, f"worksheets/sheet{index + 1}.xml") for index in range(sheet_count)
    ]
    relationships.append((REL_STYLES, "styles.xml"))
    relationships.append((REL_SHARED_STRINGS, "sharedStrings.xml"))
    return _relationships_xml(relationships)


def workbook_xml(sheets: Sequence[Worksheet]) -> str:
    # Sheet N is relationship rIdN in workbook_relationships_xml.
    entries = "".join(
        f'<sheet name="{xml_escape(sheet.name)}" sheetId="{index + 1}" r:id="rId{index + 1}"/>'
        for index, sheet in enumerate(sheets)
    )
    return (
        f'{XML_HEADER}<workbook xmlns="{NS_MAIN}" xmlns:r="{NS_REL}">'
        '<bookViews><workbookView activeTab="0"/></bookViews>'
        f"<sheets>{entries}</sheets>"
        "</workbook>"
    )


def core_properties_xml(title: str, creator: str) -> str:
    parts = [
        XML_HEADER,
        '<cp:coreProperties '
        'xmlns:cp="http://schemas.openxmlformats.org/package/2006/metadata/core-properties" '
        'xmlns:dc="http://purl.org/dc/elements/1.1/" '
        'xmlns:dcterms="http://purl.org/dc/terms/" '
        'xmlns:dcmitype="http://purl.org/dc/dcmitype/" '
        'xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance">',
    ]
    if title:
        parts.append(f"<dc:title>{xml_escape(title)}</dc:title>")
    if creator:
        parts.append(f"<dc:creator>{xml_escape(creator)}</dc:creator>")
    parts.append("</cp:coreProperties>")
    return "".join(parts)


SHARED_STRINGS_XML = f'{XML_HEADER}<sst xmlns="{NS_MAIN}" count="0" uniqueCount="0"/>'


def package_parts(workbook: Workbook) -> List[Tuple[str, str]]:
    """Return ``(part name, xml)`` pairs in the order they are zipped."""

    sheets = workbook.worksheets
    if not sheets:
        raise ValueError("A workbook needs at least one worksheet")

    styles = StyleTable()
    sheet_parts = [
        (_sheet_part(index), worksheet_xml(sheet, styles, active=index == 0))
        for index, sheet in enumerate(sheets)
    ]
    return [
        ("[Content_Types].xml", content_types_xml(len(sheets))),
        ("_rels/.rels", root_relationships_xml()),
        ("docProps/core.xml", core_properties_xml(workbook.title, workbook.creator)),
        ("xl/workbook.xml", workbook_xml(sheets)),
        ("xl/_rels/workbook.xml.rels", workbook_relationships_xml(len(sheets))),
        ("xl/styles.xml", styles.to_xml()),
        ("xl/sharedStrings.xml", SHARED_STRINGS_XML),
        *sheet_parts,
    ]


def serialize(workbook: Workbook) -> bytes:
    """Render ``workbook`` into the bytes of an ``.xlsx`` file.

    The archive is assembled in an anonymous temporary file that is removed
    on every exit path. Storage or zip failures raise ``WorkbookWriteError``.
    """

    parts = package_parts(workbook)
    try:
        with tempfile.TemporaryFile() as handle:
            with zipfile.ZipFile(handle, "w", compression=zipfile.ZIP_DEFLATED) as archive:
                for name, xml in parts:
                    info = zipfile.ZipInfo(name, date_time=_ZIP_DATE_TIME)
                    info.compress_type = zipfile.ZIP_DEFLATED
                    info.external_attr = 0o644 << 16
                    archive.writestr(info, xml.encode("utf-8"))
            handle.seek(0)
            data = handle.read()
    except (OSError, zipfile.BadZipFile, zipfile.LargeZipFile) as exc:
        raise WorkbookWriteError(f"Could not write workbook package: {exc}") from exc

    logger.debug("Serialized %d parts into %d bytes", len(parts), len(data))
    return data
