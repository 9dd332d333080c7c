"""
Export format detection and parsers.

An export is classified once by ``classify_format`` and then handed to the
parser registered for that format. Parsers return raw field maps; rows that
do not line up with the header are skipped and reported, never raised.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from sfbwatch.exceptions import FormatUnsupportedError
from sfbwatch.parsing.normalizer import has_sip_address
from sfbwatch.utils.logging import get_logger

logger = get_logger("sfbwatch.parsing.formats")

JSON_CONTAINER_KEYS = ("users", "SfBUsers")


class ExportFormat(str, Enum):
    """Supported (and explicitly rejected) export formats."""

    JSON = "json"
    CSV = "csv"
    DELIMITED = "delimited"
    XML = "xml"


@dataclass(frozen=True)
class SkippedRow:
    """A data line that was dropped while parsing."""

    line_number: int
    reason: str


@dataclass
class ParseResult:
    """Raw rows that carry a SIP address, plus what was skipped."""

    rows: list[dict[str, Any]] = field(default_factory=list)
    skipped: list[SkippedRow] = field(default_factory=list)


def classify_format(content: str) -> ExportFormat:
    """
    Decide which parser handles the content.

    Checked in order on the stripped text: JSON (``[`` or ``{``), XML
    (``<``), CSV (has a comma and a newline), otherwise tab/pipe delimited.
    """
    text = content.strip()
    if text.startswith(("[", "{")):
        return ExportFormat.JSON
    if text.startswith("<"):
        return ExportFormat.XML
    if "," in text and "\n" in text:
        return ExportFormat.CSV
    return ExportFormat.DELIMITED


def split_csv_line(line: str) -> list[str]:
    """
    Split one CSV line on commas that are outside double quotes.

    Quote characters toggle quoted mode and are not kept; values are stripped.
    """
    values: list[str] = []
    current: list[str] = []
    in_quotes = False

    for char in line:
        if char == '"':
            in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            values.append("".join(current).strip())
            current = []
        else:
            current.append(char)

    values.append("".join(current).strip())
    return values


class ExportParser(ABC):
    """Turns raw export text into a list of raw field maps."""

    format: ExportFormat

    @abstractmethod
    def parse(self, content: str) -> ParseResult: ...

    def _keep(self, row: dict[str, Any], line_number: int, result: ParseResult) -> None:
        if has_sip_address(row):
            result.rows.append(row)
        else:
            result.skipped.append(SkippedRow(line_number, "missing SIP address"))
            logger.debug(f"Dropping line {line_number}: missing SIP address")


class JsonParser(ExportParser):
    """
    JSON exports: a bare array, an object wrapping the array under
    ``users`` / ``SfBUsers``, or one user object.
    """

    format = ExportFormat.JSON

    def parse(self, content: str) -> ParseResult:
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise FormatUnsupportedError(f"Invalid JSON format: {e}", format_name=self.format.value) from e

        if isinstance(data, list):
            items = data
        elif isinstance(data, dict):
            items = next((data[key] for key in JSON_CONTAINER_KEYS if data.get(key)), [data])
        else:
            raise FormatUnsupportedError(
                f"JSON export must be an array or object, got {type(data).__name__}",
                format_name=self.format.value,
            )

        if not isinstance(items, list):
            raise FormatUnsupportedError("JSON user container must be an array", format_name=self.format.value)

        result = ParseResult()
        for index, item in enumerate(items, start=1):
            if not isinstance(item, dict):
                result.skipped.append(SkippedRow(index, f"not an object ({type(item).__name__})"))
                continue
            self._keep(item, index, result)
        return result


class _TabularParser(ExportParser):
    """Shared header + rows handling for CSV and delimited text."""

    def parse(self, content: str) -> ParseResult:
        lines = content.lstrip().splitlines()
        if not lines:
            raise FormatUnsupportedError(
                f"{self.format.value.upper()} file must have a header row",
                format_name=self.format.value,
            )

        headers = self._split_header(lines[0])
        result = ParseResult()
        if len(lines) == 1:
            logger.debug(f"{self.format.value.upper()} export has a header but no data rows")
            return result

        for line_number, line in enumerate(lines[1:], start=2):
            if not line.strip():
                continue

            # Values are stripped individually; trailing empty columns must survive
            values = self._split_row(line, lines[0])
            if len(values) != len(headers):
                reason = f"column count mismatch ({len(values)} values, {len(headers)} headers)"
                result.skipped.append(SkippedRow(line_number, reason))
                logger.warning(f"Skipping line {line_number}: {reason}")
                continue

            self._keep(dict(zip(headers, values)), line_number, result)

        return result

    @abstractmethod
    def _split_header(self, header_line: str) -> list[str]: ...

    @abstractmethod
    def _split_row(self, line: str, header_line: str) -> list[str]: ...


class CsvParser(_TabularParser):
    format = ExportFormat.CSV

    def _split_header(self, header_line: str) -> list[str]:
        return [h.strip().replace('"', "") for h in split_csv_line(header_line)]

    def _split_row(self, line: str, header_line: str) -> list[str]:
        return split_csv_line(line)


class DelimitedParser(_TabularParser):
    """Tab-delimited, or pipe-delimited when the header has pipes but no tabs."""

    format = ExportFormat.DELIMITED

    @staticmethod
    def detect_delimiter(header_line: str) -> str:
        if "\t" not in header_line and "|" in header_line:
            return "|"
        return "\t"

    def _split_header(self, header_line: str) -> list[str]:
        delimiter = self.detect_delimiter(header_line)
        return [h.strip() for h in header_line.split(delimiter)]

    def _split_row(self, line: str, header_line: str) -> list[str]:
        delimiter = self.detect_delimiter(header_line)
        return [v.strip() for v in line.split(delimiter)]


class XmlParser(ExportParser):
    """XML exports are recognised so they can be rejected explicitly."""

    format = ExportFormat.XML

    def parse(self, content: str) -> ParseResult:
        raise FormatUnsupportedError(
            "XML exports are not supported. Please convert to JSON or CSV format.",
            format_name=self.format.value,
        )


def build_parser_registry() -> dict[ExportFormat, ExportParser]:
    """Build the registry of built-in parsers, one per format."""
    parsers: list[ExportParser] = [JsonParser(), CsvParser(), DelimitedParser(), XmlParser()]
    return {parser.format: parser for parser in parsers}
