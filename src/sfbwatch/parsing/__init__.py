"""
Export parsing: format detection, per-format parsers and record normalization.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from sfbwatch.monitor.types import CanonicalUserRecord
from sfbwatch.parsing.formats import (
    CsvParser,
    DelimitedParser,
    ExportFormat,
    ExportParser,
    JsonParser,
    ParseResult,
    SkippedRow,
    build_parser_registry,
    classify_format,
    split_csv_line,
)
from sfbwatch.parsing.normalizer import (
    FIELD_RULES,
    FieldRule,
    extract_phone_number,
    has_sip_address,
    normalize_record,
    parse_boolean,
)
from sfbwatch.utils.logging import get_logger

logger = get_logger("sfbwatch.parsing")

_registry = build_parser_registry()


@dataclass
class ParsedExport:
    """Normalized records from one export, with what was skipped on the way."""

    format: ExportFormat
    records: list[CanonicalUserRecord] = field(default_factory=list)
    skipped: list[SkippedRow] = field(default_factory=list)


def parse_export(content: str) -> ParsedExport:
    """
    Classify, parse and normalize export content.

    Raises:
        FormatUnsupportedError: Content is XML, malformed JSON, or has no header row
    """
    export_format = classify_format(content)
    result = _registry[export_format].parse(content)

    parsed = ParsedExport(format=export_format, skipped=list(result.skipped))
    for row in result.rows:
        record = normalize_record(row)
        if record.sip_address:
            parsed.records.append(record)

    logger.debug(
        f"Parsed {export_format.value} export: {len(parsed.records)} records, {len(parsed.skipped)} skipped"
    )
    return parsed


def parse_content(content: str) -> list[CanonicalUserRecord]:
    """Parse export content into canonical user records."""
    return parse_export(content).records


__all__ = [
    "FIELD_RULES",
    "CsvParser",
    "DelimitedParser",
    "ExportFormat",
    "ExportParser",
    "FieldRule",
    "JsonParser",
    "ParseResult",
    "ParsedExport",
    "SkippedRow",
    "build_parser_registry",
    "classify_format",
    "extract_phone_number",
    "has_sip_address",
    "normalize_record",
    "parse_boolean",
    "parse_content",
    "parse_export",
    "split_csv_line",
]
