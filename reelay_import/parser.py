#!/usr/bin/env python3
"""
CSV parser for imported film lists

Handles two dialects:
  - Letterboxd list export: a metadata preamble, then a "Position,Name,Year,URL,Description"
    header opening the film section
  - Generic CSV: first non-empty line is the header, every later non-empty line is a row

The tokenizer is deliberately lenient: unbalanced quotes never raise, the line is
flushed as-is so one malformed row cannot block the rest of the import.
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List

from reelay_import.constants import LETTERBOXD_EXPORT_MARKER, EXPORT_HEADER_PREFIX

logger = logging.getLogger(__name__)

# Line breaks only; str.splitlines() would also split on form feeds and record separators
_LINE_BREAK = re.compile(r"\r\n|[\n\r\x85\u2028\u2029]")


class CSVImportError(ValueError):
    """Base class for errors that stop a whole import"""


class EmptyInputError(CSVImportError):
    """Document has fewer than two usable lines"""

    def __init__(self, message: str = "The CSV file is empty or contains no data"):
        super().__init__(message)


class InvalidFormatError(CSVImportError):
    """Export marker present but no film header line found"""

    def __init__(self, message: str = "The CSV file format is invalid"):
        super().__init__(message)


@dataclass(frozen=True)
class RawRow:
    """One data line mapped header → value (keys trimmed and lowercased at parse time)"""
    row_number: int
    fields: Dict[str, str] = field(default_factory=dict)


def tokenize_line(line: str) -> List[str]:
    """
    Split one CSV line into fields.

    A quote toggles quoted mode; a doubled quote inside quoted mode is one
    literal quote. Commas outside quotes end a field. A line with N unquoted
    commas always yields N+1 fields.
    """
    values: List[str] = []
    current: List[str] = []
    inside_quotes = False
    i = 0
    length = len(line)

    while i < length:
        char = line[i]

        if char == '"':
            if inside_quotes:
                if i + 1 < length and line[i + 1] == '"':
                    current.append('"')
                    i += 2
                    continue
                inside_quotes = False
            else:
                inside_quotes = True
        elif char == ',' and not inside_quotes:
            values.append(''.join(current))
            current = []
        else:
            current.append(char)

        i += 1

    values.append(''.join(current))
    return values


def _split_lines(csv_text: str) -> List[str]:
    return [line.strip() for line in _LINE_BREAK.split(csv_text)]


def _map_row(headers: List[str], values: List[str], row_number: int) -> RawRow:
    fields: Dict[str, str] = {}
    for i, header in enumerate(headers):
        key = header.strip().lower()
        # Duplicate headers: last one wins
        fields[key] = values[i].strip() if i < len(values) else ''
    return RawRow(row_number=row_number, fields=fields)


def is_letterboxd_export(csv_text: str) -> bool:
    """True when the document's first line carries the Letterboxd list export marker"""
    lines = _LINE_BREAK.split(csv_text)
    return bool(lines) and LETTERBOXD_EXPORT_MARKER in lines[0]


def _parse_export_format(lines: List[str]) -> List[RawRow]:
    header_index = -1
    for index, line in enumerate(lines):
        if line.lower().startswith(EXPORT_HEADER_PREFIX):
            header_index = index
            break

    if header_index == -1:
        raise InvalidFormatError(
            f"Letterboxd export detected but no '{EXPORT_HEADER_PREFIX}' header line found"
        )

    headers = tokenize_line(lines[header_index])
    logger.debug(f"Letterboxd export: header at line {header_index + 1}: {headers}")

    rows = []
    for index in range(header_index + 1, len(lines)):
        line = lines[index]
        if not line:
            continue
        # 1-based line number in the original document
        rows.append(_map_row(headers, tokenize_line(line), index + 1))

    return rows


def _parse_generic_format(lines: List[str]) -> List[RawRow]:
    filtered = [line for line in lines if line]
    if len(filtered) < 2:
        raise EmptyInputError()

    headers = tokenize_line(filtered[0])
    rows = []
    for index, line in enumerate(filtered[1:]):
        # +2: header is row 1
        rows.append(_map_row(headers, tokenize_line(line), index + 2))

    return rows


def parse_csv(csv_text: str) -> List[RawRow]:
    """
    Parse CSV text into RawRows, detecting the Letterboxd export dialect.

    Raises:
        EmptyInputError: fewer than 2 non-empty lines
        InvalidFormatError: export marker present but no film header found
    """
    lines = _split_lines(csv_text)

    if sum(1 for line in lines if line) < 2:
        raise EmptyInputError()

    if is_letterboxd_export(csv_text):
        logger.info("Detected Letterboxd list export format")
        rows = _parse_export_format(lines)
    else:
        rows = _parse_generic_format(lines)

    logger.info(f"Parsed {len(rows)} data rows")
    return rows


def read_csv_file(path: Path) -> str:
    """Read a CSV file as text (BOM-tolerant UTF-8)"""
    with open(path, 'r', encoding='utf-8-sig') as f:
        return f.read()
