#!/usr/bin/env python3
"""
Field extraction: RawRow → ImportEntry

Each field is resolved from an ordered list of candidate header keys, because
real-world exports name their columns differently ("Name", "Title", "movie_title").
Rows without a resolvable title are skipped, never errored.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, List, Optional, Tuple

from reelay_import.constants import (
    TITLE_KEYS, POSITION_KEYS, YEAR_KEYS, URL_KEYS,
    DESCRIPTION_KEYS, TAG_KEYS, DATE_ADDED_KEYS, DATE_FORMATS,
)
from reelay_import.parser import RawRow

logger = logging.getLogger(__name__)

_INT_PATTERN = re.compile(r'[+-]?[0-9]+')


@dataclass(frozen=True)
class ImportEntry:
    """One title to match, extracted from a CSV row"""
    title: str
    position: int
    row_number: int
    year: Optional[int] = None
    url: Optional[str] = None
    description: Optional[str] = None
    tags: Optional[Tuple[str, ...]] = None
    date_added: Optional[date] = None


def _parse_int(value: str) -> Optional[int]:
    if _INT_PATTERN.fullmatch(value):
        return int(value)
    return None


def find_value(candidate_keys: Iterable[str], row: RawRow) -> Optional[str]:
    """
    Resolve the first non-empty value for a list of candidate header keys.

    For each key in priority order:
      1. exact key match
      2. case-insensitive match
      3. substring match in either direction
    """
    fields = row.fields
    for key in candidate_keys:
        lowered = key.lower()

        value = fields.get(key)
        if value:
            return value

        for field_key, field_value in fields.items():
            if field_value and field_key.lower() == lowered:
                return field_value

        for field_key, field_value in fields.items():
            if not field_value or not field_key:
                continue
            field_lowered = field_key.lower()
            if lowered in field_lowered or field_lowered in lowered:
                return field_value

    return None


def _find_int(candidate_keys: Iterable[str], row: RawRow) -> Optional[int]:
    for key in candidate_keys:
        value = find_value([key], row)
        if value is None:
            continue
        parsed = _parse_int(value)
        if parsed is not None:
            return parsed
    return None


def extract_title(row: RawRow) -> Optional[str]:
    value = find_value(TITLE_KEYS, row)
    if value is None:
        return None
    return value.strip() or None


def extract_position(row: RawRow) -> Optional[int]:
    return _find_int(POSITION_KEYS, row)


def extract_year(row: RawRow) -> Optional[int]:
    """Year column, or the 4-digit prefix of a date-like column ("2023-05-15" → 2023)"""
    for key in YEAR_KEYS:
        value = find_value([key], row)
        if value is None:
            continue
        year = _parse_int(value)
        if year is not None:
            return year
        if len(value) >= 4:
            year = _parse_int(value[:4])
            if year is not None:
                return year
    return None


def extract_tags(row: RawRow) -> Optional[Tuple[str, ...]]:
    value = find_value(TAG_KEYS, row)
    if value is None:
        return None
    tags = tuple(tag.strip() for tag in value.split(',') if tag.strip())
    return tags or None


def parse_date(value: str) -> Optional[date]:
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    return None


def extract_date_added(row: RawRow) -> Optional[date]:
    for key in DATE_ADDED_KEYS:
        value = find_value([key], row)
        if value is None:
            continue
        parsed = parse_date(value)
        if parsed is not None:
            return parsed
    return None


def extract_entry(row: RawRow) -> Optional[ImportEntry]:
    """Build an ImportEntry from a row, or None when no title can be found"""
    title = extract_title(row)
    if title is None:
        return None

    position = extract_position(row)
    if position is None:
        position = row.row_number - 1

    return ImportEntry(
        title=title,
        position=position,
        row_number=row.row_number,
        year=extract_year(row),
        url=find_value(URL_KEYS, row),
        description=find_value(DESCRIPTION_KEYS, row),
        tags=extract_tags(row),
        date_added=extract_date_added(row),
    )


def extract_entries(rows: Iterable[RawRow]) -> List[ImportEntry]:
    """Extract entries in row order, dropping rows without a title"""
    entries = []
    for row in rows:
        entry = extract_entry(row)
        if entry is None:
            logger.warning(f"Skipping row {row.row_number}: no movie title found")
            continue
        entries.append(entry)
    return entries
