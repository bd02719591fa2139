#!/usr/bin/env python3
"""
Search strategy builder

Produces the ordered list of catalog queries tried for one entry:

    priority  kind                  query
    1         exact_with_year       "{title} {year}"
    2         exact                 title
    3         normalized_with_year  "{normalized} {year}"
    4         normalized            normalized
    5         keywords_with_year    "{keywords} {year}"
    6         keywords              keywords

Variants textually identical to an earlier one are skipped, so priorities may have gaps.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List

from reelay_import.extractor import ImportEntry
from reelay_import.normalization import normalize_title, keywordize_title


class StrategyKind(str, Enum):
    EXACT_WITH_YEAR = "exact_with_year"
    EXACT = "exact"
    NORMALIZED_WITH_YEAR = "normalized_with_year"
    NORMALIZED = "normalized"
    KEYWORDS_WITH_YEAR = "keywords_with_year"
    KEYWORDS = "keywords"

    @property
    def is_normalized(self) -> bool:
        return self in (StrategyKind.NORMALIZED, StrategyKind.NORMALIZED_WITH_YEAR)

    @property
    def is_keywords(self) -> bool:
        return self in (StrategyKind.KEYWORDS, StrategyKind.KEYWORDS_WITH_YEAR)


@dataclass(frozen=True)
class SearchStrategy:
    query: str
    kind: StrategyKind
    priority: int


def build_strategies(entry: ImportEntry) -> List[SearchStrategy]:
    """Build the query variants for an entry in ascending priority order"""
    title = entry.title
    year = entry.year
    strategies: List[SearchStrategy] = []
    seen = set()

    def add(query: str, kind: StrategyKind, priority: int):
        if query in seen:
            return
        seen.add(query)
        strategies.append(SearchStrategy(query, kind, priority))

    if year is not None:
        add(f"{title} {year}", StrategyKind.EXACT_WITH_YEAR, 1)

    add(title, StrategyKind.EXACT, 2)

    normalized = normalize_title(title)
    if normalized and normalized != title:
        if year is not None:
            add(f"{normalized} {year}", StrategyKind.NORMALIZED_WITH_YEAR, 3)
        add(normalized, StrategyKind.NORMALIZED, 4)

    keywords = keywordize_title(title)
    if keywords and keywords != title and keywords != normalized:
        if year is not None:
            add(f"{keywords} {year}", StrategyKind.KEYWORDS_WITH_YEAR, 5)
        add(keywords, StrategyKind.KEYWORDS, 6)

    return strategies
