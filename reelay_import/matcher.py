#!/usr/bin/env python3
"""
Catalog match resolution for imported entries.

Strategies are tried in priority order; the first accepted candidate wins and no
further queries are issued. Acceptance depends on the strategy kind:

1. Exact title pass (every kind): raw or normalized title equal
   (case-insensitive) and year within ±1 → accept
2. Normalized kinds: normalized titles contain one another, year within ±2
3. Keyword kinds: most popular result, no year check
4. exact_with_year: first result with year within ±3
5. exact: most popular result

Looser title agreement demands tighter year agreement; the widest year window
is only allowed when the query itself carried the exact title and year.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from reelay_import.constants import (
    EXACT_TITLE_YEAR_TOLERANCE,
    PARTIAL_TITLE_YEAR_TOLERANCE,
    EXACT_QUERY_YEAR_TOLERANCE,
)
from reelay_import.extractor import ImportEntry
from reelay_import.normalization import normalize_title, titles_equal
from reelay_import.strategies import SearchStrategy, StrategyKind
from reelay_import.tmdb import CatalogCandidate, SearchError

logger = logging.getLogger(__name__)

SearchFn = Callable[[str], List[CatalogCandidate]]


@dataclass
class MatchResult:
    """Outcome of resolving one entry against the catalog"""
    candidate: Optional[CatalogCandidate] = None
    strategy: Optional[SearchStrategy] = None
    queries_tried: int = 0
    failed_queries: List[str] = field(default_factory=list)

    @property
    def matched(self) -> bool:
        return self.candidate is not None


def _year_within(candidate: CatalogCandidate, year: int, tolerance: int) -> bool:
    candidate_year = candidate.year
    return candidate_year is not None and abs(candidate_year - year) <= tolerance


def _most_popular(candidates: Sequence[CatalogCandidate]) -> CatalogCandidate:
    # max() keeps the first of equally popular candidates
    return max(candidates, key=lambda c: c.popularity or 0)


def _exact_title_match(entry: ImportEntry, candidates: Sequence[CatalogCandidate]) -> Optional[CatalogCandidate]:
    for candidate in candidates:
        if not titles_equal(candidate.title, entry.title):
            continue
        if entry.year is None:
            return candidate
        if _year_within(candidate, entry.year, EXACT_TITLE_YEAR_TOLERANCE):
            return candidate
    return None


def _partial_title_match(entry: ImportEntry, candidates: Sequence[CatalogCandidate]) -> Optional[CatalogCandidate]:
    entry_norm = normalize_title(entry.title).lower()
    for candidate in candidates:
        candidate_norm = normalize_title(candidate.title).lower()
        if not candidate_norm:
            continue
        if entry_norm not in candidate_norm and candidate_norm not in entry_norm:
            continue
        # Unknown catalog year cannot contradict the entry
        if entry.year is None or candidate.year is None:
            return candidate
        if _year_within(candidate, entry.year, PARTIAL_TITLE_YEAR_TOLERANCE):
            return candidate
    return None


def accept_candidate(
    entry: ImportEntry,
    candidates: Sequence[CatalogCandidate],
    kind: StrategyKind,
) -> Optional[CatalogCandidate]:
    """Apply the acceptance policy for one strategy kind to a result list"""
    if not candidates:
        return None

    match = _exact_title_match(entry, candidates)
    if match is not None:
        return match

    if kind.is_normalized:
        return _partial_title_match(entry, candidates)

    if kind.is_keywords:
        return _most_popular(candidates)

    if kind == StrategyKind.EXACT_WITH_YEAR and entry.year is not None:
        for candidate in candidates:
            if _year_within(candidate, entry.year, EXACT_QUERY_YEAR_TOLERANCE):
                return candidate
        return None

    if kind == StrategyKind.EXACT:
        return _most_popular(candidates)

    return None


def resolve_match(
    entry: ImportEntry,
    strategies: Sequence[SearchStrategy],
    search: SearchFn,
) -> MatchResult:
    """
    Try each strategy in ascending priority until one yields an accepted candidate.

    A failed search (SearchError) is logged and treated as "no results" for that
    strategy only; it never aborts the entry.
    """
    result = MatchResult()
    ordered = sorted(strategies, key=lambda s: s.priority)
    logger.debug(f"Searching '{entry.title}' with {len(ordered)} strategies")

    for strategy in ordered:
        result.queries_tried += 1
        try:
            candidates = search(strategy.query)
        except SearchError as e:
            logger.warning(f"Search failed for query '{strategy.query}': {e}")
            result.failed_queries.append(strategy.query)
            continue

        logger.debug(
            f"Query '{strategy.query}' ({strategy.kind.value}) → {len(candidates)} results"
        )

        match = accept_candidate(entry, candidates, strategy.kind)
        if match is not None:
            logger.info(
                f"Matched '{entry.title}' → '{match.title}' "
                f"(TMDb ID: {match.tmdb_id}, strategy: {strategy.kind.value})"
            )
            result.candidate = match
            result.strategy = strategy
            return result

    logger.info(f"No match for '{entry.title}' after {len(ordered)} strategies")
    return result
