#!/usr/bin/env python3
"""
Import orchestration: entries → catalog match → destination list

Entries are processed strictly in order, one external call in flight at a time,
with a fixed pause after each entry to stay under catalog rate limits.
Row-level problems (no match, failed search, failed write) are counted, never raised.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional

import requests

from reelay_import.constants import DEFAULT_ENTRY_DELAY
from reelay_import.extractor import ImportEntry
from reelay_import.library import (
    DiaryLookupError, DiaryLookupService, LibraryWriteService, PersistError,
)
from reelay_import.matcher import MatchResult, resolve_match
from reelay_import.strategies import build_strategies
from reelay_import.tmdb import MetadataSearchService

logger = logging.getLogger(__name__)


@dataclass
class EntryOutcome:
    """What happened to one entry during a run"""
    entry: ImportEntry
    match: MatchResult
    persisted: bool = False
    in_diary: bool = False
    error: Optional[str] = None


@dataclass
class ImportSummary:
    """Aggregate counts for one import run"""
    total: int = 0
    processed: int = 0
    matched: int = 0
    unmatched: int = 0
    persisted: int = 0
    persist_failed: int = 0
    in_diary: int = 0
    cancelled: bool = False
    outcomes: List[EntryOutcome] = field(default_factory=list)

    @property
    def unmatched_outcomes(self) -> List[EntryOutcome]:
        return [o for o in self.outcomes if not o.match.matched]

    @property
    def unmatched_titles(self) -> List[str]:
        return [o.entry.title for o in self.unmatched_outcomes]

    def as_dict(self) -> dict:
        return {
            'total': self.total,
            'processed': self.processed,
            'matched': self.matched,
            'unmatched': self.unmatched,
            'persisted': self.persisted,
            'persist_failed': self.persist_failed,
            'in_diary': self.in_diary,
            'cancelled': self.cancelled,
        }


class ListImporter:
    """Drive the per-entry pipeline: build strategies → resolve → persist"""

    def __init__(
        self,
        search_service: MetadataSearchService,
        writer: LibraryWriteService,
        entry_delay: float = DEFAULT_ENTRY_DELAY,
        sleep: Callable[[float], None] = time.sleep,
        diary_lookup: Optional[DiaryLookupService] = None,
    ):
        self.search_service = search_service
        self.writer = writer
        self.diary_lookup = diary_lookup
        self.entry_delay = entry_delay
        self._sleep = sleep

    def match_entry(self, entry: ImportEntry) -> MatchResult:
        strategies = build_strategies(entry)
        return resolve_match(entry, strategies, self.search_service.search)

    def _check_diary(self, outcome: EntryOutcome) -> None:
        """Flag matches already logged in the diary; a failed lookup counts as not logged"""
        candidate = outcome.match.candidate
        try:
            outcome.in_diary = self.diary_lookup.has_movie(candidate.tmdb_id)
        except (DiaryLookupError, requests.exceptions.RequestException) as e:
            logger.warning(f"Diary lookup failed for '{outcome.entry.title}': {e}")
            outcome.in_diary = False
            return
        if outcome.in_diary:
            logger.info(f"'{outcome.entry.title}' already in diary (TMDb ID: {candidate.tmdb_id})")

    def _persist(self, outcome: EntryOutcome, destination: str) -> None:
        candidate = outcome.match.candidate
        try:
            self.writer.add_item(
                external_id=candidate.tmdb_id,
                title=candidate.title,
                poster_url=candidate.poster_url,
                backdrop_path=candidate.backdrop_path,
                year=candidate.year,
                destination=destination,
            )
            outcome.persisted = True
        except (PersistError, requests.exceptions.RequestException) as e:
            outcome.error = str(e)
            logger.warning(f"Failed to add '{outcome.entry.title}': {e}")

    def run(
        self,
        entries: Iterable[ImportEntry],
        destination: str,
        cancel_event=None,
    ) -> ImportSummary:
        """
        Import entries into a destination list.

        Args:
            entries: Entries in list order
            destination: Destination list identifier passed to the writer
            cancel_event: Optional object with is_set() (e.g. threading.Event),
                checked before each entry; when set, the run stops and returns
                the counts so far

        Returns:
            ImportSummary with per-entry outcomes
        """
        entries = list(entries)
        summary = ImportSummary(total=len(entries))
        logger.info(f"Importing {summary.total} entries into '{destination}'")

        for index, entry in enumerate(entries, start=1):
            if cancel_event is not None and cancel_event.is_set():
                logger.info(f"Import cancelled after {summary.processed} of {summary.total} entries")
                summary.cancelled = True
                break

            logger.debug(f"[{index}/{summary.total}] {entry.title} ({entry.year})")
            outcome = EntryOutcome(entry=entry, match=self.match_entry(entry))

            if outcome.match.matched:
                summary.matched += 1
                if self.diary_lookup is not None:
                    self._check_diary(outcome)
                    if outcome.in_diary:
                        summary.in_diary += 1
                self._persist(outcome, destination)
                if outcome.persisted:
                    summary.persisted += 1
                else:
                    summary.persist_failed += 1
            else:
                summary.unmatched += 1

            summary.processed += 1
            summary.outcomes.append(outcome)

            if self.entry_delay > 0:
                self._sleep(self.entry_delay)

        logger.info(
            f"Import finished: {summary.matched} matched, {summary.unmatched} unmatched, "
            f"{summary.persisted} added, {summary.persist_failed} failed"
        )
        return summary
