#!/usr/bin/env python3
"""
Destination writers for matched entries, plus the diary lookup

Two implementations of the same add_item() interface:
  - SupabaseListWriter: inserts rows into the diary backend's lists/list_items tables
  - ManifestWriter: dry-run, records what would be added and writes import_manifest.csv

Both refuse to add the same TMDb ID to a destination twice (PersistError), so
two CSV rows resolving to one film produce one list item.

SupabaseDiaryLookup answers "is this film already logged in the diary?" for the
run summary. It never writes.
"""

import csv
import logging
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Set

import requests

logger = logging.getLogger(__name__)


class SupabaseError(Exception):
    """A Supabase REST call failed"""


class PersistError(SupabaseError):
    """Writing a matched entry to the destination failed"""


class DiaryLookupError(SupabaseError):
    """Reading the diary failed"""


class LibraryWriteService(Protocol):
    """Destination collaborator used by the importer"""

    def add_item(
        self,
        external_id: int,
        title: str,
        poster_url: Optional[str],
        backdrop_path: Optional[str],
        year: Optional[int],
        destination: str,
    ) -> None:
        """Add one item to a destination list. Raises PersistError."""
        ...


class DiaryLookupService(Protocol):
    """Read-only diary collaborator used by the importer"""

    def has_movie(self, tmdb_id: int) -> bool:
        """True when the diary already holds an entry for this TMDb ID. Raises DiaryLookupError."""
        ...


class SupabaseRestClient:
    """Shared PostgREST session: auth headers, timeouts, error mapping"""

    def __init__(self, base_url: str, api_key: str, timeout: float = 10):
        self.rest_url = f"{base_url.rstrip('/')}/rest/v1"
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({
            'apikey': api_key,
            'Authorization': f"Bearer {api_key}",
            'Content-Type': 'application/json',
            'Prefer': 'return=representation',
        })

    def _request(self, method: str, table: str, error_cls=SupabaseError, **kwargs):
        try:
            response = self.session.request(
                method,
                f"{self.rest_url}/{table}",
                timeout=self.timeout,
                **kwargs
            )
            response.raise_for_status()
            return response.json()
        except requests.exceptions.RequestException as e:
            raise error_cls(f"Supabase {method} on '{table}' failed: {e}") from e
        except ValueError as e:
            raise error_cls(f"Supabase returned invalid JSON for '{table}'") from e

    def _select(self, table: str, params: Dict, error_cls=SupabaseError) -> List[Dict]:
        rows = self._request('GET', table, error_cls, params=params)
        if not isinstance(rows, list):
            raise error_cls(f"Supabase select on '{table}' did not return rows")
        return rows

    def _insert(self, table: str, payload: Dict) -> Dict:
        rows = self._request('POST', table, PersistError, json=payload)
        if isinstance(rows, list):
            if not rows:
                raise PersistError(f"Supabase insert into '{table}' returned no rows")
            return rows[0]
        return rows


class SupabaseListWriter(SupabaseRestClient):
    """Write list items through Supabase's PostgREST interface"""

    def __init__(self, base_url: str, api_key: str, user_id: str, timeout: float = 10):
        super().__init__(base_url, api_key, timeout)
        self.user_id = user_id
        # destination list id → last sort_order used / TMDb IDs already in the list
        self._sort_orders: Dict[str, int] = {}
        self._existing: Dict[str, Set[int]] = {}

    def create_list(self, name: str, description: Optional[str] = None) -> str:
        """Create a destination list owned by user_id and return its id"""
        row = self._insert('lists', {
            'name': name,
            'description': description,
            'user_id': self.user_id,
            'ranked': False,
        })
        list_id = str(row['id'])
        self._sort_orders[list_id] = 0
        self._existing[list_id] = set()
        logger.info(f"Created list '{name}' ({list_id})")
        return list_id

    def _load_existing(self, destination: str):
        """Read tmdb_id/sort_order of a list this run did not create"""
        rows = self._select('list_items', {
            'select': 'tmdb_id,sort_order',
            'list_id': f"eq.{destination}",
        }, PersistError)
        self._existing[destination] = {row['tmdb_id'] for row in rows}
        self._sort_orders[destination] = max((row.get('sort_order') or 0 for row in rows), default=0)
        logger.debug(f"List {destination} already holds {len(rows)} items")

    def add_item(
        self,
        external_id: int,
        title: str,
        poster_url: Optional[str],
        backdrop_path: Optional[str],
        year: Optional[int],
        destination: str,
    ) -> None:
        if destination not in self._existing:
            self._load_existing(destination)

        if external_id in self._existing[destination]:
            raise PersistError(f"'{title}' (TMDb ID: {external_id}) already in list")

        sort_order = self._sort_orders.get(destination, 0) + 1
        self._insert('list_items', {
            'list_id': destination,
            'tmdb_id': external_id,
            'movie_title': title,
            'movie_poster_url': poster_url,
            'movie_backdrop_path': backdrop_path,
            'movie_year': year,
            'sort_order': sort_order,
        })
        self._sort_orders[destination] = sort_order
        self._existing[destination].add(external_id)
        logger.debug(f"Added '{title}' (TMDb ID: {external_id}) to list {destination}")


class SupabaseDiaryLookup(SupabaseRestClient):
    """Check the diary table for films already logged"""

    def has_movie(self, tmdb_id: int) -> bool:
        rows = self._select('diary', {
            'select': 'id',
            'tmdb_id': f"eq.{tmdb_id}",
            'limit': 1,
        }, DiaryLookupError)
        return bool(rows)


class ManifestWriter:
    """Dry-run destination: collect items in memory and write them as CSV"""

    FIELDNAMES = ['destination', 'tmdb_id', 'title', 'year', 'poster_url', 'backdrop_path']

    def __init__(self):
        self.items: List[Dict] = []
        self._existing: Dict[str, Set[int]] = {}

    def add_item(
        self,
        external_id: int,
        title: str,
        poster_url: Optional[str],
        backdrop_path: Optional[str],
        year: Optional[int],
        destination: str,
    ) -> None:
        added = self._existing.setdefault(destination, set())
        if external_id in added:
            raise PersistError(f"'{title}' (TMDb ID: {external_id}) already in list")
        added.add(external_id)

        self.items.append({
            'destination': destination,
            'tmdb_id': external_id,
            'title': title,
            'year': year,
            'poster_url': poster_url,
            'backdrop_path': backdrop_path,
        })

    def write(self, output_path: Path) -> None:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, 'w', newline='', encoding='utf-8') as f:
            writer = csv.DictWriter(f, fieldnames=self.FIELDNAMES)
            writer.writeheader()
            for item in self.items:
                writer.writerow(item)
        logger.info(f"Wrote {len(self.items)} items to {output_path}")
