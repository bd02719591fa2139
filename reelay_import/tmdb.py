#!/usr/bin/env python3
"""
TMDb search client with persistent JSON caching
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Dict, List, Protocol

import requests

from reelay_import.constants import TMDB_BASE_URL, TMDB_POSTER_BASE_URL

logger = logging.getLogger(__name__)


class SearchError(Exception):
    """Transient catalog failure (timeout, HTTP error, connection reset)"""


@dataclass(frozen=True)
class CatalogCandidate:
    """One movie search result as returned by the catalog"""
    tmdb_id: int
    title: str
    release_date: Optional[str] = None
    popularity: Optional[float] = None
    poster_path: Optional[str] = None
    backdrop_path: Optional[str] = None
    original_title: Optional[str] = None

    @property
    def year(self) -> Optional[int]:
        """Year from a YYYY-MM-DD (or YYYY-prefixed) release date"""
        if not self.release_date or len(self.release_date) < 4:
            return None
        try:
            return int(self.release_date[:4])
        except ValueError:
            return None

    @property
    def poster_url(self) -> Optional[str]:
        if not self.poster_path:
            return None
        return f"{TMDB_POSTER_BASE_URL}{self.poster_path}"

    @classmethod
    def from_api(cls, data: Dict) -> 'CatalogCandidate':
        return cls(
            tmdb_id=data['id'],
            title=data.get('title') or data.get('original_title') or '',
            release_date=data.get('release_date') or None,
            popularity=data.get('popularity'),
            poster_path=data.get('poster_path'),
            backdrop_path=data.get('backdrop_path'),
            original_title=data.get('original_title'),
        )


class MetadataSearchService(Protocol):
    """Catalog search collaborator used by the matcher"""

    def search(self, query: str) -> List[CatalogCandidate]:
        """Return candidates for a free-text query; [] when nothing matches. Raises SearchError."""
        ...


class TMDbClient:
    """Interface to The Movie Database search API with persistent caching"""

    def __init__(self, api_key: str, cache_path: Optional[Path] = None, timeout: float = 10):
        self.api_key = api_key
        self.base_url = TMDB_BASE_URL
        self.cache_path = cache_path
        self.timeout = timeout
        self.session = requests.Session()
        self.cache = self._load_cache()
        self.cache_hits = 0
        self.cache_misses = 0

    def _load_cache(self) -> Dict:
        """Load cache from JSON file"""
        if self.cache_path and self.cache_path.exists():
            try:
                with open(self.cache_path, 'r', encoding='utf-8') as f:
                    cache = json.load(f)
                logger.info(f"Loaded TMDb cache with {len(cache)} entries")
                return cache
            except (OSError, ValueError) as e:
                logger.warning(f"Could not load cache: {e}. Starting fresh.")
                return {}
        return {}

    def _save_cache(self):
        """Save cache to JSON file"""
        if not self.cache_path:
            return
        try:
            self.cache_path.parent.mkdir(parents=True, exist_ok=True)

            with open(self.cache_path, 'w', encoding='utf-8') as f:
                json.dump(self.cache, f, indent=2, ensure_ascii=False)

            logger.debug(f"Saved TMDb cache with {len(self.cache)} entries")
        except OSError as e:
            logger.error(f"Could not save cache: {e}")

    def search(self, query: str) -> List[CatalogCandidate]:
        """
        Search movies by free-text query (with caching)

        Returns [] for a blank query or zero results.
        Raises SearchError on timeouts, HTTP errors and connection failures.
        Failed requests are never cached.
        """
        query = query.strip()
        if not query:
            return []

        if query in self.cache:
            self.cache_hits += 1
            logger.debug(f"Cache hit: '{query}'")
            return [CatalogCandidate.from_api(item) for item in self.cache[query]]

        self.cache_misses += 1
        logger.debug(f"Cache miss: '{query}' - querying TMDb")

        results = self._query_api(query)

        self.cache[query] = results
        self._save_cache()

        return [CatalogCandidate.from_api(item) for item in results]

    def _query_api(self, query: str, page: int = 1) -> List[Dict]:
        """Make actual search request to TMDb"""
        params = {
            'api_key': self.api_key,
            'query': query,
            'include_adult': False,
            'page': page,
        }

        try:
            response = self.session.get(
                f"{self.base_url}/search/movie",
                params=params,
                timeout=self.timeout
            )
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.Timeout as e:
            raise SearchError(f"TMDb API timeout for '{query}'") from e
        except requests.exceptions.HTTPError as e:
            raise SearchError(f"TMDb API HTTP error for '{query}': {e}") from e
        except requests.exceptions.RequestException as e:
            raise SearchError(f"TMDb API error for '{query}': {e}") from e
        except ValueError as e:
            raise SearchError(f"TMDb API returned invalid JSON for '{query}'") from e

        results = [
            item for item in data.get('results') or []
            if item.get('id') is not None and (item.get('title') or item.get('original_title'))
        ]
        logger.debug(f"TMDb: '{query}' → {len(results)} results")
        return results

    def get_cache_stats(self) -> Dict:
        """Get cache performance statistics"""
        total = self.cache_hits + self.cache_misses
        hit_rate = (self.cache_hits / total * 100) if total > 0 else 0

        return {
            'hits': self.cache_hits,
            'misses': self.cache_misses,
            'total_queries': total,
            'hit_rate': hit_rate,
            'cache_size': len(self.cache)
        }
