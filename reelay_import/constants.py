#!/usr/bin/env python3
"""
Shared constants for the list import pipeline

Single source of truth for header key lists, stop words, date formats and
match tolerances. DO NOT duplicate these lists in other modules - import from here instead.
"""

# First-line marker of a Letterboxd list export (metadata preamble precedes the real header)
LETTERBOXD_EXPORT_MARKER = 'Letterboxd list export'

# Header line that opens the film section of a Letterboxd list export
EXPORT_HEADER_PREFIX = 'position,'

# Candidate header keys per field, in priority order.
# Real-world exports disagree on naming ("Name" vs "Title" vs "movie_title").
TITLE_KEYS = ['name', 'title', 'movie', 'film', 'movie_name', 'movie_title']
POSITION_KEYS = ['position', 'pos', 'rank', 'order', '#']
YEAR_KEYS = ['year', 'release_year', 'date', 'release_date']
URL_KEYS = ['url', 'link', 'imdb', 'tmdb', 'letterboxd', 'web_url']
DESCRIPTION_KEYS = ['description', 'desc', 'notes', 'comment', 'review']
TAG_KEYS = ['tags', 'genres', 'categories', 'labels']
DATE_ADDED_KEYS = ['date', 'date_added', 'watch_date', 'created_at', 'added_on']

# Tried in order, first successful parse wins.
# The trailing ISO pattern is kept as the last-resort fallback.
DATE_FORMATS = [
    '%Y-%m-%d',
    '%d-%b-%Y',
    '%m/%d/%Y',
    '%Y-%m-%d',
]

# Stop words dropped when reducing a title to keywords
STOP_WORDS = frozenset([
    'the', 'a', 'an', 'and', 'or', 'but',
    'in', 'on', 'at', 'to', 'for', 'of', 'with', 'by',
])

# Keyword tokens of this length or shorter are dropped
MIN_KEYWORD_LENGTH = 2

# Year tolerances: looser title agreement demands tighter year agreement
EXACT_TITLE_YEAR_TOLERANCE = 1
PARTIAL_TITLE_YEAR_TOLERANCE = 2
EXACT_QUERY_YEAR_TOLERANCE = 3

# Words kept lowercase when building a list name from a filename (unless first)
LIST_TITLE_SMALL_WORDS = frozenset([
    'the', 'a', 'an', 'and', 'but', 'or', 'for', 'nor', 'on', 'at',
    'to', 'from', 'by', 'of', 'in', 'with', 'as',
])

# Pause between entries to stay under catalog rate limits (seconds)
DEFAULT_ENTRY_DELAY = 0.2

TMDB_BASE_URL = 'https://api.themoviedb.org/3'
TMDB_POSTER_BASE_URL = 'https://image.tmdb.org/t/p/w500'
