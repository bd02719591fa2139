#!/usr/bin/env python3
"""
Test suite for reelay_import/library.py — Supabase list writer, diary lookup, dry-run manifest writer
"""

import pytest
import sys
import csv
import tempfile
from pathlib import Path
from unittest.mock import MagicMock

import requests

sys.path.insert(0, str(Path(__file__).parent.parent))

from reelay_import.library import (
    SupabaseListWriter, SupabaseDiaryLookup, ManifestWriter,
    PersistError, DiaryLookupError,
)


def mock_response(rows):
    response = MagicMock()
    response.json.return_value = rows
    return response


def calls_for(session, method):
    return [c for c in session.request.call_args_list if c[0][0] == method]


@pytest.fixture
def writer():
    w = SupabaseListWriter('https://example.supabase.co/', 'service-key', user_id='user-1')
    w.session = MagicMock()
    return w


@pytest.fixture
def new_list(writer):
    """Writer with a list created in this run (no existing items to read)"""
    writer.session.request.return_value = mock_response([{'id': 'list-1'}])
    writer.create_list('Noir')
    writer.session.request.reset_mock()
    writer.session.request.return_value = mock_response([{'id': 1}])
    return writer


class TestSupabaseListWriter:

    def test_auth_headers(self):
        w = SupabaseListWriter('https://example.supabase.co', 'service-key', user_id='user-1')
        assert w.session.headers['apikey'] == 'service-key'
        assert w.session.headers['Authorization'] == 'Bearer service-key'

    def test_create_list_returns_id_and_sends_owner(self, writer):
        writer.session.request.return_value = mock_response([{'id': 'abc-123', 'name': 'Noir'}])

        list_id = writer.create_list('Noir', 'Black and white')

        assert list_id == 'abc-123'
        args, kwargs = writer.session.request.call_args
        assert args == ('POST', 'https://example.supabase.co/rest/v1/lists')
        assert kwargs['json'] == {
            'name': 'Noir',
            'description': 'Black and white',
            'user_id': 'user-1',
            'ranked': False,
        }
        assert kwargs['timeout'] == 10

    def test_add_item_payload_and_sort_order(self, new_list):
        new_list.add_item(603, 'The Matrix', 'https://image.tmdb.org/t/p/w500/m.jpg', '/bg.jpg', 1999, 'list-1')
        new_list.add_item(604, 'The Matrix Reloaded', None, None, 2003, 'list-1')

        posts = calls_for(new_list.session, 'POST')
        assert len(posts) == 2
        assert posts[0][0][1] == 'https://example.supabase.co/rest/v1/list_items'
        assert posts[0][1]['json'] == {
            'list_id': 'list-1',
            'tmdb_id': 603,
            'movie_title': 'The Matrix',
            'movie_poster_url': 'https://image.tmdb.org/t/p/w500/m.jpg',
            'movie_backdrop_path': '/bg.jpg',
            'movie_year': 1999,
            'sort_order': 1,
        }
        assert posts[1][1]['json']['sort_order'] == 2
        assert calls_for(new_list.session, 'GET') == []

    def test_same_film_twice_rejected(self, new_list):
        new_list.add_item(438631, 'Dune', None, None, 2021, 'list-1')

        with pytest.raises(PersistError, match="already in list"):
            new_list.add_item(438631, 'Dune', None, None, 2021, 'list-1')

        assert len(calls_for(new_list.session, 'POST')) == 1

    def test_existing_list_items_read_first(self, writer):
        writer.session.request.side_effect = [
            mock_response([{'tmdb_id': 603, 'sort_order': 1}, {'tmdb_id': 604, 'sort_order': 4}]),
            mock_response([{'id': 9}]),
        ]

        with pytest.raises(PersistError, match="already in list"):
            writer.add_item(603, 'The Matrix', None, None, 1999, 'old-list')
        writer.add_item(605, 'The Matrix Revolutions', None, None, 2003, 'old-list')

        get, post = writer.session.request.call_args_list
        assert get[0] == ('GET', 'https://example.supabase.co/rest/v1/list_items')
        assert get[1]['params']['list_id'] == 'eq.old-list'
        assert post[1]['json']['sort_order'] == 5

    def test_reading_existing_items_fails(self, writer):
        writer.session.request.side_effect = requests.exceptions.ConnectionError('reset')
        with pytest.raises(PersistError):
            writer.add_item(603, 'The Matrix', None, None, 1999, 'old-list')

    def test_http_error_raises_persist_error(self, new_list):
        response = mock_response([])
        response.raise_for_status.side_effect = requests.exceptions.HTTPError('409 Conflict')
        new_list.session.request.return_value = response

        with pytest.raises(PersistError):
            new_list.add_item(603, 'The Matrix', None, None, 1999, 'list-1')

    def test_failed_insert_does_not_advance_sort_order(self, new_list):
        new_list.session.request.side_effect = [
            requests.exceptions.ConnectionError('reset'),
            mock_response([{'id': 1}]),
        ]

        with pytest.raises(PersistError):
            new_list.add_item(603, 'The Matrix', None, None, 1999, 'list-1')
        new_list.add_item(603, 'The Matrix', None, None, 1999, 'list-1')

        assert new_list.session.request.call_args[1]['json']['sort_order'] == 1

    def test_empty_insert_response_is_failure(self, writer):
        writer.session.request.return_value = mock_response([])
        with pytest.raises(PersistError):
            writer.create_list('Noir')


class TestSupabaseDiaryLookup:

    @pytest.fixture
    def lookup(self):
        diary = SupabaseDiaryLookup('https://example.supabase.co', 'service-key')
        diary.session = MagicMock()
        return diary

    def test_found(self, lookup):
        lookup.session.request.return_value = mock_response([{'id': 42}])

        assert lookup.has_movie(603)

        args, kwargs = lookup.session.request.call_args
        assert args == ('GET', 'https://example.supabase.co/rest/v1/diary')
        assert kwargs['params']['tmdb_id'] == 'eq.603'

    def test_not_found(self, lookup):
        lookup.session.request.return_value = mock_response([])
        assert not lookup.has_movie(603)

    def test_failure_raises_lookup_error(self, lookup):
        lookup.session.request.side_effect = requests.exceptions.Timeout()
        with pytest.raises(DiaryLookupError):
            lookup.has_movie(603)


class TestManifestWriter:

    def test_records_and_writes_items(self):
        manifest = ManifestWriter()
        manifest.add_item(603, 'The Matrix', None, '/bg.jpg', 1999, 'Favourites')

        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / 'out' / 'import_manifest.csv'
            manifest.write(path)

            with open(path, newline='', encoding='utf-8') as f:
                rows = list(csv.DictReader(f))

        assert rows == [{
            'destination': 'Favourites',
            'tmdb_id': '603',
            'title': 'The Matrix',
            'year': '1999',
            'poster_url': '',
            'backdrop_path': '/bg.jpg',
        }]

    def test_same_film_twice_rejected(self):
        manifest = ManifestWriter()
        manifest.add_item(438631, 'Dune', None, None, 2021, 'Favourites')

        with pytest.raises(PersistError, match="already in list"):
            manifest.add_item(438631, 'Dune', None, None, 2021, 'Favourites')
        manifest.add_item(438631, 'Dune', None, None, 2021, 'Sci-Fi')

        assert len(manifest.items) == 2
