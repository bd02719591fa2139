#!/usr/bin/env python3
"""
Test suite for import_list.py — unmatched report and dry-run CLI flow
"""

import pytest
import sys
import csv
import tempfile
from pathlib import Path
from unittest.mock import MagicMock, patch

sys.path.insert(0, str(Path(__file__).parent.parent))

import import_list
from reelay_import.extractor import ImportEntry
from reelay_import.importer import EntryOutcome, ImportSummary
from reelay_import.matcher import MatchResult
from reelay_import.tmdb import CatalogCandidate


MATRIX = CatalogCandidate(tmdb_id=603, title='The Matrix', release_date='1999-03-31', popularity=80)


def read_rows(path):
    with open(path, newline='', encoding='utf-8') as f:
        return list(csv.DictReader(f))


class TestUnmatchedReport:

    def test_only_unmatched_entries_written(self):
        found = ImportEntry(title='The Matrix', position=1, row_number=2, year=1999)
        missing = ImportEntry(title='Obscure Short', position=2, row_number=3,
                              url='https://letterboxd.com/film/obscure-short/')
        summary = ImportSummary(total=2, processed=2, matched=1, unmatched=1, outcomes=[
            EntryOutcome(found, MatchResult(candidate=MATRIX, queries_tried=1)),
            EntryOutcome(missing, MatchResult(queries_tried=3, failed_queries=['Obscure Short'])),
        ])

        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / 'unmatched.csv'
            count = import_list.write_unmatched_report(summary, path)
            rows = read_rows(path)

        assert count == 1
        assert rows == [{
            'position': '2',
            'title': 'Obscure Short',
            'year': '',
            'url': 'https://letterboxd.com/film/obscure-short/',
            'queries_tried': '3',
            'failed_queries': 'Obscure Short',
        }]


class TestMain:

    @pytest.fixture
    def workspace(self, monkeypatch):
        for name in ('TMDB_API_KEY', 'SUPABASE_URL', 'SUPABASE_KEY', 'REELAY_USER_ID'):
            monkeypatch.delenv(name, raising=False)
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            (root / 'config.yaml').write_text(
                f"tmdb_api_key: test-key\ntmdb_cache_path: {root / 'cache.json'}\n",
                encoding='utf-8'
            )
            (root / 'my_watchlist.csv').write_text(
                "Title,Year\nThe Matrix,1999\nObscure Short,2019\n",
                encoding='utf-8'
            )
            yield root

    def run_main(self, root, *extra, diary=None, list_writer=None):
        argv = [
            'import_list.py', str(root / 'my_watchlist.csv'),
            '--config', str(root / 'config.yaml'),
            '--output', str(root / 'out'),
            '--delay', '0',
            *extra,
        ]
        tmdb = MagicMock()
        tmdb.search.side_effect = lambda query: [MATRIX] if query.startswith('The Matrix') else []
        tmdb.get_cache_stats.return_value = {'hits': 0, 'misses': 2, 'total': 2, 'hit_rate': 0.0}

        with patch.object(sys, 'argv', argv), \
                patch('import_list.TMDbClient', return_value=tmdb), \
                patch('import_list.SupabaseDiaryLookup', return_value=diary or MagicMock()), \
                patch('import_list.SupabaseListWriter', return_value=list_writer or MagicMock()), \
                patch('import_list.signal.signal'):
            return import_list.main()

    def test_dry_run_writes_manifest_and_unmatched(self, workspace, capsys):
        assert self.run_main(workspace) == 0

        manifest = read_rows(workspace / 'out' / 'import_manifest.csv')
        assert [row['tmdb_id'] for row in manifest] == ['603']
        assert manifest[0]['destination'] == 'My Watchlist'

        unmatched = read_rows(workspace / 'out' / 'unmatched.csv')
        assert [row['title'] for row in unmatched] == ['Obscure Short']

        out = capsys.readouterr().out
        assert 'DRY RUN SUMMARY' in out

    def test_missing_csv_file(self, workspace):
        (workspace / 'my_watchlist.csv').unlink()
        assert self.run_main(workspace) == 1

    def test_execute_without_supabase_credentials(self, workspace):
        assert self.run_main(workspace, '--execute') == 1

    def test_header_only_csv(self, workspace):
        (workspace / 'my_watchlist.csv').write_text("Title,Year\n", encoding='utf-8')
        assert self.run_main(workspace) == 1

    def test_execute_without_owner_creates_nothing(self, workspace, monkeypatch):
        monkeypatch.setenv('SUPABASE_URL', 'https://example.supabase.co')
        monkeypatch.setenv('SUPABASE_KEY', 'service-key')
        list_writer = MagicMock()

        assert self.run_main(workspace, '--execute', list_writer=list_writer) == 1
        list_writer.create_list.assert_not_called()

    def test_execute_creates_owned_list(self, workspace, monkeypatch, capsys):
        monkeypatch.setenv('SUPABASE_URL', 'https://example.supabase.co')
        monkeypatch.setenv('SUPABASE_KEY', 'service-key')
        monkeypatch.setenv('REELAY_USER_ID', 'user-1')
        list_writer = MagicMock()
        list_writer.create_list.return_value = 'list-1'

        assert self.run_main(workspace, '--execute', '--list-name', 'Noir', list_writer=list_writer) == 0

        list_writer.create_list.assert_called_once_with('Noir', None)
        assert list_writer.add_item.call_args[1]['destination'] == 'list-1'
        assert 'IMPORT SUMMARY' in capsys.readouterr().out

    def test_diary_count_printed(self, workspace, monkeypatch, capsys):
        monkeypatch.setenv('SUPABASE_URL', 'https://example.supabase.co')
        monkeypatch.setenv('SUPABASE_KEY', 'service-key')
        diary = MagicMock()
        diary.has_movie.return_value = True

        assert self.run_main(workspace, diary=diary) == 0

        diary.has_movie.assert_called_once_with(603)
        assert 'Already in diary:        1' in capsys.readouterr().out
