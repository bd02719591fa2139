#!/usr/bin/env python3
"""
Configuration loading (YAML file + environment overrides)

Example config_external.yaml:
  tmdb_api_key: "..."
  tmdb_cache_path: output/tmdb_search_cache.json
  entry_delay: 0.2
  supabase_url: "https://<project>.supabase.co"
  supabase_key: "..."
  user_id: "<owner uuid>"
  output_dir: output
"""

import os
from pathlib import Path

import yaml

from reelay_import.constants import DEFAULT_ENTRY_DELAY

DEFAULT_CONFIG = {
    'tmdb_api_key': None,
    'tmdb_cache_path': 'output/tmdb_search_cache.json',
    'entry_delay': DEFAULT_ENTRY_DELAY,
    'supabase_url': None,
    'supabase_key': None,
    'user_id': None,
    'output_dir': 'output',
}

# Environment variables win over file values when set
ENV_OVERRIDES = {
    'TMDB_API_KEY': 'tmdb_api_key',
    'SUPABASE_URL': 'supabase_url',
    'SUPABASE_KEY': 'supabase_key',
    'REELAY_USER_ID': 'user_id',
}


def load_config(config_path: Path) -> dict:
    """Load configuration from YAML file, filling defaults and applying env overrides"""
    config = dict(DEFAULT_CONFIG)

    if config_path is not None and config_path.exists():
        with open(config_path, 'r') as f:
            loaded = yaml.safe_load(f) or {}
        if not isinstance(loaded, dict):
            raise ValueError(f"Config file must contain a mapping: {config_path}")
        config.update({k: v for k, v in loaded.items() if v is not None})

    for env_name, key in ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value:
            config[key] = value

    config['entry_delay'] = float(config['entry_delay'])
    return config
