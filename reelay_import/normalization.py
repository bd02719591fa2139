#!/usr/bin/env python3
"""
Title normalization for catalog search

CRITICAL: the same normalize_title() is used for building search queries AND for
comparing catalog results against the imported title. If these differ, exact-title
matches fail silently and entries fall through to the looser strategies.
"""

import re

from reelay_import.constants import STOP_WORDS, MIN_KEYWORD_LENGTH, LIST_TITLE_SMALL_WORDS


def normalize_title(title: str) -> str:
    """
    Strip separators and punctuation that catalogs disagree on.

    Steps:
    1. Remove colons
    2. Replace hyphens and underscores with spaces
    3. Remove parentheses (content is kept)
    4. Collapse runs of spaces
    5. Trim

    Idempotent: normalize_title(normalize_title(x)) == normalize_title(x)

    Examples:
        >>> normalize_title("Alien: Resurrection")
        'Alien Resurrection'

        >>> normalize_title("Spider-Man (2002)")
        'Spider Man 2002'
    """
    title = title.replace(':', '')
    title = title.replace('-', ' ').replace('_', ' ')
    title = re.sub(r'[()]', '', title)
    title = re.sub(r' {2,}', ' ', title)
    return title.strip()


def keywordize_title(title: str) -> str:
    """
    Reduce a title to its significant words.

    Lowercases the normalized title, drops stop words and tokens of two
    characters or fewer.

    Examples:
        >>> keywordize_title("The Lord of the Rings: The Return of the King")
        'lord rings return king'
    """
    words = normalize_title(title).lower().split(' ')
    return ' '.join(
        word for word in words
        if word not in STOP_WORDS and len(word) > MIN_KEYWORD_LENGTH
    )


def titles_equal(a: str, b: str) -> bool:
    """Case-insensitive equality on either the raw or the normalized title"""
    if a.lower() == b.lower():
        return True
    return normalize_title(a).lower() == normalize_title(b).lower()


def clean_list_title(filename: str) -> str:
    """
    Turn a CSV filename stem into a readable list name

        >>> clean_list_title("best-films_of-the-decade")
        'Best Films of the Decade'
    """
    cleaned = filename.replace('-', ' ').replace('_', ' ').strip()
    words = cleaned.split()

    result = []
    for index, word in enumerate(words):
        if index == 0 or word.lower() not in LIST_TITLE_SMALL_WORDS:
            result.append(word.capitalize())
        else:
            result.append(word)
    return ' '.join(result)
