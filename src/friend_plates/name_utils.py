from __future__ import annotations


def normalize_name(name: str) -> str:
    """Trim surrounding whitespace; case is preserved for display."""
    if not name:
        return ""
    return str(name).strip()


def name_key(name: str) -> str:
    """Comparison key for case-insensitive ordinal equality (``str.lower``, not ``casefold``)."""
    return normalize_name(name).lower()


def names_equal(first: str, second: str) -> bool:
    """Return True when two names are the same ignoring case."""
    left = name_key(first)
    if not left:
        return False
    return left == name_key(second)


def looks_like_character_name(text: str) -> str:
    """Return a "First Last" name when the text looks like one, else "".

    Only the first two whitespace-separated tokens are considered. Each must
    be at least two characters long and start with an upper-case letter.
    Anything after the second token (titles, status suffixes) is ignored.
    """
    if not text:
        return ""
    tokens = str(text).split()
    if len(tokens) < 2:
        return ""
    first, last = tokens[0], tokens[1]
    for token in (first, last):
        if len(token) < 2 or not token[0].isupper():
            return ""
    return f"{first} {last}"
