"""
Text helpers shared by the contact reconciler.

capitalize_words() lower-cases a string and upper-cases the first letter of
every word. Letters, digits, underscores and apostrophes all belong to a
word, so "o'neil" becomes "O'neil", "jon_io" stays one word ("Jon_io"), and
a letter after a digit is no word start ("apt 3b" becomes "Apt 3b").
"""

import re

_WORD_START_RE = re.compile(r"(^|[^\w'])([^\W\d_])")

# A character, a dot, then two letters: looks like a domain ("jon.io")
NAME_URL_RE = re.compile(r'(.)\.([a-zA-Z]{2})')


def capitalize_words(value: str) -> str:
    """Capitalize each word, lower-casing the rest."""
    return _WORD_START_RE.sub(
        lambda m: m.group(1) + m.group(2).upper(),
        value.lower(),
    )


def non_blank(value: str | None) -> str | None:
    """Return value unless it is None or whitespace only."""
    if value is None or not value.strip():
        return None
    return value


def defuse_url_like(value: str) -> str:
    """Replace the dot in domain-like fragments with an underscore ("Jon.io" -> "Jon_io")."""
    return NAME_URL_RE.sub(r'\1_\2', value)
