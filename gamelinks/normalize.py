import re

_NON_WORD = re.compile(r"\W+")

# Tried in this order; the first one present in the name wins.
FUZZY_SEPARATORS = (":", "-", " ")


class NoSeparator(ValueError):
    """The name has none of the fuzzy separators."""


def normalize_name(name: str) -> str:
    return name.strip()


def probe_slug(name: str) -> str:
    """Guess the store page slug: lowercase, non-word runs become one hyphen.

    >>> probe_slug("My Game!")
    'my-game-'
    """
    return _NON_WORD.sub("-", name.lower())


def fuzzy_prefix(name: str) -> str:
    """Cut the name before the first separator (":", then "-", then space)."""
    for sep in FUZZY_SEPARATORS:
        idx = name.find(sep)
        if idx > -1:
            return name[:idx].strip()
    raise NoSeparator(f"{name}: no separator found in {''.join(FUZZY_SEPARATORS)!r}")


def is_substring_either(a: str, b: str) -> bool:
    """True if either string contains the other."""
    if len(a) < len(b):
        a, b = b, a
    return b in a
