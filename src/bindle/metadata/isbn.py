# ABOUTME: ISBN detection and normalization for identifiers found in EPUB package documents.
# ABOUTME: Finds hyphen/space/dot separated forms inside labels and urn:isbn: prefixes; no checksums.

import re

_URN_PREFIX = "urn:isbn:"
_SEPARATOR_RE = re.compile(r"[^0-9A-Za-z]")

# Separators may sit between any two digits.
_ISBN13_RE = re.compile(r"97[89](?:[-\s.]?\d){10}")
_ISBN10_RE = re.compile(r"\d(?:[-\s.]?\d){8}[-\s.]?[\dXx]")
# An ISBN embedded in text, such as "ISBN 978-0-12-345678-9", bounded by non-alphanumerics.
_ISBN_IN_TEXT_RE = re.compile(
    rf"(?<![0-9A-Za-z])(?:{_ISBN13_RE.pattern}|{_ISBN10_RE.pattern})(?![0-9A-Za-z])"
)

_ISBN_SCHEMES = frozenset({"isbn", "isbn13", "isbn-13", "isbn10", "isbn-10"})


def _strip_urn(value: str) -> str:
    value = value.strip()
    if value.lower().startswith(_URN_PREFIX):
        return value[len(_URN_PREFIX):].strip()
    return value


def normalize_isbn(value: str) -> str:
    """Normalize an ISBN to its bare digit string.

    Removes a case-insensitive ``urn:isbn:`` prefix and every non-alphanumeric
    separator, then uppercases so an ISBN-10 ``x`` checksum becomes ``X``.
    Already-normalized input is returned unchanged.
    """
    return _SEPARATOR_RE.sub("", _strip_urn(value)).upper()


def extract_isbn(value: str) -> str:
    """Return the first ISBN-10 or ISBN-13 found in the value, normalized.

    The ISBN may be surrounded by labels or punctuation but not run into
    other letters or digits. Returns an empty string when none is found.
    """
    match = _ISBN_IN_TEXT_RE.search(_strip_urn(value))
    return normalize_isbn(match.group()) if match else ""


def looks_like_isbn(value: str) -> bool:
    """Whether the value contains something with ISBN-10 or ISBN-13 shape."""
    return bool(extract_isbn(value))


def is_isbn_scheme(scheme: str | None) -> bool:
    return (scheme or "").strip().lower() in _ISBN_SCHEMES


def find_isbn(identifiers: list[tuple[str, str | None]]) -> str:
    """Pick the ISBN out of a list of (value, scheme) identifier pairs.

    An identifier with an ISBN scheme or a ``urn:isbn:`` prefix wins outright.
    Otherwise the first value containing an ISBN is used, so labelled
    values such as ``ISBN 978-0-12-345678-9`` still count.

    Returns:
        The normalized ISBN, or an empty string when nothing matches.
    """
    shaped = ""
    for value, scheme in identifiers:
        value = value.strip()
        if not value:
            continue
        if is_isbn_scheme(scheme) or value.lower().startswith(_URN_PREFIX):
            return extract_isbn(value) or normalize_isbn(value)
        if not shaped:
            shaped = extract_isbn(value)
    return shaped
