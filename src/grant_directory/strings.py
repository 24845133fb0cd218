from __future__ import annotations

import re


_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")
_SLUG_SPLIT_RE = re.compile(r"[-_\s]+")
_CATEGORY_SEP_RE = re.compile(r"[_\s]+")


def slugify(value) -> str:
    """Lowercase, hyphenated, URL-safe form of `value`.

    `&` reads as "and"; any run of characters outside [a-z0-9] collapses to a
    single hyphen. Applying it twice gives the same result as applying it once.
    """

    if not isinstance(value, str) or not value:
        return ""
    text = value.lower().replace("&", " and ")
    text = _NON_ALNUM_RE.sub("-", text)
    return text.strip("-")


def words_from_slug(value) -> str:
    if not isinstance(value, str) or not value:
        return ""
    parts = [p for p in _SLUG_SPLIT_RE.split(value) if p]
    return " ".join(p[:1].upper() + p[1:] for p in parts)


def normalize_category(value) -> str:
    if not isinstance(value, str):
        return "Other"
    trimmed = value.strip()
    if not trimmed:
        return "Other"
    sanitized = _CATEGORY_SEP_RE.sub("-", trimmed).lower()
    return words_from_slug(sanitized) or "Other"


def escape_like(value: str) -> str:
    # Backslash is the escape character for every LIKE/ILIKE pattern we build.
    return (
        value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    )

