"""
Ordered-set operations over pipe-delimited client fields.

Multi-valued sheet columns (goals, session history, medical history) are
stored as a single string such as ``"Anxiety|Sleep hygiene|Boundaries"``.
Every function here is pure and total: malformed input degrades to an empty
or unchanged result instead of raising. The separator is never escaped, so an
item that itself contains ``|`` is split in two when it is written back.
"""

import re
from collections import Counter
from typing import Any, Callable, Iterable, List

from models.validation import ListValidation

SEPARATOR = "|"

_LINE_BREAKS = re.compile(r"[\n\r\t]")
_WHITESPACE_RUN = re.compile(r"\s+")


def _as_text(text: Any) -> str:
    return text if isinstance(text, str) else ""


def _is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def parse(text: Any) -> List[str]:
    """Split on the separator, trim each piece and drop empty pieces."""
    if not text or not isinstance(text, str):
        return []
    items = (item.strip() for item in text.split(SEPARATOR))
    return [item for item in items if item]


def serialize(items: Any) -> str:
    """Join items in the given order; items are trimmed and blanks dropped."""
    if not _is_sequence(items):
        return ""
    cleaned = []
    for item in items:
        if item is None:
            continue
        value = str(item).strip()
        if value:
            cleaned.append(value)
    return SEPARATOR.join(cleaned)


def count(text: Any) -> int:
    return len(parse(text))


def contains(text: Any, item: Any) -> bool:
    if not text or not item or not isinstance(item, str):
        return False
    return item.strip() in parse(text)


def add(text: Any, item: Any, allow_duplicates: bool = False) -> str:
    """Append ``item``; a duplicate returns the original text untouched."""
    if not isinstance(item, str) or not item.strip():
        return _as_text(text)

    items = parse(text)
    new_item = item.strip()

    if not allow_duplicates and new_item in items:
        return _as_text(text)

    items.append(new_item)
    return serialize(items)


def remove(text: Any, item: Any) -> str:
    """Drop every entry equal to ``item``. Idempotent."""
    if not text or not isinstance(item, str) or not item.strip():
        return _as_text(text)

    target = item.strip()
    return serialize([entry for entry in parse(text) if entry != target])


def update(text: Any, old_item: Any, new_item: Any) -> str:
    """Replace every entry equal to ``old_item`` with ``new_item``."""
    if not text or not isinstance(old_item, str) or not isinstance(new_item, str):
        return _as_text(text)

    old_value = old_item.strip()
    new_value = new_item.strip()
    if not old_value or not new_value:
        return _as_text(text)

    items = parse(text)
    if old_value not in items:
        return _as_text(text)

    return serialize([new_value if entry == old_value else entry for entry in items])


def reorder(text: Any, new_order: Any) -> str:
    """
    Reorder entries following ``new_order``.

    Entries named in ``new_order`` come first, in that order; entries it does
    not mention follow in their original relative order. Multiplicities are
    counted so the output is always a permutation of the current entries.
    """
    if not text or not _is_sequence(new_order):
        return _as_text(text)

    current = parse(text)
    remaining = Counter(current)
    ordered: List[str] = []

    for entry in new_order:
        if not isinstance(entry, str):
            continue
        key = entry.strip()
        if remaining[key] > 0:
            ordered.append(key)
            remaining[key] -= 1

    for entry in current:
        if remaining[entry] > 0:
            ordered.append(entry)
            remaining[entry] -= 1

    return serialize(ordered)


def merge(texts: Any, remove_duplicates: bool = True) -> str:
    """Concatenate several fields in order, keeping first occurrences."""
    if not _is_sequence(texts):
        return ""

    merged: List[str] = []
    for text in texts:
        if text and isinstance(text, str):
            merged.extend(parse(text))

    if remove_duplicates:
        merged = _dedupe(merged)

    return serialize(merged)


def filter_items(text: Any, predicate: Callable[[str], bool]) -> str:
    if not text or not callable(predicate):
        return _as_text(text)
    return serialize([item for item in parse(text) if predicate(item)])


def map_items(text: Any, fn: Callable[[str], Any]) -> str:
    if not text or not callable(fn):
        return _as_text(text)
    return serialize([fn(item) for item in parse(text)])


def validate(text: Any) -> ListValidation:
    """Report empty segments, duplicates and embedded line breaks or tabs."""
    if not text:
        return ListValidation(valid=True)

    if not isinstance(text, str):
        return ListValidation(valid=False, issues=["Data must be a string"])

    items = parse(text)
    unique_count = len(set(items))
    issues = []

    empty_segments = sum(1 for segment in text.split(SEPARATOR) if not segment.strip())
    if empty_segments:
        issues.append(f"Found {empty_segments} empty items")

    if unique_count != len(items):
        issues.append(f"Found {len(items) - unique_count} duplicate items")

    problematic = [item for item in items if _LINE_BREAKS.search(item)]
    if problematic:
        issues.append(f"Found {len(problematic)} items with line breaks or tabs")

    return ListValidation(
        valid=not issues,
        item_count=len(items),
        unique_item_count=unique_count,
        issues=issues,
    )


def clean(text: Any,
          remove_duplicates: bool = True,
          remove_empty: bool = True,
          trim_items: bool = True,
          remove_line_breaks: bool = True) -> str:
    """
    Normalise a field. Each option toggles one step independently:

    - trim_items: strip whitespace around each entry
    - remove_line_breaks: turn newlines/tabs and whitespace runs into one space
    - remove_empty: drop blank entries
    - remove_duplicates: keep only the first occurrence of each entry
    """
    if not text or not isinstance(text, str):
        return ""

    items = text.split(SEPARATOR)

    if trim_items:
        items = [item.strip() for item in items]

    if remove_line_breaks:
        items = [_WHITESPACE_RUN.sub(" ", _LINE_BREAKS.sub(" ", item)) for item in items]
        if trim_items:
            items = [item.strip() for item in items]

    if remove_empty:
        items = [item for item in items if item.strip()]

    if remove_duplicates:
        items = _dedupe(items)

    return SEPARATOR.join(items)


def _dedupe(items: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(items))
