"""Merge rules for the local caches kept by live watchers.

Caches are tuples of entities keyed by a table's key field. Every function
returns a new tuple, or the same tuple object when nothing changed, so
callers can detect no-ops with an identity check.
"""

from typing import Any, Callable, Iterable, TypeVar

T = TypeVar("T")
KeyFn = Callable[[T], Any]


def dedupe(rows: Iterable[T], key: KeyFn) -> tuple[T, ...]:
    """Drop later duplicates of a key, keeping first-seen order."""
    seen: set[Any] = set()
    result = []
    for row in rows:
        k = key(row)
        if k in seen:
            continue
        seen.add(k)
        result.append(row)
    return tuple(result)


def apply_insert(rows: tuple[T, ...], new: T, key: KeyFn) -> tuple[T, ...]:
    """Append ``new`` unless a row with its key is already cached."""
    new_key = key(new)
    if any(key(row) == new_key for row in rows):
        return rows
    return rows + (new,)


def apply_update(rows: tuple[T, ...], new: T, key: KeyFn) -> tuple[T, ...]:
    """Replace the cached row with ``new``'s key in place; ignore unknown keys."""
    new_key = key(new)
    for index, row in enumerate(rows):
        if key(row) == new_key:
            if row == new:
                return rows
            return rows[:index] + (new,) + rows[index + 1:]
    return rows


def apply_delete(rows: tuple[T, ...], row_key: Any, key: KeyFn) -> tuple[T, ...]:
    """Remove the cached row with ``row_key``; absence is a no-op."""
    remaining = tuple(row for row in rows if key(row) != row_key)
    if len(remaining) == len(rows):
        return rows
    return remaining
