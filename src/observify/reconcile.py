"""Array reconciler — match list items by a key field instead of position.

Without reconciliation, synchronize() merges incoming[i] into existing[i].
With a key configured for the property holding the list, the incoming list
is first rearranged to line up with the existing one:

    existing = [{"id": 1, "name": "Jane"}, {"id": 2, "name": "John"}]
    incoming = [{"id": 2, "age": 31}, {"id": 3, "name": "Jill"}]
    reconcile(existing, incoming, "id")
    # [existing[0], incoming[0], incoming[1]]

Each existing item takes the first unconsumed incoming item with the same
key; an existing item with no match is carried forward as itself, so the
positional merge that follows leaves it untouched. Unmatched incoming items
are appended in their original order.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from observify._kinds import Kind, kind_of
from observify.model import Model

logger = logging.getLogger("observify.reconcile")

_MISSING = object()


def _key_of(item: Mapping, key: str):
    if isinstance(item, Model):
        return item.peek(key, _MISSING)
    return item.get(key, _MISSING)


def reconcile(existing: list, incoming: list, key: str) -> list:
    """Return `incoming` reordered to match `existing` by `key`.

    Neither input is modified. Items that are not mappings, or that lack
    `key`, are never matched. Runs in O(len(existing) * len(incoming)).
    """
    if not isinstance(key, str):
        raise TypeError("invalid arguments passed")

    consumed = [False] * len(incoming)
    result = []
    matched = 0
    for item in existing:
        match = _MISSING
        item_key = _key_of(item, key) if kind_of(item) is Kind.OBJECT else _MISSING
        if item_key is not _MISSING:
            for index, candidate in enumerate(incoming):
                if consumed[index] or kind_of(candidate) is not Kind.OBJECT:
                    continue
                candidate_key = _key_of(candidate, key)
                if candidate_key is not _MISSING and candidate_key == item_key:
                    consumed[index] = True
                    match = candidate
                    matched += 1
                    break
        result.append(item if match is _MISSING else match)

    result.extend(candidate for index, candidate in enumerate(incoming) if not consumed[index])
    logger.debug(
        "Reconciled by %r: %d existing, %d incoming, %d matched",
        key, len(existing), len(incoming), matched,
    )
    return result
