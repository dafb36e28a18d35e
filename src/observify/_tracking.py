"""Dependency tracking and batching for cells.

A contextvar records the derivation currently being evaluated; every
tracked read (``Observable.get()``, ``Model.__getitem__``) registers the cell
as one of its dependencies.

Batching: synchronize(), bridged list mutations, @action and
``with transaction()`` all open a batch. Invalidations raised inside a batch
are queued and flushed once when the outermost batch closes, so a merge that
touches a cell several times notifies its subscribers once.
"""

from __future__ import annotations

import contextvars
from typing import TYPE_CHECKING

from observify import _anchor

if TYPE_CHECKING:
    from observify.computed import Computed
    from observify.reaction import Reaction, Subscription

    Derivation = Computed | Reaction | Subscription

# The currently-evaluating derivation (computed or reaction).
current_derivation: contextvars.ContextVar[Derivation | None] = contextvars.ContextVar(
    "current_derivation", default=None
)

# Batch depth counter. When > 0, invalidations are deferred.
_batch_depth: int = 0

# Derivations invalidated during a batch, in the order they were invalidated.
_pending: dict[Derivation, None] = {}


def track(cell) -> None:
    """Register `cell` as a dependency of the running derivation, if any."""
    derivation = current_derivation.get()
    if derivation is not None:
        _anchor.observers[cell._id][derivation] = None
        derivation._dependencies.add(cell)


def begin_batch() -> None:
    """Enter a batching scope. Nested batches are supported."""
    global _batch_depth
    _batch_depth += 1


def end_batch() -> None:
    """Exit a batching scope. The outermost exit flushes pending derivations."""
    global _batch_depth
    _batch_depth -= 1
    if _batch_depth == 0:
        _flush_pending()


def schedule(derivation: Derivation) -> None:
    """Run a derivation now, or queue it if a batch is open."""
    if _batch_depth > 0:
        _pending[derivation] = None
    else:
        derivation._run()


def _flush_pending() -> None:
    # Derivations may schedule further derivations while running.
    while _pending:
        batch = list(_pending)
        _pending.clear()
        for derivation in batch:
            derivation._run()


def get_pending_count() -> int:
    """Number of derivations waiting to run. Useful for testing."""
    return len(_pending)
