"""Data anchor — plain Python structures that hold all cell state.

Cells (Observable, ObservableArray, Computed) and derivations are thin
handles holding an _id; their values, observers and dependency sets live
here, in one place, rather than on the handles. Each handle registers a
finalizer that release()s its entries once the handle is collected.

Observer collections are insertion-ordered dicts (used as ordered sets) so
subscribers are notified in the order they subscribed. Dependency sets hold
cells weakly: a derivation never keeps what it read alive.
"""

import itertools
import weakref

# Cell state
values: dict[int, object] = {}
observers: dict[int, dict] = {}  # cell_id -> {derivation: None}
mutation_depth: dict[int, int] = {}  # array cell_id -> open begin_mutation() count

# Derivation state (Computed + Reaction + Subscription)
dependencies: dict[int, weakref.WeakSet] = {}  # deriv_id -> cells read
dirty_flags: dict[int, bool] = {}
cached_values: dict[int, object] = {}
derivation_fns: dict[int, object] = {}  # deriv_id -> callable
writer_fns: dict[int, object] = {}  # computed_id -> write callable (writable computeds)
disposed: dict[int, bool] = {}

_ALL = (
    values,
    observers,
    mutation_depth,
    dependencies,
    dirty_flags,
    cached_values,
    derivation_fns,
    writer_fns,
    disposed,
)

# ID generation — itertools.count is thread-safe (C-level GIL atomic)
_id_counter = itertools.count(1)


def new_id() -> int:
    return next(_id_counter)


def anchor(handle) -> int:
    """Give `handle` a fresh id whose entries are released with it."""
    handle_id = new_id()
    weakref.finalize(handle, release, handle_id)
    return handle_id


def release(handle_id: int) -> None:
    """Drop every entry stored for `handle_id`."""
    for table in _ALL:
        table.pop(handle_id, None)
