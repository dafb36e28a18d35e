"""Observable cells — the settable state every reactive model is built from.

When a cell is read with get() inside a Computed or Reaction evaluation,
the dependency is registered automatically. When the cell changes, all
dependents are scheduled for re-evaluation. peek() reads without tracking.

Two kinds of settable cell exist:

- Observable holds any value (a scalar, a Model, a plain list).
- ObservableArray holds a list and additionally notifies when that list is
  mutated in place. Its value is always a BridgedList bound to the cell.

All state lives in _anchor — instances are thin handles holding an _id,
released from _anchor when the handle is collected.

Thread safety: call set_scheduler() once from the main thread. After that,
any .set() from a background thread is auto-marshaled. Main-thread .set()
remains synchronous.
"""

from __future__ import annotations

import threading
from collections.abc import Mapping
from typing import Callable, Generic, TypeVar

from observify import _anchor
from observify._tracking import begin_batch, end_batch, schedule, track

T = TypeVar("T")

# ─── Auto-marshal ────────────────────────────────────────────────────────────
_scheduler = None
_scheduler_thread = None


def set_scheduler(scheduler) -> None:
    """Set the global thread scheduler for cross-thread cell mutations.

    Call once from the main/UI thread:
        observify.set_scheduler(app.call_from_thread)

    After this, any Observable.set() from a background thread is automatically
    marshaled. Main-thread mutations remain synchronous.
    """
    global _scheduler, _scheduler_thread
    _scheduler = scheduler
    _scheduler_thread = threading.current_thread()


def has_changed(old: object, new: object) -> bool:
    """Would replacing `old` with `new` be a change worth notifying?

    Composites (lists and mappings) compare by identity only. Scalars must
    match in type as well as value: 1 -> True and 1 -> 1.0 are changes.
    """
    if old is new:
        return False
    if isinstance(old, (list, Mapping)) or isinstance(new, (list, Mapping)):
        return True
    return type(old) is not type(new) or old != new


class Observable(Generic[T]):
    """A single observable value with automatic dependency tracking."""

    __slots__ = ("_id", "__weakref__")

    def __init__(self, value: T = None) -> None:
        self._id = _anchor.anchor(self)
        _anchor.values[self._id] = value
        _anchor.observers[self._id] = {}

    def get(self) -> T:
        """Read the value. If inside a derivation, registers the dependency."""
        track(self)
        return _anchor.values[self._id]

    def peek(self) -> T:
        """Read the value without registering a dependency."""
        return _anchor.values[self._id]

    def set(self, value: T) -> None:
        """Write a new value. Auto-marshals from background threads."""
        if _scheduler is not None and threading.current_thread() != _scheduler_thread:
            _scheduler(lambda v=value: self._set_direct(v))
        else:
            self._set_direct(value)

    def _set_direct(self, value: T) -> None:
        """Set value and notify. Always runs on the scheduler thread."""
        if has_changed(_anchor.values[self._id], value):
            _anchor.values[self._id] = value
            self.notify()

    def subscribe(self, listener: Callable[[T], None]):
        """Call listener(value) after every change. Returns the Subscription."""
        from observify.reaction import Subscription

        return Subscription(self, listener)

    def notify(self) -> None:
        """Schedule all observers, whether or not the value changed."""
        for observer in list(_anchor.observers[self._id]):
            schedule(observer)

    def _remove_observer(self, observer) -> None:
        """Remove an observer. Called during dependency cleanup."""
        _anchor.observers[self._id].pop(observer, None)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({_anchor.values[self._id]!r})"


class ObservableArray(Observable[list]):
    """A cell holding a list whose in-place mutations are observable.

    The held list is a BridgedList bound to this cell: append(), pop(),
    sort() and the other mutators on it bracket the native operation with
    begin_mutation()/end_mutation(), producing one notification per call.
    Replacing the list wholesale with set() bridges the new list.

    Bridging copies: unlike every other value, a list passed to set() (or
    assigned to a model property, or merged with deep=False) is not stored
    itself. Later changes to the caller's list do not reach the cell; read
    the bridged copy back with peek() to keep mutating it.
    """

    __slots__ = ()

    def __init__(self, items: list | None = None) -> None:
        super().__init__(None)
        _anchor.mutation_depth[self._id] = 0
        _anchor.values[self._id] = self._bridge(items if items is not None else [])

    def _bridge(self, value):
        from observify.bridge import install_bridge

        if isinstance(value, list):
            return install_bridge(self, value)
        return value

    def _set_direct(self, value) -> None:
        super()._set_direct(self._bridge(value))

    def begin_mutation(self) -> None:
        """The held list is about to change in place."""
        _anchor.mutation_depth[self._id] += 1
        begin_batch()

    def end_mutation(self, changed: bool = True) -> None:
        """The held list changed in place; notify once the batch closes.

        changed=False closes the bracket without notifying (the mutation
        raised before touching the list).
        """
        _anchor.mutation_depth[self._id] -= 1
        try:
            if changed:
                self.notify()
        finally:
            end_batch()

    @property
    def mutating(self) -> bool:
        """True between begin_mutation() and the matching end_mutation()."""
        return _anchor.mutation_depth[self._id] > 0
