"""Computed values — derived cells with automatic dependency tracking.

A Computed wraps a read function. When evaluated, it tracks which cells the
function reads and caches the result. When any dependency changes, the
cached value is invalidated. On next read, it re-evaluates.

A Computed may also take a write function, which makes it settable: set()
forwards to the writer, which typically writes other cells. This is what
define_computed_property() binds behind a model property.

All state lives in _anchor; instances are thin handles holding an _id.
"""

from __future__ import annotations

import weakref
from typing import Callable, Generic, TypeVar

from observify import _anchor
from observify._tracking import current_derivation, schedule, track

T = TypeVar("T")

_UNSET = object()


class Computed(Generic[T]):
    """A derived value that auto-tracks dependencies and caches the result."""

    __slots__ = ("_id", "__weakref__")

    def __init__(self, fn: Callable[[], T], write: Callable[[T], None] | None = None) -> None:
        self._id = _anchor.anchor(self)
        _anchor.derivation_fns[self._id] = fn
        _anchor.writer_fns[self._id] = write
        _anchor.cached_values[self._id] = _UNSET
        _anchor.dirty_flags[self._id] = True
        _anchor.dependencies[self._id] = weakref.WeakSet()
        _anchor.observers[self._id] = {}

    @property
    def _fn(self) -> Callable[[], T]:
        return _anchor.derivation_fns[self._id]

    @property
    def _dependencies(self) -> set:
        return _anchor.dependencies[self._id]

    @property
    def writable(self) -> bool:
        return _anchor.writer_fns[self._id] is not None

    def get(self) -> T:
        """Read the computed value. Recomputes if dirty."""
        track(self)
        return self.peek()

    def peek(self) -> T:
        """Read the computed value without registering a dependency."""
        if _anchor.dirty_flags[self._id]:
            self._recompute()
        return _anchor.cached_values[self._id]

    def set(self, value: T) -> None:
        """Forward a write to the write function."""
        writer = _anchor.writer_fns[self._id]
        if writer is None:
            raise TypeError(f"{self!r} is read-only")
        writer(value)

    def subscribe(self, listener: Callable[[T], None]):
        """Call listener(value) after every change. Returns the Subscription."""
        from observify.reaction import Subscription

        return Subscription(self, listener)

    def notify(self) -> None:
        for observer in list(_anchor.observers[self._id]):
            schedule(observer)

    def _recompute(self) -> None:
        """Re-evaluate the function, tracking dependencies."""
        for dep in _anchor.dependencies[self._id]:
            dep._remove_observer(self)
        _anchor.dependencies[self._id].clear()

        token = current_derivation.set(self)
        try:
            _anchor.cached_values[self._id] = self._fn()
        finally:
            current_derivation.reset(token)

        _anchor.dirty_flags[self._id] = False

    def _run(self) -> None:
        """Called by the scheduler when a dependency changed.

        Marks dirty and propagates to our own observers. Recomputation waits
        for the next get()/peek().
        """
        if not _anchor.dirty_flags[self._id]:
            _anchor.dirty_flags[self._id] = True
            self.notify()

    def _remove_observer(self, observer) -> None:
        _anchor.observers[self._id].pop(observer, None)

    def dispose(self) -> None:
        """Disconnect from all dependencies. The computed becomes inert."""
        for dep in _anchor.dependencies[self._id]:
            dep._remove_observer(self)
        _anchor.dependencies[self._id].clear()
        _anchor.observers[self._id].clear()
        _anchor.dirty_flags[self._id] = True
        _anchor.cached_values[self._id] = _UNSET

    def __repr__(self) -> str:
        dirty = _anchor.dirty_flags[self._id]
        val = _anchor.cached_values[self._id]
        state = "dirty" if dirty else f"cached={val!r}"
        return f"Computed({getattr(self._fn, '__name__', 'fn')}, {state})"


def computed(fn: Callable[[], T]) -> Computed[T]:
    """Decorator/factory to create a Computed from a function.

    Usage:
        model = create_model({"first": "Ada", "last": "Lovelace"})

        @computed
        def full_name():
            return f"{model.first} {model.last}"

        full_name.get()  # 'Ada Lovelace'
        model.first = "Augusta"
        full_name.get()  # 'Augusta Lovelace'
    """
    return Computed(fn)
