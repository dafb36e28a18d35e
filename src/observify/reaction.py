"""Reactions and subscriptions — side effects triggered by cell changes.

Unlike Computed (which is lazy and only evaluates on read), these run
eagerly whenever what they depend on changes:

- autorun(fn): runs fn immediately, re-runs when any cell it read changes.
- reaction(data_fn, effect_fn): tracks data_fn, calls effect_fn with the new
  value only when data_fn's result changes.
- cell.subscribe(listener): calls listener(value) every time one specific
  cell notifies. No tracking is involved; this is how the companion handle
  of a model property (``model._name``) is observed directly.

All state lives in _anchor — instances are thin handles holding an _id.
"""

from __future__ import annotations

import weakref
from typing import Callable, TypeVar

from observify import _anchor
from observify._tracking import current_derivation

T = TypeVar("T")


class _Derivation:
    """Shared lifecycle: dependency bookkeeping and disposal."""

    __slots__ = ("_id", "__weakref__")

    def __init__(self, fn: Callable) -> None:
        self._id = _anchor.anchor(self)
        _anchor.derivation_fns[self._id] = fn
        _anchor.dependencies[self._id] = weakref.WeakSet()
        _anchor.disposed[self._id] = False

    @property
    def _fn(self) -> Callable:
        return _anchor.derivation_fns[self._id]

    @property
    def _dependencies(self) -> set:
        return _anchor.dependencies[self._id]

    @property
    def disposed(self) -> bool:
        return _anchor.disposed[self._id]

    def _untrack(self) -> None:
        for dep in _anchor.dependencies[self._id]:
            dep._remove_observer(self)
        _anchor.dependencies[self._id].clear()

    def _tracked(self, fn: Callable[[], T]) -> T:
        """Run fn with this derivation as the dependency collector."""
        self._untrack()
        token = current_derivation.set(self)
        try:
            return fn()
        finally:
            current_derivation.reset(token)

    def dispose(self) -> None:
        """Stop reacting. Disconnects from all dependencies."""
        _anchor.disposed[self._id] = True
        self._untrack()

    def __repr__(self) -> str:
        state = "disposed" if self.disposed else "active"
        return f"{type(self).__name__}({getattr(self._fn, '__name__', 'fn')}, {state})"


class Reaction(_Derivation):
    """A reactive side effect that re-runs when its dependencies change."""

    __slots__ = ()

    def _run(self) -> None:
        if not self.disposed:
            self._tracked(self._fn)


class _DataReaction(_Derivation):
    """Internal: reaction(data_fn, effect_fn) implementation.

    Tracks data_fn's dependencies. When they change, re-runs data_fn.
    If the result differs from last time, calls effect_fn with the new value.
    """

    __slots__ = ("_effect_fn", "_last_value", "_initialized")

    def __init__(self, data_fn: Callable, effect_fn: Callable) -> None:
        super().__init__(data_fn)
        self._effect_fn = effect_fn
        self._last_value = None
        self._initialized = False

    def _run(self) -> None:
        if self.disposed:
            return
        new_value = self._tracked(self._fn)
        if not self._initialized or new_value != self._last_value:
            self._last_value = new_value
            self._initialized = True
            self._effect_fn(new_value)


class Subscription(_Derivation):
    """listener(value) on every notification of one cell.

    Created by Observable.subscribe() / Computed.subscribe(). The listener
    receives the cell's value read with peek(), so a listener never becomes
    a dependency of some unrelated derivation. The cell is held weakly: the
    subscription lives as long as the cell does, not the other way round.
    """

    __slots__ = ("_cell",)

    def __init__(self, cell, listener: Callable) -> None:
        super().__init__(listener)
        self._cell = weakref.ref(cell)
        _anchor.observers[cell._id][self] = None
        _anchor.dependencies[self._id].add(cell)
        # A lazy cell must be evaluated once to start hearing about changes.
        cell.peek()

    def _run(self) -> None:
        cell = self._cell()
        if cell is not None and not self.disposed:
            self._fn(cell.peek())


def autorun(fn: Callable[[], None]) -> Reaction:
    """Run fn immediately, then re-run whenever any cell it reads changes.

    Returns the Reaction (call .dispose() to stop).

    Usage:
        model = create_model({"name": "Bob"})
        log = []

        r = autorun(lambda: log.append(model.name))
        # log == ["Bob"] — ran immediately

        model.name = "Jill"
        # log == ["Bob", "Jill"]

        r.dispose()
        model.name = "Jane"
        # log == ["Bob", "Jill"] — stopped
    """
    r = Reaction(fn)
    r._run()  # Initial run to establish dependencies
    return r


def reaction(
    data_fn: Callable[[], T],
    effect_fn: Callable[[T], None],
    *,
    fire_immediately: bool = False,
) -> _DataReaction:
    """Track data_fn's cells; call effect_fn when the result changes.

    Unlike autorun, effect_fn only fires when data_fn's *return value* changes,
    not on every dependency notification.

    Returns the reaction (call .dispose() to stop).

    Usage:
        model = create_model({"first": "Alice", "last": "Smith"})

        effects = []
        r = reaction(
            lambda: f"{model.first} {model.last}",
            lambda name: effects.append(name),
        )
        # effects == [] — data_fn ran to establish deps, effect didn't fire

        model.first = "Bob"
        # effects == ["Bob Smith"]
    """
    r = _DataReaction(data_fn, effect_fn)
    if fire_immediately:
        r._run()
    else:
        # Run data_fn to establish deps, but suppress the initial effect
        r._last_value = r._tracked(data_fn)
        r._initialized = True
    return r
