"""Cell reifier — back one model property by a cell.

reify_property() is the unit every synchronization is built from: it makes
sure a property has a cell (creating one at most once) and then merges the
incoming value into whatever the cell currently holds.

define_computed_property() and track() are the two other ways of putting
cells behind properties: a derived cell, and an opt-in shallow reification
of properties a Model already holds.
"""

from __future__ import annotations

import weakref
from collections.abc import Iterable, Mapping
from typing import Callable

from observify._kinds import Kind, kind_of
from observify.computed import Computed
from observify.model import Model
from observify.observable import Observable, ObservableArray, has_changed


def _check(target: object, name: object) -> None:
    if not isinstance(target, Model) or not isinstance(name, str):
        raise TypeError("invalid arguments passed")


def reify_property(
    target: Model,
    name: str,
    default=None,
    deep: bool = True,
    reconciliation: Mapping[str, str] | None = None,
):
    """Ensure target[name] is cell-backed, then merge `default` into it.

    A property that already has a cell keeps it: only its value changes.
    Otherwise any plain value is discarded and a new cell holding `default`
    (with `deep`, a reified copy of it) is bound: an ObservableArray when
    `default` is a list, an Observable otherwise.

    With `deep`, composite values are merged recursively rather than
    replaced, and nested mappings become Models. Returns the backing cell.
    """
    _check(target, name)
    cell = target.cell_of(name)
    if cell is None:
        from observify.sync import reify_copy

        value = reify_copy(default, deep, reconciliation) if deep else default
        cell = ObservableArray(value) if isinstance(default, list) else Observable(value)
        target.bind(name, cell)
    else:
        _merge(cell, name, default, deep, reconciliation)
    return cell


def _merge(cell, name: str, default, deep: bool, reconciliation) -> None:
    from observify.sync import _synchronize, reify_copy

    current = cell.peek()
    # Computed values are written through, never merged into.
    if not deep or isinstance(cell, Computed):
        if has_changed(current, default):
            cell.set(default)
        return

    current_kind = kind_of(current)
    default_kind = kind_of(default)
    if current_kind.composite:
        if default_kind is not current_kind:
            # Scalars are not merged structurally: a composite survives them.
            if default_kind.composite:
                cell.set(reify_copy(default, deep, reconciliation))
        elif current_kind is Kind.ARRAY or isinstance(current, Model):
            _synchronize(current, default, deep, reconciliation, name)
        else:
            replacement = reify_copy(current, deep, reconciliation)
            if default is not current:
                _synchronize(replacement, default, deep, reconciliation, name)
            cell.set(replacement)
    elif default_kind.composite:
        cell.set(reify_copy(default, deep, reconciliation))
    elif has_changed(current, default):
        cell.set(default)


def define_computed_property(
    target: Model,
    name: str,
    read: Callable[[Model], object],
    write: Callable[[Model, object], None] | None = None,
) -> Computed:
    """Back target[name] by a Computed of read(target).

    With `write`, assigning the property calls write(target, value);
    without it the property is read-only and assignment raises TypeError.
    The model is captured weakly, so the property does not keep it alive.

    Usage:
        person = create_model({"first": "Bob", "last": "Doe"})
        define_computed_property(person, "full", lambda p: f"{p.first} {p.last}")
        person.full  # 'Bob Doe'
    """
    _check(target, name)
    model = weakref.ref(target)
    writer = (lambda value: write(model(), value)) if write is not None else None
    cell = Computed(lambda: read(model()), writer)
    target.bind(name, cell)
    return cell


def track(target: Model, names: Iterable[str] | None = None, deep: bool = False) -> Model:
    """Reify the named (default: all) plain properties of target in place.

    Shallow unless `deep` is set. Properties already backed by a cell are
    left as they are. Returns target.
    """
    if not isinstance(target, Model):
        raise TypeError("invalid arguments passed")
    for name in list(target) if names is None else names:
        if not target.is_reified(name):
            reify_property(target, name, target.peek(name, None), deep)
    return target
