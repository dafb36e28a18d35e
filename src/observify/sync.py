"""Tree synchronizer — merge incoming data into a reactive model.

synchronize(model, incoming) walks `incoming` against `model` depth first:

- mappings: every entry is reified on the model (reify_property), so a
  property keeps its cell across any number of merges and only its value
  changes. A pre-built cell in the incoming data is bound as is.
- lists: merged element by element. Elements are never wrapped in cells;
  nested mappings become Models, scalars are stored as they are. A list
  that is the value of a property named in `reconciliation` is first
  reordered by key (see observify.reconcile) so items keep their identity
  across insertions, removals and reordering.

The incoming tree is never mutated. Merging the same data twice creates no
cells and notifies nobody. Cyclic data is not detected.

Usage:
    model = create_model({"name": "Bob", "friends": [{"id": 1, "name": "Jane"}]})
    synchronize(
        model,
        {"friends": [{"id": 2, "name": "John"}, {"id": 1, "name": "Janet"}]},
        reconciliation={"friends": "id"},
    )
    # model.friends == [{"id": 1, "name": "Janet"}, {"id": 2, "name": "John"}]
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from observify._kinds import Kind, kind_of
from observify.action import action
from observify.bridge import BridgedList
from observify.model import Model
from observify.observable import has_changed
from observify.reconcile import reconcile
from observify.reify import reify_property

logger = logging.getLogger("observify.sync")

_SELF = object()


@action
def synchronize(
    model,
    incoming=_SELF,
    deep: bool = True,
    reconciliation: Mapping[str, str] | None = None,
):
    """Merge `incoming` into `model` in place and return `model`.

    synchronize(model) and synchronize(model, deep) reify `model` against
    itself. A non-composite `incoming` is returned unchanged.

    `model` must be a Model when `incoming` is a mapping and a list when it
    is a list; a plain dict cannot gain cells in place (use create_model()).
    """
    if incoming is _SELF:
        incoming = model
    elif isinstance(incoming, bool):
        deep, incoming = incoming, model

    if not kind_of(incoming).composite:
        return incoming
    return _synchronize(model, incoming, deep, reconciliation)


@action
def create_model(defaults, deep: bool = True, reconciliation: Mapping[str, str] | None = None):
    """Build a new reactive model from plain `defaults`.

    Mappings become a Model, lists a list of reified items, scalars are
    returned as they are.
    """
    return reify_copy(defaults, deep, reconciliation)


def reify_copy(value, deep: bool, reconciliation):
    """A reactive counterpart of `value`.

    Plain mappings and lists are copied, a Model is reified in place,
    scalars pass through.
    """
    kind = kind_of(value)
    if isinstance(value, Model):
        return _synchronize(value, value, deep, reconciliation)
    if kind is Kind.OBJECT:
        return _synchronize(Model(), value, deep, reconciliation)
    if kind is Kind.ARRAY:
        items: list = []
        _merge_array(items, value, deep, reconciliation)
        return items
    return value


def _synchronize(model, incoming, deep: bool, reconciliation, parent_name: str | None = None):
    kind = kind_of(incoming)
    if kind is Kind.ARRAY:
        if not isinstance(model, list):
            raise TypeError(f"cannot synchronize a list into {type(model).__name__}")
        key = reconciliation.get(parent_name) if reconciliation and parent_name is not None else None
        if key is not None:
            incoming = reconcile(model, incoming, key)
        _merge_array(model, incoming, deep, reconciliation)
    elif kind is Kind.OBJECT:
        if not isinstance(model, Model):
            if isinstance(model, Mapping):
                raise TypeError("a plain mapping cannot be reified in place, wrap it in Model()")
            raise TypeError(f"cannot synchronize a mapping into {type(model).__name__}")
        entries = incoming.peek_items() if isinstance(incoming, Model) else list(incoming.items())
        for name, value in entries:
            if kind_of(value) is Kind.CELL:
                model.bind(name, value)
            else:
                reify_property(model, name, value, deep, reconciliation)
    return model


def _merge_array(items: list, incoming: list, deep: bool, reconciliation) -> bool:
    """Merge `incoming` into `items` position by position.

    Slot writes bypass the mutation bridge; a bridged list whose contents
    changed notifies its cell once at the end. Returns whether it changed.
    """
    changed = False
    for index, value in enumerate(incoming):
        if index >= len(items):
            list.append(items, reify_copy(value, deep, reconciliation))
            changed = True
            continue

        current = list.__getitem__(items, index)
        current_kind = kind_of(current)
        if current_kind.composite and current_kind is kind_of(value):
            if current_kind is Kind.ARRAY:
                _merge_array(current, value, deep, reconciliation)
            elif isinstance(current, Model):
                _synchronize(current, value, deep, reconciliation)
            else:
                # Reifying a plain mapping in its slot is not a change of
                # data; merging different data into it is.
                replacement = reify_copy(current, deep, reconciliation)
                if value is not current:
                    _synchronize(replacement, value, deep, reconciliation)
                    changed = True
                list.__setitem__(items, index, replacement)
        elif has_changed(current, value):
            list.__setitem__(items, index, reify_copy(value, deep, reconciliation))
            changed = True

    if changed and isinstance(items, BridgedList):
        logger.debug("Array changed in place: %d items after merge", len(items))
        items.notify()
    return changed
