"""Array mutation bridge — in-place list mutations that notify their cell.

A list held by an ObservableArray is a BridgedList: an ordinary list whose
mutating methods are wrapped so that each call is bracketed by the cell's
begin_mutation()/end_mutation(). The wrapped methods always run against the
list the cell currently holds (cell.peek()), so a stale reference kept by a
caller still mutates the live value.

Only bridged instances are affected; plain lists elsewhere in a model (and
nested lists inside a bridged one) stay plain.

Usage:
    friends = ObservableArray(["Bob"])
    friends.subscribe(lambda items: print(list(items)))

    lst = friends.peek()
    lst.append("Jill")      # one notification: ['Bob', 'Jill']
    lst.toggle("Bob")       # one notification: ['Jill']
"""

from __future__ import annotations

import copy
import functools
import weakref
from contextlib import contextmanager
from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from observify.observable import ObservableArray

_MUTATORS = (
    "append",
    "extend",
    "insert",
    "pop",
    "remove",
    "clear",
    "reverse",
    "sort",
    "__setitem__",
    "__delitem__",
    "__iadd__",
    "__imul__",
)


@contextmanager
def _mutation(cell: ObservableArray | None):
    """Bracket one in-place change; no notification if the change raised."""
    if cell is None:
        yield
        return
    cell.begin_mutation()
    try:
        yield
    except BaseException:
        cell.end_mutation(changed=False)
        raise
    cell.end_mutation()


def _bridged(name: str):
    native = getattr(list, name)

    @functools.wraps(native)
    def method(self, *args, **kwargs):
        with _mutation(self._cell):
            return native(self._live(), *args, **kwargs)

    return method


class BridgedList(list):
    """A list bound to exactly one ObservableArray.

    The binding is the explicit `_cell` marker set at construction; it is
    what install_bridge() checks before bridging a list again. The cell is
    held weakly. Once it is gone the list behaves like a plain list.

    Copies (copy.copy, copy.deepcopy, pickle) are plain lists.
    """

    __slots__ = ("_cell_ref",)

    def __init__(self, cell: ObservableArray, items: Iterable = ()) -> None:
        super().__init__(items)
        self._cell_ref = weakref.ref(cell)

    @property
    def _cell(self) -> ObservableArray | None:
        return self._cell_ref()

    def _live(self) -> list:
        cell = self._cell
        live = cell.peek() if cell is not None else None
        return live if isinstance(live, list) else self

    def __copy__(self) -> list:
        return list(self)

    def __deepcopy__(self, memo) -> list:
        return copy.deepcopy(list(self), memo)

    def __reduce_ex__(self, protocol):
        return list, (list(self),)

    # --- Helpers (one notification per call) ---

    def replace(self, old, new) -> None:
        """Replace the first item equal to `old` with `new`."""
        with _mutation(self._cell):
            live = self._live()
            list.__setitem__(live, live.index(old), new)

    def remove_all(self, values: Iterable | None = None) -> list:
        """Remove every item in `values` (every item when None). Returns them."""
        with _mutation(self._cell):
            live = self._live()
            if values is None:
                removed = list(live)
                list.clear(live)
            else:
                targets = list(values)
                removed = [item for item in live if item in targets]
                list.__setitem__(live, slice(None), [item for item in live if item not in targets])
            return removed

    def toggle(self, item) -> bool:
        """Remove `item` if present, else append it. Returns True if now present."""
        with _mutation(self._cell):
            live = self._live()
            if item in live:
                list.remove(live, item)
                return False
            list.append(live, item)
            return True

    def notify(self) -> None:
        """Tell the bound cell its contents changed outside the bridge."""
        cell = self._cell
        if cell is not None:
            cell.notify()


for _name in _MUTATORS:
    setattr(BridgedList, _name, _bridged(_name))
del _name


def install_bridge(cell: ObservableArray, items: list) -> BridgedList:
    """Return `items` bridged to `cell`.

    A list already bound to `cell` is returned as is. Any other list, plain
    or bound to a different cell, is copied into a new BridgedList: one list
    instance never reports to two cells.
    """
    if isinstance(items, BridgedList) and items._cell is cell:
        return items
    return BridgedList(cell, items)
