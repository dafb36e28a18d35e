"""Model — a mapping whose entries can be individually observable.

A Model starts out as a plain container. Synchronizing it (or reifying one
of its properties) backs entries by cells in place:

    model = Model({"name": "Bob"})
    synchronize(model)           # same instance, "name" is now cell-backed

    model.name                   # cell.get(): tracked read
    model["name"] = "Jill"       # cell.set(): notifies subscribers
    model._name                  # the backing cell itself (companion handle)
    model._name.subscribe(print)

Entries that are not cell-backed behave like ordinary dict entries.
Attribute access is a convenience: keys that collide with mapping methods
(``items``, ``keys``, ``get`` ...) must be read with ``model[key]``.
"""

from __future__ import annotations

from collections.abc import Iterator, MutableMapping

from observify._kinds import is_cell

_BOUND = object()  # _props placeholder for cell-backed entries
_MISSING = object()


class Model(MutableMapping):
    """Ordered mapping of property name to plain value or backing cell."""

    __slots__ = ("_props", "_cells", "__weakref__")

    def __init__(self, data=None, /, **kwargs) -> None:
        object.__setattr__(self, "_props", {})
        object.__setattr__(self, "_cells", {})
        if data is not None:
            self._props.update(data)
        self._props.update(kwargs)

    # --- Mapping protocol (reads track, writes route through cells) ---

    def __getitem__(self, name: str):
        cell = self._cells.get(name)
        if cell is not None:
            return cell.get()
        return self._props[name]

    def __setitem__(self, name: str, value) -> None:
        cell = self._cells.get(name)
        if cell is not None:
            cell.set(value)
        else:
            self._props[name] = value

    def __delitem__(self, name: str) -> None:
        del self._props[name]
        self._cells.pop(name, None)

    def __iter__(self) -> Iterator[str]:
        return iter(self._props)

    def __len__(self) -> int:
        return len(self._props)

    def __contains__(self, name: object) -> bool:
        return name in self._props

    # --- Cell access ---

    def cell_of(self, name: str):
        """The cell backing `name`, or None for plain (or missing) entries."""
        return self._cells.get(name)

    def is_reified(self, name: str) -> bool:
        return name in self._cells

    def bind(self, name: str, cell) -> None:
        """Back `name` by `cell`. A plain value is discarded; order is kept."""
        if not isinstance(name, str) or not is_cell(cell):
            raise TypeError("invalid arguments passed")
        self._props[name] = _BOUND
        self._cells[name] = cell

    def peek(self, name: str, default=_MISSING):
        """Read `name` without registering a dependency."""
        cell = self._cells.get(name)
        if cell is not None:
            return cell.peek()
        if default is _MISSING:
            return self._props[name]
        return self._props.get(name, default)

    def peek_items(self) -> Iterator[tuple[str, object]]:
        for name in list(self._props):
            yield name, self.peek(name)

    # --- Attribute access ---

    def __getattr__(self, name: str):
        if name in Model.__slots__:
            raise AttributeError(name)
        if name.startswith("_") and name[1:] in self._cells:
            return self._cells[name[1:]]
        try:
            return self[name]
        except KeyError:
            raise AttributeError(
                f"{type(self).__name__!r} object has no attribute {name!r}"
            ) from None

    def __setattr__(self, name: str, value) -> None:
        if name.startswith("_") and name[1:] in self._cells:
            raise AttributeError(f"companion handle {name!r} is read-only")
        self[name] = value

    def __delattr__(self, name: str) -> None:
        try:
            del self[name]
        except KeyError:
            raise AttributeError(name) from None

    def __repr__(self) -> str:
        return f"{type(self).__name__}({dict(self.peek_items())!r})"
