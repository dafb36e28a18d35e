"""Value kinds — the closed set every merge step dispatches on."""

from __future__ import annotations

import enum
from collections.abc import Mapping

from observify.computed import Computed
from observify.observable import Observable


class Kind(enum.Enum):
    SCALAR = "scalar"
    OBJECT = "object"
    ARRAY = "array"
    CELL = "cell"

    @property
    def composite(self) -> bool:
        return self is Kind.OBJECT or self is Kind.ARRAY


def is_cell(value: object) -> bool:
    """Is value a pre-built cell (Observable, ObservableArray or Computed)?"""
    return isinstance(value, (Observable, Computed))


def kind_of(value: object) -> Kind:
    if is_cell(value):
        return Kind.CELL
    if isinstance(value, list):
        return Kind.ARRAY
    if isinstance(value, Mapping):
        return Kind.OBJECT
    return Kind.SCALAR
