"""observify: reactive models synchronized from plain nested data."""

from importlib.metadata import version as _version

__version__ = _version("observify")

from observify._tracking import get_pending_count
from observify._kinds import Kind, is_cell, kind_of
from observify.observable import Observable, ObservableArray, set_scheduler
from observify.computed import Computed, computed
from observify.reaction import Reaction, Subscription, autorun, reaction
from observify.action import action, transaction
from observify.bridge import BridgedList
from observify.model import Model
from observify.reify import define_computed_property, reify_property, track
from observify.reconcile import reconcile
from observify.sync import create_model, synchronize
# textual is opt-in: import observify.textual explicitly

__all__ = [
    "Observable",
    "ObservableArray",
    "Computed",
    "computed",
    "Reaction",
    "Subscription",
    "autorun",
    "reaction",
    "action",
    "transaction",
    "get_pending_count",
    "set_scheduler",
    "Kind",
    "is_cell",
    "kind_of",
    "BridgedList",
    "Model",
    "reify_property",
    "define_computed_property",
    "track",
    "reconcile",
    "synchronize",
    "create_model",
]
