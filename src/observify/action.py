"""Actions and transactions — batched cell mutations.

Wrapping mutations in an @action or `with transaction()` defers all
reaction/computed invalidation until the outermost scope exits. This
prevents glitchy intermediate states where some dependents have updated
but others haven't yet. synchronize() runs as an action, so a merge is
seen by subscribers as a single step.
"""

from __future__ import annotations

import functools
from contextlib import contextmanager
from typing import Callable, ParamSpec, TypeVar

from observify._tracking import begin_batch, end_batch

P = ParamSpec("P")
R = TypeVar("R")


def action(fn: Callable[P, R]) -> Callable[P, R]:
    """Decorator: batch all cell mutations inside fn.

    Reactions only fire after fn returns, not during.

    Usage:
        model = create_model({"first": "Ada", "last": "Byron"})

        @action
        def marry():
            model.first = "Augusta"
            model.last = "King"
            # reactions see both changes at once, not one at a time
    """

    @functools.wraps(fn)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        begin_batch()
        try:
            return fn(*args, **kwargs)
        finally:
            end_batch()

    return wrapper


@contextmanager
def transaction():
    """Context manager for batching mutations.

    Usage:
        with transaction():
            model.friends.append("Jill")
            model.name = "Bob"
            # reactions fire here, after both changes
    """
    begin_batch()
    try:
        yield
    finally:
        end_batch()
