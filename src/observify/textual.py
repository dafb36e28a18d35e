"""Textual integration for observify. Opt-in — requires textual.

Reactive models feed Textual widgets through guarded effects: an effect is
skipped while the app is not running or is paused for widget replacement,
NoMatches from widget queries is swallowed, and calls arriving from a
background thread are marshaled through app.call_from_thread.

    from observify import textual as stx

    stx.watch_property(app, model, "status", lambda v: app.query_one(Footer).update(v))
"""

import logging
import threading
from contextlib import contextmanager

from textual.css.query import NoMatches

from observify import autorun as _autorun, reaction as _reaction
from observify.model import Model

logger = logging.getLogger("observify.textual")

# Pause state is owned by this module, keyed by id(app).
_paused_apps: set[int] = set()


@contextmanager
def pause(app):
    """Suspend guarded effects during widget replacement."""
    key = id(app)
    _paused_apps.add(key)
    try:
        yield
    finally:
        _paused_apps.discard(key)


def is_safe(app) -> bool:
    """Is the widget tree in a queryable state?"""
    return app.is_running and id(app) not in _paused_apps


def _guard(app, fn):
    """Wrap fn so it only runs when safe, on the thread that created it."""
    main = threading.get_ident()

    def _safe(*args):
        try:
            fn(*args)
        except NoMatches as exc:
            logger.debug("Skipped effect, widget not mounted: %s", exc)

    def _guarded(*args):
        if not is_safe(app):
            return
        if threading.get_ident() != main:
            app.call_from_thread(_safe, *args)
        else:
            _safe(*args)

    return _guarded


def reaction(app, data_fn, effect_fn, *, fire_immediately=False):
    """observify.reaction() whose effect is guarded for a Textual app."""
    return _reaction(data_fn, _guard(app, effect_fn), fire_immediately=fire_immediately)


def autorun(app, fn):
    """observify.autorun() guarded for a Textual app."""
    return _autorun(_guard(app, fn))


def watch_property(app, model: Model, name: str, effect_fn, *, fire_immediately=True):
    """Call effect_fn(value) whenever model[name] changes, guarded for app.

    Subscribes to the property's backing cell directly, so in-place list
    mutations of an array property are delivered too. Returns the
    Subscription (call .dispose() to stop).
    """
    cell = model.cell_of(name)
    if cell is None:
        raise TypeError(f"property {name!r} is not backed by a cell")
    guarded = _guard(app, effect_fn)
    subscription = cell.subscribe(guarded)
    if fire_immediately:
        guarded(cell.peek())
    return subscription
