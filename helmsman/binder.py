"""
Handler binder: turn a handler object (or type) into descriptors.

Discovery is explicit: only members carrying a marker hook are candidates
(__command__ from @command, __filter__ from @filter, __option__ from @option on a
property getter). The binder never re-scans; the result is a snapshot of the
handler at binding time.

Rules
- Instance handlers: marked methods become commands (bound to the instance); a
  member carrying a filter hook becomes a filter instead. Marked properties become
  options when they have both a getter and a setter; read-only or write-only ones
  are skipped silently.
- Type handlers (static surface): marked static and class methods become commands
  or filters; properties are skipped (they need an instance).
- Private names (leading underscore) and anything defined on object are ignored.
- A marker without names uses the attribute name.
"""
import inspect
import logging
from inspect import Parameter
from typing import NamedTuple

from .descriptors import Command, Option, Filter
from .utils import Unset

logger = logging.getLogger(__name__)


class Bindings(NamedTuple):
    """
    Descriptors found on a handler, keyed by attribute name.
    """
    commands: dict[str, Command]
    options: dict[str, Option]
    filters: dict[str, Filter]


def _hook(member, name, /):
    hook = getattr(getattr(member, "__func__", member), name, None)
    return hook if callable(hook) else None


def _annotation(getter, /):
    try:
        annotation = inspect.signature(getter, eval_str=True).return_annotation
    except (TypeError, ValueError, NameError):
        return Unset
    return Unset if annotation is Parameter.empty else annotation


def bind(handler, /):
    """
    Collect the commands, options and filters a handler donates.

    Parameters
    - handler: an instance, or a type for its static surface.

    Returns
    - Bindings(commands, options, filters).
    """
    static = isinstance(handler, type)
    owner = handler if static else type(handler)
    bindings = Bindings({}, {}, {})

    for name in dir(owner):
        if name.startswith("_") or name in vars(object):
            continue
        try:
            member = inspect.getattr_static(owner, name)
        except AttributeError:
            continue

        if isinstance(member, property):
            if static or not _hook(member.fget, "__option__"):
                continue
            if member.fget is None or member.fset is None:
                logger.debug("skipped option %s.%s: it is not readable and writable", owner.__name__, name)
                continue
            bindings.options[name] = member.fget.__option__(
                lambda member=member: member.fget(handler),
                lambda value, member=member: member.fset(handler, value),
                name,
                _annotation(member.fget),
            )
            continue

        if static and not isinstance(member, staticmethod | classmethod):
            if _hook(member, "__command__") or _hook(member, "__filter__"):
                logger.debug("skipped %s.%s: instance methods need an instance handler", owner.__name__, name)
            continue

        if hook := _hook(member, "__filter__"):
            bindings.filters[name] = hook(getattr(handler, name), name)
        elif hook := _hook(member, "__command__"):
            bindings.commands[name] = hook(getattr(handler, name), name)

    return bindings


__all__ = (
    "Bindings",
    "bind",
)
