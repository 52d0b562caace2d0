"""
Helmsman utilities (internal helpers, carefully exposed)

Scope
- Small building blocks shared by the descriptor, registry and interpreter layers.

Overview
- UnsetType / Unset
  • Singleton sentinel to represent “value not provided” without conflating with None.
  • Falsey (bool(Unset) is False), printable as "Unset", and non-subclassable.

- coalesce(value, default=None)
  • Replace Unset with a concrete default, but preserve legitimate falsey values like None/0/"".

- @rename("name")
  • Name generated wrappers (__name__ and __qualname__) for readable tracebacks and reprs.

- mirror("attr")
  • Read-only property factory exposing a private backing field (self._attr) through an
    immutable view (tuple, frozenset or mapping proxy) for container values.

- casefold(name)
  • Normalization used for every case-insensitive name comparison in the package.

Quick examples
    >>> coalesce(Unset, "> ")
    '> '
    >>> coalesce("", "> ")
    ''
    >>> casefold("ErrorLevel") == casefold("errorlevel")
    True
"""
import builtins
import functools
from collections.abc import Sequence, Mapping, Set
from types import MappingProxyType
from typing import final


@final
class UnsetType:
    """
    Internal sentinel type representing a value that was not provided.

    Used where None is a legitimate value (an option may hold None, a stream field
    may be explicitly cleared) but the API still needs to tell “not provided” apart.

    Characteristics
    - Boolean-false: bool(Unset) is False, but it is distinct from None and 0.
    - Printable: repr(Unset) -> "Unset".
    - Non-subclassable and a per-process singleton.
    """

    @functools.cache
    def __new__(cls):
        return super().__new__(cls)

    def __bool__(self):
        return False

    def __repr__(self):
        return "Unset"

    def __init_subclass__(cls, **options):
        raise TypeError("type 'UnsetType' is not an acceptable base type")


def coalesce(object, default=None, /):
    """
    Resolve the Unset sentinel to a concrete default.

    Returns object unless it is Unset, in which case default is returned. Falsey
    values such as None, 0 or "" are preserved as-is.

    Examples
    - coalesce("$ ", "> ")  -> "$ "
    - coalesce(Unset, "> ") -> "> "
    - coalesce(None, "> ")  -> None
    """
    return object if object is not Unset else default


def rename(name, /):
    """
    Decorator giving a generated callable a stable __name__/__qualname__, so
    wrappers read well in tracebacks and reprs.

        @rename("__repr__")
        def __repr__(self): ...
    """
    if not isinstance(name, str):
        raise TypeError("@rename() argument must be a string")

    def decorator(function):
        if not builtins.callable(function):
            raise TypeError("@rename() must be applied to a callable")
        function.__name__ = function.__qualname__ = name
        return function

    return decorator


def _freeze(object):
    """
    Return an immutable view of a container value (non-containers pass through).

    - Sequence (non-string) → tuple
    - Mapping               → MappingProxyType
    - Set                   → frozenset
    """
    if isinstance(object, Sequence) and not isinstance(object, str):
        return tuple(object)
    if isinstance(object, Mapping):
        return MappingProxyType(object)
    if isinstance(object, Set):
        return frozenset(object)
    return object


def mirror(name, /):
    """
    Define a read-only property that mirrors a private backing attribute.

    The property reads "_{name}" from the instance and wraps container values in
    an immutable view, so callers cannot mutate descriptor state through the
    public API.

    Example
    - Given self._names, declare names = mirror("names") to expose it safely.
    """
    if not isinstance(name, str):
        raise TypeError("mirror() argument must be a string")

    @rename(name)
    def getter(self):
        return _freeze(getattr(self, "_" + name))

    return property(getter)


def casefold(name, /):
    """
    Normalize a command/option name for case-insensitive lookups.
    """
    if not isinstance(name, str):
        raise TypeError("casefold() argument must be a string")
    return name.casefold()


Unset = UnsetType()
"""
Internal sentinel for “not provided”.

Typical pattern: value = coalesce(user_value, default) to materialize a fallback
only when user_value is Unset (None and other falsey values are preserved).
"""


__all__ = (
    # Functions
    "coalesce",
    "rename",
    "mirror",
    "casefold",

    # Types
    "UnsetType",

    # Constants
    "Unset",
)
