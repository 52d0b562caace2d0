r"""
Helmsman descriptors and marker decorators.

Overview
- Descriptors
  • Command: a named, invocable operation. Binds a string argument vector onto the
    wrapped callable's signature (conversion by annotation, defaults, *args).
  • Option: a named, gettable/settable value backed by a getter/setter pair.
  • Filter: a chain participant wrapping every dispatch; ordered by precedence keys.

- Markers (explicit registration surface for handler objects)
  • @command(...): mark a method (or static/class method) as a command.
  • @option(...): mark a property getter as an option (the property needs a setter).
  • @filter(...): mark a method as a filter instead of a command.
  Each marker stores a hook (__command__, __option__, __filter__) on the function;
  the binder calls the hook with the bound member to produce the descriptor.

Metadata (validated on construction)
- names: one or more non-empty strings without whitespace, case-insensitively distinct.
  The first name is the display name. Option names must be words (\w+) so they can be
  referenced as $(Name).
- category / descr: optional non-empty strings (descr defaults to the callable's docstring).
- visible: hidden commands/options are left out of listings but stay reachable.
- keys (filters only): single characters looked up in the precedence specification.

Argument binding (Command.run)
- Positional parameters take tokens in order; parameters with defaults are optional;
  *args takes the rest. A parameter named `interpreter` receives the interpreter.
- Annotations convert tokens: bool understands true/false/yes/no/on/off/1/0, str and
  unannotated parameters keep the raw string, any other callable is applied.

Quick example:
    >>> class Shell:
    ...     @command("Echo", "Say", descr="print the arguments")
    ...     def echo(self, *words): print(*words)
    ...
    ...     @property
    ...     @option("Level", type=int)
    ...     def level(self): return self._level
    ...
    ...     @level.setter
    ...     def level(self, value): self._level = value
"""
import builtins
import functools
import inspect
import operator
import re
from collections import deque
from inspect import Parameter

from .faults import *
from .utils import *

# Parameter name that receives the interpreter instead of a token.
INJECTED = "interpreter"

_TRUTHS = {"true": True, "yes": True, "on": True, "1": True, "false": False, "no": False, "off": False, "0": False}


def convert(type, value, /):
    """
    Convert a raw token to the given type.

    - Unset, Parameter.empty, str or a non-callable type: returned unchanged.
    - bool: true/yes/on/1 and false/no/off/0 (case-insensitive); anything else is a ValueError.
    - any other callable: type(value).

    Raises ValueError/TypeError from the converter; callers turn those into faults.
    """
    if type is Unset or type is Parameter.empty or type is str or not callable(type):
        return value
    if type is bool:
        try:
            return _TRUTHS[value.strip().casefold()]
        except KeyError:
            raise ValueError(f"invalid boolean {value!r}") from None
    return type(value)


def _typename(type):
    return getattr(type, "__name__", str(type))


class DescriptorType(type):
    """
    Metaclass giving descriptors stable, introspectable shapes.

    Responsibilities
    - Derive __typename__ from the class name (camel-case split with hyphens) for
      consistent messages ("command 'names' must ...").
    - Expose every name listed in __introspectable__ as a read-only property
      backed by the private "_{name}" attribute (see mirror()).
    - Provide a compact __repr__ and a __rich_repr__ for pretty printers, limited
      to __displayable__ when set.
    """
    __introspectable__ = ()
    __displayable__ = Unset

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                name: mirror(name) for name in namespace.get("__introspectable__", ())
            },
        )

        @rename("__repr__")
        def __repr__(self):
            return f"{type(self).__typename__}({
                ", ".join(map(functools.partial(operator.mod, "%s=%r"), self.__rich_repr__()))
            })"
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            for name in coalesce(type(self).__displayable__, type(self).__introspectable__):
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


def _sanitize_names(cls, names, /, *, words=False):
    """
    Validate descriptor names and return them as a tuple (display name first).

    Raises
    - TypeError: no names, or a name that is not a string.
    - ValueError: empty names, names with whitespace, non-word option names,
      or names that collide case-insensitively within the descriptor.
    """
    if not names:
        raise TypeError(f"{cls.__typename__} requires at least one name")
    seen = set()
    sanitized = []
    for name in names:
        if not isinstance(name, str):
            raise TypeError(f"{cls.__typename__} 'names' must be strings")
        if not (name := name.strip()):
            raise ValueError(f"{cls.__typename__} 'names' cannot be empty")
        if not re.fullmatch(r"\w+" if words else r"\S+", name):
            raise ValueError(f"{cls.__typename__} name {name!r} is not valid")
        if (key := casefold(name)) in seen:
            raise ValueError(f"{cls.__typename__} name {name!r} is duplicated")
        seen.add(key)
        sanitized.append(name)
    return tuple(sanitized)


def _sanitize_string(cls, field, value, /):
    if value is Unset or value is None:
        return None
    if not isinstance(value, str):
        raise TypeError(f"{cls.__typename__} {field!r} must be a string")
    if not (value := value.strip()):
        raise ValueError(f"{cls.__typename__} {field!r} cannot be empty")
    return value


class Command(metaclass=DescriptorType):
    """
    Invocable command wrapping a Python callable.

    Parameters
    - callback: the callable to run; its signature defines the accepted tokens.
    - names: display name first, then aliases. Defaults to callback.__name__.
    - category: grouping label for listings (default "general").
    - descr: short description (defaults to the callback's docstring).
    - visible: False hides the command from listings.

    Raises
    - TypeError on a non-callable callback, missing names, or keyword-only
      parameters that can never be filled (no default, not `interpreter`).
    - ValueError on invalid names.
    """
    __introspectable__ = (
        "names",
        "category",
        "descr",
        "visible",
        "usage",
    )

    __displayable__ = (
        "names",
        "category",
        "visible",
    )

    def __init__(self, callback, /, *names, category=Unset, descr=Unset, visible=True):
        if not callable(callback):
            raise TypeError(f"{type(self).__typename__} 'callback' must be callable")
        if not names and hasattr(callback, "__name__"):
            names = (callback.__name__,)
        self._callback = callback
        self._names = _sanitize_names(type(self), names)
        self._category = _sanitize_string(type(self), "category", category) or "general"
        self._descr = _sanitize_string(type(self), "descr", coalesce(descr, inspect.getdoc(callback)))
        self._visible = bool(visible)

        try:
            self._signature = inspect.signature(callback, eval_str=True)
        except ValueError:
            raise ValueError(f"{type(self).__typename__} 'callback' must be an inspectable callable") from None

        defaulted = False
        for parameter in self._signature.parameters.values():
            if parameter.kind is Parameter.KEYWORD_ONLY:
                if parameter.name != INJECTED and parameter.default is Parameter.empty:
                    raise TypeError(
                        f"{type(self).__typename__} keyword-only parameter {parameter.name!r} needs a default"
                    )
            elif parameter.kind is Parameter.POSITIONAL_ONLY and parameter.name == INJECTED and defaulted:
                raise TypeError(
                    f"{type(self).__typename__} positional-only {INJECTED!r} cannot follow optional parameters"
                )
            elif parameter.default is not Parameter.empty:
                defaulted = True

        self._usage = self._synthesize_usage()

    @property
    def name(self):
        """
        The display name (first registered name).
        """
        return self._names[0]

    @property
    def callback(self):
        return self._callback

    def _synthesize_usage(self):
        parts = [self.name]
        for parameter in self._signature.parameters.values():
            if parameter.name == INJECTED:
                continue
            label = re.sub(r"_+", "-", parameter.name.strip("_")) or parameter.name
            match parameter.kind:
                case Parameter.VAR_POSITIONAL:
                    parts.append(f"[{label} ...]")
                case Parameter.POSITIONAL_ONLY | Parameter.POSITIONAL_OR_KEYWORD:
                    parts.append(f"<{label}>" if parameter.default is Parameter.empty else f"[{label}]")
        return " ".join(parts)

    def _convert(self, parameter, value, position):
        try:
            return convert(parameter.annotation, value)
        except (TypeError, ValueError):
            raise InvalidArgumentError(
                "cannot convert %r at position %d to %s for command %r",
                value, position, _typename(parameter.annotation), self.name,
                title="invalid argument",
                code=FaultCode.INVALID_ARGUMENT,
                hint="usage: %s" % self.usage,
                command=self,
                value=value,
            ) from None

    def bind(self, interpreter, arguments, /):
        """
        Map string tokens onto the callback's parameters.

        Returns
        - (args, kwargs) ready to call the callback with.

        Raises
        - MissingArgumentsError, TooManyArgumentsError, InvalidArgumentError.
        """
        tokens = deque(arguments)
        args = []
        kwargs = {}
        exhausted = False
        position = 0

        for parameter in self._signature.parameters.values():
            if parameter.name == INJECTED and parameter.kind is not Parameter.VAR_POSITIONAL:
                if parameter.kind is Parameter.POSITIONAL_ONLY or (
                        parameter.kind is Parameter.POSITIONAL_OR_KEYWORD and not exhausted
                ):
                    args.append(interpreter)
                elif parameter.kind is not Parameter.VAR_KEYWORD:
                    kwargs[parameter.name] = interpreter
                continue

            match parameter.kind:
                case Parameter.POSITIONAL_ONLY | Parameter.POSITIONAL_OR_KEYWORD:
                    if tokens:
                        position += 1
                        args.append(self._convert(parameter, tokens.popleft(), position))
                    elif parameter.default is Parameter.empty:
                        required = sum(
                            1 for x in self._signature.parameters.values()
                            if x.name != INJECTED
                            and x.kind in (Parameter.POSITIONAL_ONLY, Parameter.POSITIONAL_OR_KEYWORD)
                            and x.default is Parameter.empty
                        )
                        raise MissingArgumentsError(
                            "command %r expects at least %d argument(s) but got %d",
                            self.name, required, len(arguments),
                            title="missing arguments",
                            code=FaultCode.MISSING_ARGUMENTS,
                            hint="usage: %s" % self.usage,
                            command=self,
                        )
                    else:
                        exhausted = True
                case Parameter.VAR_POSITIONAL:
                    while tokens:
                        position += 1
                        args.append(self._convert(parameter, tokens.popleft(), position))

        if tokens:
            raise TooManyArgumentsError(
                "command %r got %d unexpected argument(s): %s",
                self.name, len(tokens), " ".join(map(repr, tokens)),
                title="too many arguments",
                code=FaultCode.TOO_MANY_ARGUMENTS,
                hint="usage: %s" % self.usage,
                command=self,
                leftover=tuple(tokens),
            )

        return args, kwargs

    def run(self, interpreter, arguments, /):
        """
        Bind the tokens and call the callback (its return value is passed through).
        """
        args, kwargs = self.bind(interpreter, arguments)
        return self._callback(*args, **kwargs)


class Option(metaclass=DescriptorType):
    """
    Named value exposed through a getter/setter pair.

    Parameters
    - getter: zero-argument callable returning the current value.
    - setter: one-argument callable applying a new value.
    - names: display name first, then aliases (words only, \\w+).
    - type: converter applied to string values on assignment. When Unset, the
      type of the current value is used (unless it is None or a str).
    - category / descr / visible: documentation metadata.

    Assignment contract
    - A string that cannot be converted, or a value the setter rejects with
      ValueError/TypeError, raises InvalidOptionValueError; the current value is
      left as it was.
    """
    __introspectable__ = (
        "names",
        "category",
        "descr",
        "visible",
        "type",
    )

    __displayable__ = (
        "names",
        "category",
        "type",
    )

    def __init__(self, getter, setter, /, *names, type=Unset, category=Unset, descr=Unset, visible=True):
        if not callable(getter):
            raise TypeError(f"{builtins.type(self).__typename__} 'getter' must be callable")
        if not callable(setter):
            raise TypeError(f"{builtins.type(self).__typename__} 'setter' must be callable")
        if type is not Unset and not callable(type):
            raise TypeError(f"{builtins.type(self).__typename__} 'type' must be callable")
        if not names and re.fullmatch(r"\w+", getattr(getter, "__name__", "")):
            names = (getter.__name__,)
        self._getter = getter
        self._setter = setter
        self._names = _sanitize_names(builtins.type(self), names, words=True)
        self._type = coalesce(type)
        self._category = _sanitize_string(builtins.type(self), "category", category) or "general"
        self._descr = _sanitize_string(builtins.type(self), "descr", descr)
        self._visible = bool(visible)

    @property
    def name(self):
        return self._names[0]

    @property
    def value(self):
        return self._getter()

    @value.setter
    def value(self, value):
        type = self._type
        if type is None:
            current = self._getter()
            type = builtins.type(current) if current is not None else Unset

        if isinstance(value, str):
            try:
                value = convert(type, value)
            except (TypeError, ValueError):
                raise InvalidOptionValueError(
                    "option %r expects a value of type %s, not %r",
                    self.name, _typename(type), value,
                    title="invalid option value",
                    code=FaultCode.INVALID_OPTION_VALUE,
                    hint="try 'get %s' to see the current value" % self.name,
                    option=self,
                ) from None

        try:
            self._setter(value)
        except (TypeError, ValueError) as error:
            raise InvalidOptionValueError(
                "option %r rejected %r: %s",
                self.name, value, error,
                title="invalid option value",
                code=FaultCode.INVALID_OPTION_VALUE,
                option=self,
            ) from error


class Filter(metaclass=DescriptorType):
    """
    Chain participant wrapping command dispatch.

    Parameters
    - callback: callable(chain, arguments). It decides whether, when and with which
      arguments to call chain.next(arguments); chain.interpreter is the context.
    - names: display name first (defaults to callback.__name__).
    - keys: one or more single characters looked up in the precedence specification.
    - descr: short description (defaults to the callback's docstring).
    """
    __introspectable__ = (
        "names",
        "keys",
        "descr",
    )

    def __init__(self, callback, /, *names, keys, descr=Unset):
        if not callable(callback):
            raise TypeError(f"{type(self).__typename__} 'callback' must be callable")
        if not names and hasattr(callback, "__name__"):
            names = (callback.__name__,)
        if not isinstance(keys, str) and not all(isinstance(key, str) for key in keys):
            raise TypeError(f"{type(self).__typename__} 'keys' must be characters")
        if not (keys := tuple(dict.fromkeys(keys))):
            raise ValueError(f"{type(self).__typename__} 'keys' cannot be empty")
        if any(len(key) != 1 for key in keys):
            raise ValueError(f"{type(self).__typename__} 'keys' must be single characters")
        self._callback = callback
        self._names = _sanitize_names(type(self), names)
        self._keys = keys
        self._descr = _sanitize_string(type(self), "descr", coalesce(descr, inspect.getdoc(callback)))

    @property
    def name(self):
        return self._names[0]

    def process(self, chain, arguments, /):
        return self._callback(chain, arguments)


def _target(member, /):
    # static and class methods carry the marker on the wrapped function
    return getattr(member, "__func__", member)


def command(*names, category=Unset, descr=Unset, visible=True):
    """
    Mark a handler method as a command (usable bare or with arguments).

        @command
        def echo(self, *words): ...

        @command("Echo", "Say", category="text")
        def echo(self, *words): ...
    """
    if len(names) == 1 and (callable(names[0]) or isinstance(names[0], staticmethod | classmethod)):
        return command()(names[0])

    @rename("command")
    def wrapper(member, /):
        if not callable(target := _target(member)):
            raise TypeError("@command() must be applied to a callable")

        @rename("__command__")
        def hook(callback, /, default=Unset):
            return Command(
                callback,
                *(names or ((default,) if default is not Unset else ())),
                category=category,
                descr=descr,
                visible=visible,
            )
        target.__command__ = hook
        return member

    return wrapper


def option(*names, type=Unset, category=Unset, descr=Unset, visible=True):
    """
    Mark a property getter as an option. Apply it below @property:

        @property
        @option("Level", type=int)
        def level(self): ...

    When type is omitted, the getter's return annotation is used (if any).
    """
    if len(names) == 1 and callable(names[0]):
        return option()(names[0])

    @rename("option")
    def wrapper(getter, /):
        if not callable(getter):
            raise TypeError("@option() must be applied to a property getter")

        @rename("__option__")
        def hook(get, set, /, default=Unset, annotation=Unset):
            return Option(
                get,
                set,
                *(names or ((default,) if default is not Unset else ())),
                type=annotation if type is Unset else type,
                category=category,
                descr=coalesce(descr, inspect.getdoc(getter) or Unset),
                visible=visible,
            )
        getter.__option__ = hook
        return getter

    return wrapper


def filter(*names, keys, descr=Unset):
    """
    Mark a handler method as a filter (it is registered in the chain, not as a command).

        @filter("redirect", keys="<>")
        def redirect(self, chain, arguments): ...
    """
    @rename("filter")
    def wrapper(member, /):
        if not callable(target := _target(member)):
            raise TypeError("@filter() must be applied to a callable")

        @rename("__filter__")
        def hook(callback, /, default=Unset):
            return Filter(
                callback,
                *(names or ((default,) if default is not Unset else ())),
                keys=keys,
                descr=descr,
            )
        target.__filter__ = hook
        return member

    return wrapper


__all__ = (
    "Command",
    "Option",
    "Filter",
    "command",
    "option",
    "filter",
    "convert",
)
