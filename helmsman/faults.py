"""
Helmsman faults (errors and control-flow signals) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for every user-facing fault.
  Codes are grouped by domain (routing, registration, expansion, options, arguments).
- InterpreterException: the “well-known application error” base. It carries a
  formatted message plus options (code, title, hint, context) and knows how to
  render itself with rich. The interactive loop reports these message-first,
  without a traceback.
- QuitInterpreter: the quit signal. It derives from BaseException so that a
  filter or command catching Exception cannot swallow it by accident.

Integration
- Registry, expander and dispatcher raise faults with
  `raise UnknownCommandError(message, *args, title=..., code=..., hint=...)`
  or through the assertion-style `InterpreterException.verify(...)`.
- Interpreter.on_error renders faults via copy.replace(fault, colorful=..., fancy=...)
  so the runtime flags of the interpreter decide the styling.
"""
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset, UnsetType


class FaultCode(IntEnum):
    """
    canonical fault codes used across the interpreter (stable identifiers).

    grouping (by high-level domain)
    - routing (111xx): UNKNOWN_COMMAND
    - registration (112xx): DUPLICATE_COMMAND, DUPLICATE_OPTION
    - expansion (113xx): UNKNOWN_OPTION, MALFORMED_MACRO, MALFORMED_INPUT
    - options (114xx): INVALID_OPTION_VALUE
    - arguments (115xx): MISSING_ARGUMENTS, TOO_MANY_ARGUMENTS, INVALID_ARGUMENT
    """
    # --- routing errors (111xx) ---
    UNKNOWN_COMMAND      = 11101

    # --- registration errors (112xx) ---
    DUPLICATE_COMMAND    = 11201
    DUPLICATE_OPTION     = 11202

    # --- expansion errors (113xx) ---
    UNKNOWN_OPTION       = 11301
    MALFORMED_MACRO      = 11302
    MALFORMED_INPUT      = 11303

    # --- option errors (114xx) ---
    INVALID_OPTION_VALUE = 11401

    # --- argument binding errors (115xx) ---
    MISSING_ARGUMENTS    = 11501
    TOO_MANY_ARGUMENTS   = 11502
    INVALID_ARGUMENT     = 11503

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels. when no mapping
        is present, the numeric value is returned as a string.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


class InterpreterException(Exception):
    """
    base class of every well-known interpreter fault.

    construction
    - message: a %-style format string; positional args are applied to it only
      when given, so literal '%' in already formatted text is safe.
    - options: free-form context. recognized keys are code (FaultCode),
      title, hint, colorful and fancy; anything else (name, suggestions, ...)
      is kept for programmatic inspection.
    """

    def __init__(self, message=Unset, /, *args, **options):
        assert isinstance(message, str | UnsetType)
        if args and isinstance(message, str):
            message = message % args
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)

    @property
    def code(self):
        return self.options.get("code")

    @property
    def title(self):
        return self.options.get("title", "error")

    @property
    def hint(self):
        return self.options.get("hint")

    def __str__(self):
        return str(self.message)

    @classmethod
    def verify(cls, condition, message, /, *args, **options):
        """
        raise cls(message, *args, **options) unless condition holds.

        assertion-style helper for registration and lookup checks.
        """
        if not condition:
            raise cls(message, *args, **options)

    def __rich__(self):
        main = __import__("__main__")
        colorful = self.options.get("colorful", False)

        styles = defaultdict(str, {
            # header parts
            "prog-name": "bold #E6E6F0",  # near-white program name
            "code": "bold #00E5FF",  # neon cyan fault code
            "error-title": "bold #FF4DA6",  # friendly pinky title

            # body
            "error-message": "#C8C8D0",  # soft light gray message
            "hint-arrow": "#9CE19C dim",  # gentle green arrow
            "hint": "italic #9CE19C",  # gentle green hint text
        } | getattr(main, "__styles__", {}))

        def styler(style):
            return styles[style] if colorful else ""

        def text(fragment, style=""):
            if not fragment:
                return Text("")
            if not colorful:
                return Text(str(fragment))
            if isinstance(fragment, Text):
                return fragment
            return Text(str(fragment), style)

        prog = text(getattr(main, "__prog__", "helmsman"), styler("prog-name"))

        header = Text.assemble("[ ", prog)
        if isinstance(self.code, FaultCode):
            header.append(" — ").append(text(self.code.normalize(), styler("code")))
        header.append_text(Text.assemble(" | ", text(self.title.title(), styler("error-title")), " ]"))

        message = text(self.message, styler("error-message"))
        renders = [message]
        if self.hint:
            renders.append(Text.assemble(text(" → ", styler("hint-arrow")), text(self.hint, styler("hint"))))

        if self.options.get("fancy", False):
            return Panel(Group(*renders), title=header, title_align="left")

        return Group(header, *renders)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class DuplicateNameError(InterpreterException): ...
class UnknownCommandError(InterpreterException): ...
class UnknownOptionError(InterpreterException): ...
class MalformedMacroError(InterpreterException): ...
class MalformedInputError(InterpreterException): ...
class InvalidOptionValueError(InterpreterException): ...
class MissingArgumentsError(InterpreterException): ...
class TooManyArgumentsError(InterpreterException): ...
class InvalidArgumentError(InterpreterException): ...


class QuitInterpreter(BaseException):
    """
    control-flow signal ending the interactive loop (never reported as an error).
    """


__all__ = (
    "FaultCode",
    "InterpreterException",
    "DuplicateNameError",
    "UnknownCommandError",
    "UnknownOptionError",
    "MalformedMacroError",
    "MalformedInputError",
    "InvalidOptionValueError",
    "MissingArgumentsError",
    "TooManyArgumentsError",
    "InvalidArgumentError",
    "QuitInterpreter",
)
