"""
Helmsman interpreter: registry + filter chain + expansion + read-eval loop.

What this module provides
- Interpreter: the context object handed to every command and filter. It owns the
  command/option registry, the filter chain, the prompt, the error level and the
  stream fields (stdin/stdout/stderr).
- BuiltIns: flags selecting which built-in commands/options get registered.

Dispatch pipeline
    prompt  → expand → write → read line → tokenize
    tokens  → filter chain (precedence order) → terminal dispatch
    terminal dispatch → resolve first token → expand remaining tokens → command.run

Entry points
- execute(*arguments): one dispatch step; faults propagate to the caller.
- run(*arguments): execute() and report any error through on_error().
- loop(stream): read lines until end of input or `quit`/`exit`.

Streams
- stdin/stdout/stderr are fields of the interpreter. Unset fields resolve to the
  current sys streams when used. execute() saves the fields and the sys streams
  and restores whatever a command or filter redirected, on every exit path.

Quick start
    from helmsman import Interpreter, command

    class Shell:
        @command("Echo")
        def echo(self, text, *, interpreter):
            print(text, file=interpreter.stdout)

    if __name__ == "__main__":
        interpreter = Interpreter(Shell())
        interpreter.loop()
        raise SystemExit(interpreter.error_level)
"""
import copy
import logging
import sys
from collections.abc import Iterable
from contextlib import contextmanager
from enum import IntFlag

from rich.box import ROUNDED
from rich.console import Console, Group
from rich.table import Table
from rich.text import Text
from rich.traceback import Traceback

from .binder import bind
from .chain import FilterChain, DEFAULT_PRECEDENCE
from .descriptors import Command, Option, Filter, command, option
from .expansion import tokenize, expand
from .faults import *
from .registry import Registry
from .utils import *

logger = logging.getLogger(__name__)


class BuiltIns(IntFlag):
    """
    Built-in commands and options registered at construction.
    """
    NONE = 0
    GET = 1
    SET = 2
    HELP = 4
    ERROR_LEVEL = 8
    PROMPT = 16
    DEFAULT = GET | SET | HELP | ERROR_LEVEL | PROMPT


# attribute name on Interpreter -> flag enabling it
_BUILTINS = {
    "get": BuiltIns.GET,
    "set": BuiltIns.SET,
    "help": BuiltIns.HELP,
    "error_level": BuiltIns.ERROR_LEVEL,
    "prompt": BuiltIns.PROMPT,
}


class Interpreter:
    """
    Command-line interpreter built from handler objects.

    Parameters
    - handlers: objects (or types) donating marked commands, options and filters.
    - builtins: BuiltIns flags (default: get, set, help, ErrorLevel, Prompt).
    - prompt: prompt template; may reference options as $(Name).
    - precedence: filter precedence specification (default "<|*").
    - colorful / fancy: rendering flags for faults and listings.
    - stdin / stdout / stderr: stream fields (Unset follows the sys streams).
    """

    def __init__(
            self,
            *handlers,
            builtins=BuiltIns.DEFAULT,
            prompt="> ",
            precedence=DEFAULT_PRECEDENCE,
            colorful=False,
            fancy=False,
            stdin=Unset,
            stdout=Unset,
            stderr=Unset,
    ):
        self._registry = Registry()
        self._chain = FilterChain(self, self._dispatch, precedence)
        self._error_level = 0
        self._prompt = "> "
        self.prompt = prompt
        self._colorful = bool(colorful)
        self._fancy = bool(fancy)
        self._stdin = stdin
        self._stdout = stdout
        self._stderr = stderr

        flags = BuiltIns(builtins)
        bindings = bind(self)
        for name, descriptor in bindings.commands.items():
            if flags & _BUILTINS.get(name, BuiltIns.NONE):
                self.add_command(descriptor)
        for name, descriptor in bindings.options.items():
            if flags & _BUILTINS.get(name, BuiltIns.NONE):
                self.add_option(descriptor)

        for handler in handlers:
            self.add_handler(handler)

    # ── registration ────────────────────────────────────────────────────────

    def add_handler(self, handler, /):
        """
        Register every command, option and filter the handler donates (see binder.bind).
        """
        bindings = bind(handler)
        for descriptor in bindings.commands.values():
            self.add_command(descriptor)
        for descriptor in bindings.options.values():
            self.add_option(descriptor)
        for descriptor in bindings.filters.values():
            self.add_filter(descriptor)

    def add_command(self, command, /):
        if not isinstance(command, Command):
            raise TypeError("add_command() argument must be a command")
        self._registry.add_command(command)

    def remove_command(self, command, /):
        self._registry.remove_command(command)

    def add_option(self, option, /):
        if not isinstance(option, Option):
            raise TypeError("add_option() argument must be an option")
        self._registry.add_option(option)

    def remove_option(self, option, /):
        self._registry.remove_option(option)

    def add_filter(self, filter, /):
        """
        Add a filter called for every command, enabling argument rewriting and
        pre/post processing. Invalidates the built chain.
        """
        if not isinstance(filter, Filter):
            raise TypeError("add_filter() argument must be a filter")
        self._chain.add(filter)

    def remove_filter(self, filter, /):
        self._chain.remove(filter)

    # ── state ───────────────────────────────────────────────────────────────

    @property
    def commands(self):
        """
        Registered commands, each once, sorted by display name.
        """
        return self._registry.commands.entries

    @property
    def options(self):
        return self._registry.options.entries

    @property
    def filters(self):
        return self._chain.filters

    @property
    def filter_precedence(self):
        """
        Filter precedence by appearance order of key characters.
        """
        return self._chain.precedence

    @filter_precedence.setter
    def filter_precedence(self, precedence):
        self._chain.precedence = precedence

    @property
    def colorful(self):
        return self._colorful

    @property
    def fancy(self):
        return self._fancy

    @property
    def stdin(self):
        return coalesce(self._stdin, sys.stdin)

    @stdin.setter
    def stdin(self, stream):
        self._stdin = stream

    @property
    def stdout(self):
        return coalesce(self._stdout, sys.stdout)

    @stdout.setter
    def stdout(self, stream):
        self._stdout = stream

    @property
    def stderr(self):
        return coalesce(self._stderr, sys.stderr)

    @stderr.setter
    def stderr(self, stream):
        self._stderr = stream

    @property
    @option("ErrorLevel", category="built-in", descr="Gets or sets the exit code of the operation.")
    def error_level(self) -> int:
        return self._error_level

    @error_level.setter
    def error_level(self, value):
        if not isinstance(value, int) or isinstance(value, bool):
            raise TypeError("error level must be an integer")
        self._error_level = value

    @property
    @option("Prompt", category="built-in", descr="Gets or sets the text to display to prompt for input.")
    def prompt(self) -> str:
        return self._prompt

    @prompt.setter
    def prompt(self, value):
        if not isinstance(value, str):
            raise TypeError("prompt must be a string")
        self._prompt = value

    # ── built-in commands ───────────────────────────────────────────────────

    def _console(self, stream):
        return Console(file=stream, highlight=False, soft_wrap=True, no_color=not self._colorful)

    @command("get", category="built-in", descr="Gets a global option by name.")
    def get(self, name):
        option = self._registry.option(name)
        UnknownOptionError.verify(
            option is not None,
            "The option %s was not found.", name,
            title="unknown option",
            code=FaultCode.UNKNOWN_OPTION,
            hint="run 'set' to list the options",
            name=name,
        )
        value = option.value
        print("%s" % (value,), file=self.stdout)
        return value

    @command("set", category="built-in", descr="Sets a global option by name or lists options available.")
    def set(self, name=None, value=None):
        if name is None:
            for option in self.options:
                if option.visible:
                    print("%s=%s" % (option.name, option.value), file=self.stdout)
            return
        if value is None:
            self.get(name)
            return
        option = self._registry.option(name)
        UnknownOptionError.verify(
            option is not None,
            "The option %s was not found.", name,
            title="unknown option",
            code=FaultCode.UNKNOWN_OPTION,
            hint="run 'set' to list the options",
            name=name,
        )
        option.value = value

    @command("help", category="built-in", descr="Lists the commands or describes one of them.")
    def help(self, name=None):
        console = self._console(self.stdout)
        styles = {
            "title": "bold #FFFFFF",
            "name": "bold #36C5F0",
            "alias": "#36C5F0 dim",
            "usage": "bold #FFD600",
            "description": "#9CA3AF",
        } | getattr(__import__("__main__"), "__styles__", {})

        def styler(style):
            return styles.get(style, "") if self._colorful else ""

        if name is not None:
            command = self._resolve(name)
            renders = [Text.assemble(("usage: ", styler("title")), (command.usage, styler("usage")))]
            if len(command.names) > 1:
                renders.append(Text.assemble(("aliases: ", styler("title")), (", ".join(command.names[1:]), styler("alias"))))
            if command.descr:
                renders.append(Text(command.descr, styler("description")))
            console.print(Group(*renders))
            return

        categories = {}
        for command in self.commands:
            if command.visible:
                categories.setdefault(command.category, []).append(command)

        for category, commands in sorted(categories.items(), key=lambda x: casefold(x[0])):
            table = Table(
                "name", "help",
                title=Text(category, styler("title")),
                title_justify="left",
                box=ROUNDED,
                header_style=styler("title"),
            )
            for command in commands:
                names = Text(command.name, styler("name"))
                if len(command.names) > 1:
                    names.append(Text(" (%s)" % ", ".join(command.names[1:]), styler("alias")))
                descr = (command.descr or "").splitlines()
                table.add_row(names, Text(descr[0] if descr else command.usage, styler("description")))
            console.print(table)

    def _quit(self):
        raise QuitInterpreter()

    # ── dispatch ────────────────────────────────────────────────────────────

    def _resolve(self, name):
        command = self._registry.command(name)
        if command is None:
            suggestions = self._registry.commands.suggest(name)
            hint = ("did you mean %r? " % suggestions[0] if suggestions else "") + "run 'help' to list the commands"
            raise UnknownCommandError(
                "Invalid command name: %s",
                name,
                title="unknown command",
                code=FaultCode.UNKNOWN_COMMAND,
                hint=hint,
                name=name,
                suggestions=suggestions,
            )
        return command

    def _dispatch(self, arguments):
        """
        The last link in the chain: resolve the command and run it.
        """
        if not arguments:
            return self.help()
        name, *arguments = arguments
        command = self._resolve(name)
        return command.run(self, [expand(argument, self._registry.options) for argument in arguments])

    @contextmanager
    def _preserved_streams(self):
        fields = self._stdin, self._stdout, self._stderr
        streams = sys.stdin, sys.stdout, sys.stderr
        try:
            yield
        finally:
            self._stdin, self._stdout, self._stderr = fields
            if sys.stdin is not streams[0]:
                sys.stdin = streams[0]
            if sys.stdout is not streams[1]:
                sys.stdout = streams[1]
            if sys.stderr is not streams[2]:
                sys.stderr = streams[2]

    def execute(self, *arguments):
        """
        Push one argument vector through the filter chain.

        Accepts either separate strings or a single iterable of strings. Any
        stream redirected while running is restored before returning or raising.
        """
        if len(arguments) == 1 and not isinstance(arguments[0], str) and isinstance(arguments[0], Iterable):
            arguments = tuple(arguments[0])
        if not all(isinstance(argument, str) for argument in arguments):
            raise TypeError("execute() arguments must be strings")
        with self._preserved_streams():
            return self._chain.head.next(arguments)

    def run(self, *arguments):
        """
        Run the command whose name is the first argument with the remaining
        arguments; errors are reported through on_error(). Quit propagates.
        """
        try:
            return self.execute(*arguments)
        except Exception as error:
            self.on_error(error)

    def loop(self, stream=Unset, /):
        """
        Run each line from stream (default: stdin) until end of input or quit.

        A prompt that fails to expand is reported and written as the raw template;
        faults from tokenizing or dispatch are reported and the loop goes on.
        """
        quit = Command(self._quit, "quit", "exit", category="built-in", descr="Leaves the interpreter.", visible=False)
        self.add_command(quit)
        try:
            while True:
                try:
                    prompt = expand(self.prompt, self._registry.options)
                except InterpreterException as error:
                    self.on_error(error)
                    prompt = self.prompt
                self.stdout.write(prompt)
                self.stdout.flush()

                line = coalesce(stream, self.stdin).readline()
                if not line:
                    break

                try:
                    self.run(*tokenize(line))
                except QuitInterpreter:
                    break
                except InterpreterException as error:
                    self.on_error(error)
        finally:
            self.remove_command(quit)

    def on_error(self, error, /):
        """
        Report an error: faults are shown message-first, anything else with a
        full traceback. Faults are logged at debug level without a traceback,
        anything else at error level with one. Sets the error level to 1 if it is
        still 0.
        """
        console = self._console(self.stderr)
        if isinstance(error, InterpreterException):
            logger.debug("%s", error)
            console.print(copy.replace(error, colorful=self._colorful, fancy=self._fancy))
        else:
            logger.error("%s", error, exc_info=error)
            console.print(Traceback.from_exception(type(error), error, error.__traceback__))
        if self._error_level == 0:
            self._error_level = 1


__all__ = (
    "BuiltIns",
    "Interpreter",
)
