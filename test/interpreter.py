"""
Interpreter module behavioral tests (dispatch, built-ins, loop, error recovery).

Scope
- Validate dispatch end to end: tokens, argument expansion, binding faults.
- Validate the built-ins (get, set, help, ErrorLevel, Prompt) and their selection.
- Validate the read-eval loop: prompt expansion, quit, end of input, recovery.
- Validate error reporting, the error level rule and stream restoration.
- Validate filters registered from handlers wrap every dispatch.

Conventions
- Test method names follow CamelCase per project convention.
- Streams are captured with io.StringIO handed to the interpreter.
- Tests use the public API (Interpreter, BuiltIns, command, option, filter).
"""

from __future__ import annotations

import io
import sys
import unittest
from unittest import TestCase

from helmsman import Interpreter, BuiltIns, Command, Option, Filter, command, option, filter
from helmsman.faults import (
    DuplicateNameError,
    UnknownCommandError,
    UnknownOptionError,
    InvalidOptionValueError,
    MissingArgumentsError,
    TooManyArgumentsError,
    InvalidArgumentError,
    QuitInterpreter,
)


class Shell:
    def __init__(self):
        self._level = 0

    @command("Echo", "Say", category="text")
    def echo(self, *words, interpreter):
        """Print the arguments separated by spaces."""
        print(" ".join(words), file=interpreter.stdout)

    @command("Add")
    def add(self, a: int, b: int, interpreter):
        print(a + b, file=interpreter.stdout)

    @command("Boom")
    def boom(self):
        raise RuntimeError("kaboom")

    @command("Hijack")
    def hijack(self, interpreter):
        interpreter.stdout = io.StringIO()
        sys.stdout = interpreter.stdout

    @command("Leak")
    def leak(self, interpreter):
        self.hijack(interpreter)
        raise RuntimeError("leaked")

    @command("Leave")
    def leave(self, interpreter):
        self.hijack(interpreter)
        raise QuitInterpreter()

    @property
    @option("Level")
    def level(self) -> int:
        return self._level

    @level.setter
    def level(self, value):
        self._level = value


class Capture:
    def __init__(self):
        self.captured = []

    @filter("capture", keys=">")
    def capture(self, chain, arguments):
        if len(arguments) < 2 or arguments[-2] != ">":
            return chain.next(arguments)
        chain.interpreter.stdout = buffer = io.StringIO()
        chain.next(arguments[:-2])
        self.captured.append((arguments[-1], buffer.getvalue()))


class InterpreterTestCase(TestCase):
    def setUp(self):
        self.stdout = io.StringIO()
        self.stderr = io.StringIO()
        self.shell = Shell()
        self.interpreter = Interpreter(self.shell, stdout=self.stdout, stderr=self.stderr)


class TestDispatch(InterpreterTestCase):
    """Behavioral tests for one dispatch step."""

    def testEchoWritesToStdout(self):
        self.interpreter.run("Echo", "hello", "world")
        self.assertEqual(self.stdout.getvalue(), "hello world\n")
        self.assertEqual(self.interpreter.error_level, 0)

    def testNamesAreCaseInsensitive(self):
        self.interpreter.run("sAY", "hi")
        self.assertEqual(self.stdout.getvalue(), "hi\n")

    def testExecuteAcceptsIterable(self):
        self.interpreter.execute(["Echo", "hi"])
        self.assertEqual(self.stdout.getvalue(), "hi\n")

    def testExecuteRejectsNonStrings(self):
        with self.assertRaises(TypeError):
            self.interpreter.execute("Echo", 1)

    def testArgumentsAreConvertedByAnnotation(self):
        self.interpreter.run("Add", "2", "3")
        self.assertEqual(self.stdout.getvalue(), "5\n")

    def testArgumentBindingFaults(self):
        with self.assertRaises(MissingArgumentsError) as context:
            self.interpreter.execute("Add", "1")
        self.assertEqual(context.exception.hint, "usage: Add <a> <b>")
        with self.assertRaises(TooManyArgumentsError):
            self.interpreter.execute("Add", "1", "2", "3")
        with self.assertRaises(InvalidArgumentError):
            self.interpreter.execute("Add", "x", "2")

    def testArgumentsAreExpanded(self):
        self.interpreter.run("set", "Level", "4")
        self.interpreter.run("Echo", "level=$(Level)", "$$(Level)")
        self.assertEqual(self.stdout.getvalue(), "level=4 $(Level)\n")

    def testExecutePropagatesFaults(self):
        with self.assertRaises(UnknownCommandError):
            self.interpreter.execute("Bogus")
        self.assertEqual(self.interpreter.error_level, 0)

    def testUnknownCommandReported(self):
        self.interpreter.run("Bogus")
        self.assertIn("Invalid command name: Bogus", self.stderr.getvalue())
        self.assertEqual(self.interpreter.error_level, 1)

    def testUnknownCommandSuggestsCloseName(self):
        with self.assertRaises(UnknownCommandError) as context:
            self.interpreter.execute("Ecoh")
        self.assertIn("'Echo'", context.exception.hint)

    def testUnexpectedErrorReportedWithTraceback(self):
        self.interpreter.run("Boom")
        self.assertIn("kaboom", self.stderr.getvalue())
        self.assertEqual(self.interpreter.error_level, 1)

    def testErrorLevelIsSetOnlyOnce(self):
        self.interpreter.error_level = 5
        self.interpreter.run("Bogus")
        self.assertEqual(self.interpreter.error_level, 5)

    def testEmptyInputListsCommands(self):
        self.interpreter.add_command(Command(lambda: None, "Secret", visible=False))
        self.interpreter.run()
        listing = self.stdout.getvalue()
        for name in ("Echo", "Add", "get", "set", "help"):
            self.assertIn(name, listing)
        self.assertNotIn("Secret", listing)
        self.interpreter.run("Secret")
        self.assertEqual(self.interpreter.error_level, 0)

    def testStreamsAreRestored(self):
        stdout = sys.stdout
        try:
            self.interpreter.run("Hijack")
            self.assertIs(self.interpreter.stdout, self.stdout)
            self.assertIs(sys.stdout, stdout)
        finally:
            sys.stdout = stdout

    def testStreamsAreRestoredAfterReportedError(self):
        stdout = sys.stdout
        try:
            self.interpreter.run("Leak")
            self.assertIs(self.interpreter.stdout, self.stdout)
            self.assertIs(sys.stdout, stdout)
            self.assertIn("leaked", self.stderr.getvalue())
        finally:
            sys.stdout = stdout

    def testStreamsAreRestoredAfterPropagatedError(self):
        stdout = sys.stdout
        try:
            with self.assertRaises(RuntimeError):
                self.interpreter.execute("Leak")
            self.assertIs(self.interpreter.stdout, self.stdout)
            self.assertIs(sys.stdout, stdout)
        finally:
            sys.stdout = stdout

    def testStreamsAreRestoredAfterQuit(self):
        stdout = sys.stdout
        try:
            with self.assertRaises(QuitInterpreter):
                self.interpreter.run("Leave")
            self.assertIs(self.interpreter.stdout, self.stdout)
            self.assertIs(sys.stdout, stdout)
            self.assertEqual(self.interpreter.error_level, 0)
        finally:
            sys.stdout = stdout

    def testFaultsAreLoggedWithoutTraceback(self):
        with self.assertLogs("helmsman.interpreter", level="DEBUG") as logs:
            self.interpreter.run("Bogus")
        record, = logs.records
        self.assertEqual(record.levelname, "DEBUG")
        self.assertIsNone(record.exc_info)
        self.assertEqual(record.getMessage(), "Invalid command name: Bogus")

    def testUnexpectedErrorsAreLoggedWithTraceback(self):
        with self.assertLogs("helmsman.interpreter", level="DEBUG") as logs:
            self.interpreter.run("Boom")
        record, = logs.records
        self.assertEqual(record.levelname, "ERROR")
        self.assertIs(record.exc_info[0], RuntimeError)

    def testUncategorizedCommandsAreListedAsGeneral(self):
        self.interpreter.add_command(Command(lambda: None, "Plain"))
        self.interpreter.run()
        self.assertIn("Plain", self.stdout.getvalue())
        self.assertIn("general", self.stdout.getvalue())
        self.assertEqual(self.interpreter.error_level, 0)

    def testUnsetStreamsFollowSys(self):
        interpreter = Interpreter()
        self.assertIs(interpreter.stdout, sys.stdout)
        self.assertIs(interpreter.stderr, sys.stderr)
        self.assertIs(interpreter.stdin, sys.stdin)


class TestBuiltIns(InterpreterTestCase):
    """Behavioral tests for the built-in commands and options."""

    def testSetThenGetOption(self):
        self.interpreter.run("set", "Level", "5")
        self.assertEqual(self.interpreter.execute("get", "level"), 5)
        self.assertEqual(self.stdout.getvalue(), "5\n")
        self.assertEqual(self.shell.level, 5)

    def testSetWithoutArgumentsListsOptions(self):
        self.interpreter.run("set")
        self.assertEqual(self.stdout.getvalue(), "ErrorLevel=0\nLevel=0\nPrompt=> \n")

    def testSetWithNameBehavesLikeGet(self):
        self.interpreter.run("set", "ErrorLevel")
        self.assertEqual(self.stdout.getvalue(), "0\n")

    def testGetUnknownOptionRaises(self):
        with self.assertRaises(UnknownOptionError) as context:
            self.interpreter.execute("get", "Nope")
        self.assertEqual(str(context.exception), "The option Nope was not found.")

    def testSetErrorLevelOption(self):
        self.interpreter.run("set", "ErrorLevel", "3")
        self.assertEqual(self.interpreter.error_level, 3)

    def testSetInvalidValueKeepsCurrentValue(self):
        with self.assertRaises(InvalidOptionValueError):
            self.interpreter.execute("set", "ErrorLevel", "high")
        self.assertEqual(self.interpreter.error_level, 0)

    def testErrorLevelRejectsNonIntegers(self):
        with self.assertRaises(TypeError):
            self.interpreter.error_level = True
        with self.assertRaises(TypeError):
            self.interpreter.error_level = "1"

    def testPromptRejectsNonStrings(self):
        with self.assertRaises(TypeError):
            self.interpreter.prompt = None

    def testHelpDescribesCommand(self):
        self.interpreter.run("help", "say")
        text = self.stdout.getvalue()
        self.assertIn("usage: Echo [words ...]", text)
        self.assertIn("aliases: Say", text)
        self.assertIn("Print the arguments separated by spaces.", text)

    def testHelpUnknownCommandRaises(self):
        with self.assertRaises(UnknownCommandError):
            self.interpreter.execute("help", "Bogus")

    def testBuiltInsCanBeDeselected(self):
        interpreter = Interpreter(builtins=BuiltIns.GET | BuiltIns.ERROR_LEVEL)
        self.assertEqual([x.name for x in interpreter.commands], ["get"])
        self.assertEqual([x.name for x in interpreter.options], ["ErrorLevel"])

    def testNoBuiltIns(self):
        interpreter = Interpreter(builtins=BuiltIns.NONE)
        self.assertEqual(interpreter.commands, ())
        self.assertEqual(interpreter.options, ())


class TestRegistration(InterpreterTestCase):
    """Behavioral tests for registering and removing descriptors."""

    def testDuplicateHandlerRaises(self):
        with self.assertRaises(DuplicateNameError):
            self.interpreter.add_handler(Shell())

    def testWrongDescriptorTypeRaises(self):
        with self.assertRaises(TypeError):
            self.interpreter.add_command(Option(lambda: 0, lambda value: None, "X"))
        with self.assertRaises(TypeError):
            self.interpreter.add_option(Command(lambda: None, "X"))

    def testRemoveCommand(self):
        echo = next(x for x in self.interpreter.commands if x.name == "Echo")
        self.interpreter.remove_command(echo)
        with self.assertRaises(UnknownCommandError):
            self.interpreter.execute("Say", "hi")

    def testRemoveOption(self):
        level = next(x for x in self.interpreter.options if x.name == "Level")
        self.interpreter.remove_option(level)
        with self.assertRaises(UnknownOptionError):
            self.interpreter.execute("get", "Level")


class TestFilters(InterpreterTestCase):
    """Behavioral tests for filters wrapping dispatch."""

    def setUp(self):
        super().setUp()
        self.capture = Capture()
        self.interpreter.add_handler(self.capture)

    def testFilterRedirectsOutput(self):
        self.interpreter.run("Echo", "hi", ">", "out")
        self.assertEqual(self.capture.captured, [("out", "hi\n")])
        self.assertEqual(self.stdout.getvalue(), "")
        self.assertIs(self.interpreter.stdout, self.stdout)

    def testFilterPassesThroughOtherInput(self):
        self.interpreter.run("Echo", "hi")
        self.assertEqual(self.capture.captured, [])
        self.assertEqual(self.stdout.getvalue(), "hi\n")

    def testFilterRemoval(self):
        self.assertEqual([x.name for x in self.interpreter.filters], ["capture"])
        self.interpreter.remove_filter(self.interpreter.filters[0])
        self.interpreter.run("Echo", "hi", ">", "out")
        self.assertEqual(self.stdout.getvalue(), "hi > out\n")

    def testPrecedenceChangeAppliesToNextDispatch(self):
        events = []

        def recorder(name, keys):
            def callback(chain, arguments):
                events.append(name)
                return chain.next(arguments)
            return Filter(callback, name, keys=keys)

        self.interpreter.add_filter(recorder("redirect", "<"))
        self.interpreter.run("Echo", "one")
        self.interpreter.add_filter(recorder("pipe", "|"))
        self.interpreter.run("Echo", "two")
        self.interpreter.filter_precedence = "|<"
        self.interpreter.run("Echo", "three")

        self.assertEqual(events, ["redirect", "redirect", "pipe", "pipe", "redirect"])
        self.assertEqual(self.stdout.getvalue(), "one\ntwo\nthree\n")

    def testPrecedenceIsConfigurable(self):
        self.interpreter.filter_precedence = ">"
        self.assertEqual(self.interpreter.filter_precedence, ">")


class TestLoop(InterpreterTestCase):
    """Behavioral tests for the read-eval loop."""

    def testLoopRunsUntilQuit(self):
        self.interpreter.loop(io.StringIO("Echo hi\nquit\nEcho never\n"))
        self.assertIn("hi\n", self.stdout.getvalue())
        self.assertNotIn("never", self.stdout.getvalue())

    def testExitIsAnAlias(self):
        self.interpreter.loop(io.StringIO("EXIT\nEcho never\n"))
        self.assertNotIn("never", self.stdout.getvalue())

    def testLoopEndsAtEndOfInput(self):
        self.interpreter.loop(io.StringIO("Echo one\nEcho two\n"))
        self.assertEqual(self.stdout.getvalue(), "> one\n> two\n> ")

    def testLoopReadsStdinByDefault(self):
        self.interpreter.stdin = io.StringIO("Echo hi\n")
        self.interpreter.loop()
        self.assertEqual(self.stdout.getvalue(), "> hi\n> ")

    def testQuitIsRemovedAfterLoop(self):
        self.interpreter.loop(io.StringIO(""))
        self.assertNotIn("quit", [x.name for x in self.interpreter.commands])
        with self.assertRaises(UnknownCommandError):
            self.interpreter.execute("quit")

    def testLoopContinuesAfterError(self):
        self.interpreter.loop(io.StringIO("Bogus\nEcho after\n"))
        self.assertIn("Invalid command name: Bogus", self.stderr.getvalue())
        self.assertIn("after\n", self.stdout.getvalue())
        self.assertEqual(self.interpreter.error_level, 1)

    def testLoopContinuesAfterMalformedInput(self):
        self.interpreter.loop(io.StringIO('Echo "oops\nEcho ok\n'))
        self.assertIn("ok\n", self.stdout.getvalue())
        self.assertEqual(self.interpreter.error_level, 1)

    def testPromptIsExpanded(self):
        self.interpreter.prompt = "[$(ErrorLevel)] $$ "
        self.interpreter.loop(io.StringIO("Bogus\n"))
        self.assertEqual(self.stdout.getvalue(), "[0] $ [1] $ ")

    def testBadPromptFallsBackToTemplate(self):
        self.interpreter.prompt = "$(Nope)> "
        self.interpreter.loop(io.StringIO("Echo hi\n"))
        self.assertEqual(self.stdout.getvalue(), "$(Nope)> hi\n$(Nope)> ")
        self.assertIn("Unknown option specified: Nope", self.stderr.getvalue())

    def testBlankLineListsCommands(self):
        self.interpreter.loop(io.StringIO("\n"))
        self.assertIn("Echo", self.stdout.getvalue())
        self.assertEqual(self.stderr.getvalue(), "")
        self.assertEqual(self.interpreter.error_level, 0)


if __name__ == '__main__':
    unittest.main()
