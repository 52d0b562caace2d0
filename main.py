import io
import logging

from helmsman import *


class Shell:
    def __init__(self):
        self._level = 0

    @command("Echo", "Say", category="text")
    def echo(self, *words, interpreter):
        """Print the arguments separated by spaces."""
        print(*words, file=interpreter.stdout)

    @property
    @option("Level", descr="verbosity of the demo shell")
    def level(self) -> int:
        return self._level

    @level.setter
    def level(self, value):
        self._level = value

    @filter("capture", keys=">")
    def capture(self, chain, arguments):
        """Run `... > NAME` and print what the command wrote, prefixed with NAME."""
        if len(arguments) < 2 or arguments[-2] != ">":
            return chain.next(arguments)
        stdout, buffer = chain.interpreter.stdout, io.StringIO()
        chain.interpreter.stdout = buffer
        try:
            chain.next(arguments[:-2])
        finally:
            chain.interpreter.stdout = stdout
        for line in buffer.getvalue().splitlines():
            print(f"{arguments[-1]}: {line}", file=chain.interpreter.stdout)


if __name__ == '__main__':
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")
    interpreter = Interpreter(Shell(), prompt="[$(ErrorLevel)] $$ ", precedence="<>|*")
    interpreter.loop()
    raise SystemExit(interpreter.error_level)
