"""
Name registry: case-insensitive tables of commands and options.

Rules
- Lookup is an exact, case-insensitive match. There is no prefix or fuzzy matching;
  close matches are only computed to build "did you mean" hints in faults.
- Adding an entry whose names collide with registered ones raises DuplicateNameError
  and leaves the table unchanged (all names are checked before any is inserted).
- Removing an entry drops only the names that still map to that very entry; an
  unregistered entry is a no-op.
- Snapshots (entries) are de-duplicated by identity and sorted by display name, so an
  entry registered under several names shows up once.
"""
import difflib
import logging

from .faults import *
from .utils import casefold

logger = logging.getLogger(__name__)


class NameTable:
    """
    Case-insensitive mapping from names to descriptors of one kind.

    Parameters
    - kind: "command" or "option"; used in messages and to pick the fault code.
    """

    _codes = {
        "command": FaultCode.DUPLICATE_COMMAND,
        "option": FaultCode.DUPLICATE_OPTION,
    }

    def __init__(self, kind, /):
        if kind not in self._codes:
            raise ValueError(f"name table kind must be one of {', '.join(map(repr, self._codes))}")
        self._kind = kind
        self._table = {}
        self._spellings = {}

    @property
    def kind(self):
        return self._kind

    def __contains__(self, name):
        return isinstance(name, str) and casefold(name) in self._table

    def __len__(self):
        return len(self._table)

    def add(self, entry, /):
        for name in entry.names:
            DuplicateNameError.verify(
                casefold(name) not in self._table,
                "%s %s already exists.", self._kind.capitalize(), name,
                title="duplicate %s" % self._kind,
                code=self._codes[self._kind],
                hint="pick another name or remove the existing %s first" % self._kind,
                name=name,
            )
        for name in entry.names:
            self._table[casefold(name)] = entry
            self._spellings[casefold(name)] = name
        logger.debug("registered %s %s", self._kind, ", ".join(entry.names))

    def remove(self, entry, /):
        for name in entry.names:
            if self._table.get(key := casefold(name)) is entry:
                del self._table[key]
                del self._spellings[key]

    def lookup(self, name, /):
        """
        Return the entry registered under name (any casing), or None.
        """
        return self._table.get(casefold(name))

    def suggest(self, name, /, count=3):
        """
        Close registered spellings for hints (never used for resolution).
        """
        matches = difflib.get_close_matches(casefold(name), self._table.keys(), count)
        return [self._spellings[match] for match in matches]

    @property
    def names(self):
        return tuple(sorted(self._spellings.values(), key=casefold))

    @property
    def entries(self):
        unique = {id(entry): entry for entry in self._table.values()}
        return tuple(sorted(unique.values(), key=lambda x: casefold(x.name)))


class Registry:
    """
    The interpreter's command and option tables.

    The two tables are independent: a command and an option may share a name.
    """

    def __init__(self):
        self.commands = NameTable("command")
        self.options = NameTable("option")

    def add_command(self, command, /):
        self.commands.add(command)

    def remove_command(self, command, /):
        self.commands.remove(command)

    def add_option(self, option, /):
        self.options.add(option)

    def remove_option(self, option, /):
        self.options.remove(option)

    def command(self, name, /):
        return self.commands.lookup(name)

    def option(self, name, /):
        return self.options.lookup(name)


__all__ = (
    "NameTable",
    "Registry",
)
