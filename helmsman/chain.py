"""
Filter chain: precedence-ordered filters in front of the terminal dispatcher.

Ordering
- The precedence specification is a short string; a filter's rank is the earliest
  position of any of its keys in it, or sys.maxsize (unranked) when none appears.
- Filters are stably sorted by rank, so ties keep registration order. The filter
  with the lowest rank is the outermost: it sees the arguments first and the
  results last.

Memoization
- The ordered chain is built lazily and cached. Adding or removing a filter and
  changing the precedence specification drop the cache; rebuilding depends only
  on the current filter set and precedence string.

Traversal
- Chain is an immutable cursor over the ordered tuple. chain.next(arguments) runs
  the filter at the cursor with a chain advanced by one, or the terminal
  dispatcher once every filter has been passed.
"""
import logging
import sys

from .utils import casefold

logger = logging.getLogger(__name__)

# redirect-type filters, then pipe-type filters, then any other keyed filter
DEFAULT_PRECEDENCE = "<|*"


class Chain:
    """
    Cursor into a built filter chain (immutable).

    Attributes
    - interpreter: the context object every filter and command receives.
    """
    __slots__ = ("_interpreter", "_links", "_terminal", "_index")

    def __init__(self, interpreter, links, terminal, index=0, /):
        self._interpreter = interpreter
        self._links = links
        self._terminal = terminal
        self._index = index

    @property
    def interpreter(self):
        return self._interpreter

    @property
    def remaining(self):
        """
        The filters still ahead of the terminal dispatcher, outermost first.
        """
        return self._links[self._index:]

    def next(self, arguments, /):
        arguments = list(arguments)
        if self._index < len(self._links):
            link = self._links[self._index]
            return link.process(Chain(self._interpreter, self._links, self._terminal, self._index + 1), arguments)
        return self._terminal(arguments)

    def __repr__(self):
        return "chain(%s)" % " -> ".join([*(x.name for x in self.remaining), "dispatch"])


class FilterChain:
    """
    Registered filters plus the memoized chain built from them.

    Parameters
    - interpreter: context handed to filters through Chain.interpreter.
    - terminal: callable(arguments) performing the real dispatch.
    - precedence: precedence specification (default "<|*").
    """

    def __init__(self, interpreter, terminal, /, precedence=DEFAULT_PRECEDENCE):
        if not callable(terminal):
            raise TypeError("filter chain 'terminal' must be callable")
        self._interpreter = interpreter
        self._terminal = terminal
        self._filters = []
        self._head = None
        self._precedence = DEFAULT_PRECEDENCE
        self.precedence = precedence

    @property
    def precedence(self):
        return self._precedence

    @precedence.setter
    def precedence(self, precedence):
        if not isinstance(precedence, str):
            raise TypeError("filter precedence must be a string")
        if not precedence:
            raise ValueError("filter precedence cannot be empty")
        self._precedence = precedence
        self._head = None

    def add(self, filter, /):
        """
        Register a filter; re-adding moves it to the end of registration order.
        """
        if filter in self._filters:
            self._filters.remove(filter)
        self._filters.append(filter)
        self._head = None

    def remove(self, filter, /):
        if filter in self._filters:
            self._filters.remove(filter)
        self._head = None

    def __contains__(self, filter):
        return filter in self._filters

    @property
    def filters(self):
        return tuple(sorted(self._filters, key=lambda x: casefold(x.name)))

    def rank(self, filter, /):
        positions = [position for key in filter.keys if (position := self._precedence.find(key)) >= 0]
        return min(positions, default=sys.maxsize)

    @property
    def ordered(self):
        return tuple(sorted(self._filters, key=self.rank))

    @property
    def head(self):
        if self._head is None:
            self._head = Chain(self._interpreter, self.ordered, self._terminal)
            logger.debug("rebuilt filter chain %r with precedence %r", self._head, self._precedence)
        return self._head


__all__ = (
    "Chain",
    "FilterChain",
    "DEFAULT_PRECEDENCE",
)
