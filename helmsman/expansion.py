r"""
Tokenizing and option macro expansion.

Tokenizing grammar (POSIX shell quoting, via shlex with comments disabled)
- Unquoted whitespace separates tokens.
- 'single quotes' keep every character literally (no escapes inside).
- "double quotes" keep whitespace; inside them a backslash only escapes '"' and '\'.
- Outside quotes a backslash escapes the next character (\  keeps a space).
- Quoted and unquoted parts that touch form one token: a"b c"d -> 'ab cd'.
- "" and '' produce an empty token.
- An unterminated quote or a trailing backslash is a MalformedInputError.
- '$' has no meaning to the tokenizer; macros are expanded per token afterwards.

Macro grammar
- $(Name) is replaced by str() of the named option's current value; Name is a word (\w+).
- A $( directly preceded by another $ is escaped and left alone.
- After substitution every $$ collapses to $, once. Substituted values are never
  re-scanned, so $$(Name) yields the literal text $(Name).
- An unknown Name is an UnknownOptionError; a $( without a closing ) or with a
  non-word name is a MalformedMacroError.
"""
import re
import shlex

from .faults import *

_MACRO = re.compile(r"(?<!\$)\$\((?P<name>\w+)\)")
_OPENING = re.compile(r"(?<!\$)\$\((?P<name>[^)]*)(?P<closing>\))?")


def tokenize(line, /):
    """
    Split a raw input line into an argument vector (see module docstring for the grammar).
    """
    if not isinstance(line, str):
        raise TypeError("tokenize() argument must be a string")
    try:
        return shlex.split(line, comments=False, posix=True)
    except ValueError as error:
        raise MalformedInputError(
            "cannot split input %r: %s",
            line, str(error).lower(),
            title="malformed input",
            code=FaultCode.MALFORMED_INPUT,
            hint="close every quote and do not end the line with a backslash",
            line=line,
        ) from None


def expand(text, options, /):
    """
    Replace $(Name) references in text with option values.

    Parameters
    - text: the raw string (prompt template or argument token).
    - options: a name table (anything with lookup(name) and suggest(name)).

    Returns
    - the expanded string with $$ collapsed to $.
    """
    if not isinstance(text, str):
        raise TypeError("expand() first argument must be a string")

    for match in _OPENING.finditer(text):
        MalformedMacroError.verify(
            match["closing"] and re.fullmatch(r"\w+", match["name"]),
            "malformed option reference %r in %r",
            match.group(), text,
            title="malformed option reference",
            code=FaultCode.MALFORMED_MACRO,
            hint="write $(Name) to insert an option value or $$ for a literal '$'",
            text=text,
        )

    def substitute(match):
        name = match["name"]
        option = options.lookup(name)
        if option is None:
            suggestions = options.suggest(name)
            hint = ("did you mean %r? " % suggestions[0] if suggestions else "") + "run 'set' to list the options"
            raise UnknownOptionError(
                "Unknown option specified: %s",
                name,
                title="unknown option",
                code=FaultCode.UNKNOWN_OPTION,
                hint=hint,
                name=name,
                suggestions=suggestions,
            )
        return "%s" % (option.value,)

    return _MACRO.sub(substitute, text).replace("$$", "$")


__all__ = (
    "tokenize",
    "expand",
)
