"""
Pennant command layer: parse contexts, subcommands and the argv scanner.

What this module provides
- ParseContext: root object owning the global flag table and every subcommand.
  • Registration: register(...), register_with_validator(...), add_subcommand(...).
  • Parsing: parse(argv) runs the two-phase scanner once and returns the
    selected Subcommand (or None).
  • Surfacing: trigger(fault) merges the presentation options (shell, fancy,
    colorful) into a fault and hands it to pennant.faults.trigger.
  • Lifecycle: close() or `with ParseContext() as context: ...`.

- Subcommand: named sub-mode with its own flag table and a handler receiving an
  Arguments record.

- Arguments: what a handler sees (its own flags plus the parse context).

- invoke(context, argv): parse, then dispatch the selected handler.
- value_of_global(context, name): cell lookup in the global table.

Scanning rules
- Phase 1 (global flags): '-name' and '--name' are equivalent. A known flag
  consumes the following token as its value, unknown flags are ignored, and the
  first bare token naming a subcommand ends the phase. Other bare tokens are
  ignored.
- Phase 2 (subcommand flags): tokens after the subcommand name are read in
  (name, value) pairs. A pair whose name is not a flag of the subcommand is
  skipped whole, so global flags given after the subcommand are never consumed.
- Booleans take the following token only when it is "true" or "false" (any
  case); otherwise the flag is switched on and the token is left in place.
- Every value is converted, validated and stored as soon as it is read.
- '-help' anywhere raises HelpRequest.
- Required flags (global table and selected subcommand) are checked once the
  whole token stream has been consumed.

Quick start
    from pennant import Cell, Kind, ParseContext, invoke

    with ParseContext(shell=True) as context:
        name = Cell("Guest")
        greet = context.add_subcommand("greet", "Greets the user", lambda args: print(f"Hello, {name.value}!"))
        greet.register("name", name, Kind.STRING, "The name of the user to greet")
        invoke(context, ["prog", "greet", "-name", "Bob"])
"""
import copy
import os.path
import shlex
import sys
from collections.abc import Iterable

from rich.console import Console

from .faults import *
from .flags import FlagTable, _sanitize_descr, _sanitize_name
from .helper import render
from .kinds import Kind, literal
from .utils import *
from .utils import RecordType


def _tokens(argv):
    """
    Normalize an argv source into a list of strings (program name first).

    - Unset: sys.argv.
    - str: shell-like string, split with shlex.split.
    - Iterable[str]: used as-is.
    """
    if argv is Unset:
        return list(sys.argv)
    if isinstance(argv, str):
        return shlex.split(argv)
    if isinstance(argv, Iterable):
        tokens = list(argv)
        for token in tokens:
            if not isinstance(token, str):
                raise TypeError("parse() argument must be a string or an iterable of strings")
        return tokens
    raise TypeError("parse() argument must be a string or an iterable of strings")


def _strip(token):
    """
    Flag name carried by a dash token ('-x' and '--x' both give 'x'), or Unset.
    """
    if token.startswith("--"):
        return token[2:]
    if token.startswith("-"):
        return token[1:]
    return Unset


class Arguments(metaclass=RecordType):
    """
    Record handed to a subcommand handler.

    - flags: the subcommand's flag table.
    - context: the parse context, for read access to global flags.
    """
    __introspectable__ = (
        "flags",
        "context",
    )

    def __init__(self, flags, context):
        self._flags = flags
        self._context = context

    def value_of(self, name, /):
        return self._flags.lookup(name)

    def global_value_of(self, name, /):
        return self._context.value_of(name)

    def __len__(self):
        return len(self._flags)


class Subcommand(metaclass=RecordType):
    """
    Named sub-mode of a program with its own flags and handler.

    Created through ParseContext.add_subcommand(...); the context owns it.
    """
    __introspectable__ = (
        "name",
        "descr",
        "handler",
        "flags",
    )
    __displayable__ = (
        "name",
        "descr",
        "flags",
    )

    def __init__(self, name, descr, handler, capacity=None, /, *, context=Unset):
        if not callable(handler):
            raise TypeError(f"{type(self).__typename__} handler must be callable")
        self._name = _sanitize_name(type(self), name)
        self._descr = _sanitize_descr(type(self), descr)
        self._handler = handler
        self._flags = FlagTable(capacity, owner=context)

    def register(self, name, cell, kind, descr=Unset, required=False, validator=Unset):
        return self._flags.register(name, cell, kind, descr, required, validator)

    def register_with_validator(self, name, cell, kind, descr, validator, required=False):
        return self._flags.register_with_validator(name, cell, kind, descr, validator, required)

    def value_of(self, name, /):
        return self._flags.lookup(name)

    def invoke(self, context, /):
        """
        Call the handler with an Arguments record and return its result.
        """
        return self._handler(Arguments(self._flags, context))


class ParseContext(metaclass=RecordType):
    """
    Root of a command line: global flags, subcommands and presentation options.

    Options
    - capacity: maximum number of global flags (None for unbounded).
    - subcommands: maximum number of subcommands (None for unbounded).
    - prog: program name shown in help and diagnostics; defaults to the
      basename of argv[0] once parsed.
    - shell: when True, faults are rendered with rich and end the process
      (status 1, or 0 for help); otherwise they are raised to the caller.
    - fancy: wrap diagnostics and help in panels.
    - colorful: apply the colour palette (overridable with __styles__ in __main__).
    """
    __introspectable__ = (
        "flags",
        "subcommands",
        "shell",
        "fancy",
        "colorful",
    )
    __displayable__ = (
        "prog",
        "flags",
        "subcommands",
    )

    def __init__(self, capacity=None, subcommands=None, *, prog=Unset, shell=False, fancy=False, colorful=False):
        if subcommands is not None:
            if not isinstance(subcommands, int) or isinstance(subcommands, bool):
                raise TypeError(f"{type(self).__typename__} subcommand capacity must be an integer")
            if subcommands < 0:
                raise ValueError(f"{type(self).__typename__} subcommand capacity cannot be negative")
        if not isinstance(prog, str | Unset):
            raise TypeError(f"{type(self).__typename__} prog must be a string")
        self._flags = FlagTable(capacity, owner=self)
        self._subcommands = []
        self._capacity = subcommands
        self._prog = prog
        self._shell = bool(shell)
        self._fancy = bool(fancy)
        self._colorful = bool(colorful)
        self._parsed = False
        self._closed = False

    @property
    def prog(self):
        return coalesce(self._prog, os.path.basename(sys.argv[0]) if sys.argv and sys.argv[0] else "pennant")

    def _check(self, action):
        if self._closed:
            raise RuntimeError(f"cannot {action} a closed {type(self).__typename__}")
        if self._parsed:
            raise RuntimeError(f"cannot {action} once the {type(self).__typename__} was parsed")

    def register(self, name, cell, kind, descr=Unset, required=False, validator=Unset):
        """
        Register a global flag; see FlagTable.register.
        """
        return self._flags.register(name, cell, kind, descr, required, validator)

    def register_with_validator(self, name, cell, kind, descr, validator, required=False):
        return self._flags.register_with_validator(name, cell, kind, descr, validator, required)

    def add_subcommand(self, name, descr, handler, capacity=None):
        """
        Register a subcommand and return it.

        Raises
        - CapacityError when the subcommand capacity is reached.
        - TypeError when handler is not callable.
        - ValueError when a subcommand with the same name already exists.
        - RuntimeError once the context has been parsed or closed.
        """
        self._check("add a subcommand to")
        if self._capacity is not None and len(self._subcommands) >= self._capacity:
            raise CapacityError(f"{type(self).__typename__} is full, cannot add subcommand {name!r} (capacity {self._capacity})")
        subcommand = Subcommand(name, descr, handler, capacity, context=self)
        if self.subcommand(subcommand.name) is not None:
            raise ValueError(f"{type(self).__typename__} already has a subcommand named {subcommand.name!r}")
        self._subcommands.append(subcommand)
        return subcommand

    def subcommand(self, name, /):
        for subcommand in self._subcommands:
            if subcommand.name == name:
                return subcommand
        return None

    def value_of(self, name, /):
        return self._flags.lookup(name)

    def trigger(self, fault, /, **options):
        if (
                not hasattr(fault, "__trigger__") or
                not callable(fault.__trigger__) or
                not hasattr(fault, "__replace__") or
                not callable(fault.__replace__)
        ):
            raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
        fault = copy.replace(fault, **options, tool=self, shell=self._shell, fancy=self._fancy, colorful=self._colorful)
        if self._shell and isinstance(fault, MissingRequiredError):
            Console(stderr=True).print(render(self))
        trigger(fault)

    def parse(self, argv=Unset, /):
        """
        Scan argv (program name first) and return the selected Subcommand or None.

        Values are written into the registered cells as they are read. A context
        is parsed at most once; registration is closed afterwards.

        Raises (shell=False)
        - HelpRequest, MalformedValueError, ValueRangeError, MissingValueError,
          ValidationError, MissingRequiredError.
        - RuntimeError on a second call or after close().
        """
        self._check("parse")
        tokens = _tokens(argv)
        self._parsed = True
        self._flags._seal()
        for subcommand in self._subcommands:
            subcommand.flags._seal()
        if self._prog is Unset and tokens and tokens[0]:
            self._prog = os.path.basename(tokens[0])
        try:
            return self._scan(tokens[1:])
        except ParseFault as fault:
            self.trigger(fault)

    def _assign(self, flag, tokens, index, seen):
        """
        Read the value of `flag` (named by tokens[index]) and return the next index.

        A repeated flag is reported only once its new value has been stored.
        """
        following = tokens[index + 1] if index + 1 < len(tokens) else Unset

        if flag.kind is Kind.BOOL:
            if following is not Unset and literal(following) is not Unset:
                flag.assign(following)
                index += 2
            else:
                flag.assign("true")
                index += 1
        elif following is Unset:
            raise MissingValueError(
                "no value specified for flag %r" % flag.name,
                title="missing value",
                code=FaultCode.MISSING_VALUE,
                hint="pass '-%s <%s>'" % (flag.name, flag.kind.value),
                flag=flag.name,
                kind=flag.kind,
            )
        else:
            flag.assign(following)
            index += 2

        if flag in seen:
            self.trigger(RepeatedFlagWarning(
                "flag %r was given more than once; the last value wins" % flag.name,
                title="repeated flag",
                code=FaultCode.REPEATED_FLAG,
                hint="pass '-%s' only once" % flag.name,
                flag=flag.name,
            ))
        seen.add(flag)
        return index

    def _scan(self, tokens):
        seen = set()
        selected = None
        index = 0

        # global flags, up to the first subcommand name
        while index < len(tokens):
            token = tokens[index]
            if (name := _strip(token)) is Unset:
                index += 1
                if (selected := self.subcommand(token)) is not None:
                    break
                continue
            if name == "help":
                raise HelpRequest("help requested", title="help", code=FaultCode.HELP_REQUESTED)
            if (flag := self._flags.find(name)) is None:
                index += 1
                continue
            index = self._assign(flag, tokens, index, seen)

        # subcommand flags, read in pairs
        if selected is not None:
            while index < len(tokens):
                name = _strip(tokens[index])
                if name == "help":
                    raise HelpRequest("help requested", title="help", code=FaultCode.HELP_REQUESTED)
                if name is Unset or (flag := selected.flags.find(name)) is None:
                    index += 2
                    continue
                index = self._assign(flag, tokens, index, seen)

        for table in (self._flags, selected.flags) if selected is not None else (self._flags,):
            for flag in table:
                if flag.required and flag not in seen:
                    raise MissingRequiredError(
                        "flag %r is required" % flag.name,
                        title="missing required flag",
                        code=FaultCode.MISSING_REQUIRED,
                        hint="pass '-%s <%s>'" % (flag.name, flag.kind.value),
                        flag=flag.name,
                        kind=flag.kind,
                    )

        return selected

    def close(self):
        """
        Drop every subcommand and the global table; closing twice is a no-op.
        """
        if self._closed:
            return
        self._closed = True
        self._flags._seal()
        self._flags = FlagTable(0, owner=self)
        self._flags._seal()
        for subcommand in self._subcommands:
            subcommand.flags._seal()
        self._subcommands.clear()

    def __enter__(self):
        return self

    def __exit__(self, *unused):
        self.close()


def value_of_global(context, name, /):
    """
    Return the cell bound to the global flag `name`, or None.
    """
    if not isinstance(context, ParseContext):
        raise TypeError("value_of_global() first argument must be a parse context")
    return context.value_of(name)


def invoke(context, argv=Unset, /):
    """
    Parse argv with `context` and dispatch the selected subcommand's handler.

    Returns the selected Subcommand (None when argv names no subcommand).
    """
    if not isinstance(context, ParseContext):
        raise TypeError("invoke() first argument must be a parse context")
    if (subcommand := context.parse(argv)) is not None:
        subcommand.invoke(context)
    return subcommand


__all__ = (
    "Arguments",
    "Subcommand",
    "ParseContext",
    "invoke",
    "value_of_global",
)
