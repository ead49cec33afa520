"""
Pennant faults (errors and warnings) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for every user-facing issue
  raised while scanning argv (errors and warnings).
- FlagException / FlagWarning: base types that carry message + options and know
  how to render themselves in a short, lowercased, actionable way.
- HelpRequest: not an error; the '-help' signal travels the same road so that the
  outer driver alone decides about process termination.
- CapacityError: registration-time programmer error (never rendered, never caught).
- trigger(): central entry point to surface any fault (respecting shell/fancy/colorful).

Integration
- The scanner raises faults; ParseContext.trigger merges runtime options into them
  and calls trigger(). In non-shell mode exceptions are raised to the caller; in
  shell mode they are rendered via rich and the process exits.
"""
import copy
import inspect
import sys
import warnings
from abc import ABC
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset

console = Console(stderr=True)


class FaultCode(IntEnum):
    """
    canonical fault codes used across the parser (stable identifiers).

    grouping (by high-level domain)
    - conversion (1121x)
      • MALFORMED_VALUE, VALUE_RANGE, MISSING_VALUE
    - validation (1122x)
      • VALIDATION_FAILED
    - enforcement (1123x)
      • MISSING_REQUIRED
    - warnings (1221x)
      • DUPLICATE_FLAG, REPEATED_FLAG
    - HELP_REQUESTED is zero: it is the only fault that ends with a success status.

    normalize() allows host remapping to custom labels while keeping code-stability.
    """
    HELP_REQUESTED      = 0

    # --- conversion errors (112xx) ---
    MALFORMED_VALUE     = 11211
    VALUE_RANGE         = 11212
    MISSING_VALUE       = 11213

    # --- validation errors (112xx) ---
    VALIDATION_FAILED   = 11221

    # --- enforcement errors (112xx) ---
    MISSING_REQUIRED    = 11231

    # --- warnings (122xx) ---
    DUPLICATE_FLAG      = 12211
    REPEATED_FLAG       = 12212

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels. when no mapping
        is present, the numeric value is returned as a string.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


def _program(options):
    main = __import__("__main__")
    return getattr(main, "__prog__", getattr(options.get("tool"), "prog", "pennant"))


class CapacityError(ValueError):
    """
    a flag table (or the subcommand registry) is full.

    raised at registration time only; this is a programming error and is
    therefore a plain ValueError, never routed through trigger().
    """


class FlagException(Exception):
    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(*(() if message is Unset else (message,)))
        self.message = message
        self.options = MappingProxyType(options)

    @property
    def status(self):
        return 1

    def __rich__(self):
        main = __import__("__main__")

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

        colorful = self.options.get("colorful", False)

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

        header = Text.assemble(
            "[ ",
            text(_program(self.options), styler("prog-name")),
            " — ",
            text(self.options["code"].normalize(), styler("code")),
            " | ",
            text(self.options["title"].title(), styler("error-title")),
            " ]"
        )
        message = text(self.message, styler("error-message"))

        body = [message]
        if hint := self.options.get("hint"):
            body.append(Text.assemble(text(" → ", styler("hint-arrow")), text(hint, styler("hint"))))

        if self.options.get("fancy", False):
            return Panel(Group(*body), title=header, title_align="left")

        return Group(header, *body)

    def __trigger__(self) -> None:
        if not self.options.get("shell", False):
            raise self from None
        console.print(self)
        sys.exit(self.status)

    def __replace__(self, *unused, **overrides):
        assert not unused, "unused arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class ParseFault(FlagException):
    """base of every fault raised while scanning argv."""


class MalformedValueError(ParseFault): ...
class ValueRangeError(ParseFault): ...
class MissingValueError(ParseFault): ...
class ValidationError(ParseFault): ...
class MissingRequiredError(ParseFault): ...


class HelpRequest(ParseFault):
    """
    the reserved 'help' flag was seen.

    in shell mode the help text goes to stdout and the process exits with a
    success status; in non-shell mode the request is raised like any fault so
    the caller can decide.
    """

    @property
    def status(self):
        return 0

    def __rich__(self):
        from .helper import render
        return render(self.options["tool"])

    def __trigger__(self) -> None:
        if not self.options.get("shell", False):
            raise self from None
        Console().print(self)
        sys.exit(self.status)


class FlagWarning(ABC, Warning):
    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(*(() if message is Unset else (message,)))
        self.message = message
        self.options = MappingProxyType(options)

    def __rich__(self):
        main = __import__("__main__")

        styles = defaultdict(str, {
            # header parts
            "prog-name": "bold #E6E6F0",  # near-white program name
            "code": "bold #FFB400",  # amber fault code for warnings
            "warning-title": "bold #FFC2E0",  # softer pinky title for warnings

            # body
            "warning-message": "#D6D6DE",  # slightly lighter gray body
            "hint-arrow": "#B8EFAF dim",  # softer green arrow
            "hint": "italic #B8EFAF",  # softer green hint text
        } | getattr(main, "__styles__", {}))

        colorful = self.options.get("colorful", False)

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

        header = Text.assemble(
            "[ ",
            text(_program(self.options), styler("prog-name")),
            " — ",
            text(self.options["code"].normalize(), styler("code")),
            " | ",
            text(self.options["title"].title(), styler("warning-title")),
            " ]"
        )
        message = text(self.message, styler("warning-message"))

        body = [message]
        if hint := self.options.get("hint"):
            body.append(Text.assemble(text(" → ", styler("hint-arrow")), text(hint, styler("hint"))))

        if self.options.get("fancy", False):
            return Panel(Group(*body), title=header, title_align="left")

        return Group(header, *body)

    def __trigger__(self) -> None:
        if not self.options.get("shell", False):
            return warnings.warn(self, stacklevel=len(inspect.stack()))
        console.print(self)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class DuplicateFlagWarning(FlagWarning): ...
class RepeatedFlagWarning(FlagWarning): ...


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods (see base classes).
    - options are merged into the fault via copy.replace(fault, **options) before triggering.
    - in shell mode, rendering happens via rich console; otherwise, exceptions are raised
      and warnings are emitted through the warnings module.

    typical options
    - tool, shell, fancy, colorful, title, code, hint, and any context the reporter
      may want to show (e.g., flag, token, kind).
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    copy.replace(fault, **options).__trigger__()


__all__ = (
    "FaultCode",
    "CapacityError",
    "FlagException",
    "ParseFault",
    "MalformedValueError",
    "ValueRangeError",
    "MissingValueError",
    "ValidationError",
    "MissingRequiredError",
    "HelpRequest",
    "FlagWarning",
    "DuplicateFlagWarning",
    "RepeatedFlagWarning",
    "trigger",
)
