r"""
Pennant flag registry: cells, validators, flag descriptors and flag tables.

Overview
- Cell[_T]: caller-owned value holder. The caller keeps a reference and reads
  the parsed value back from it; the flag only writes into it.
- Validator: post-conversion predicate plus the message shown when it fails.
  @validator("message") turns a predicate function into a Validator.
- Flag: name, cell, kind, description, required-ness and optional validator.
  Flag.assign(token) converts, validates and stores (in that order).
- FlagTable: ordered, optionally bounded collection of flags. Lookup is a
  linear scan by name and the first registration wins.

Registration rules (sanitized on construction)
- name: non-empty string without whitespace or '=', not starting with '-',
  and never the reserved name 'help'. Names are case-sensitive.
- descr: string (defaults to empty).
- kind: a Kind member; the cell's current value must be storable in that kind
  (bool for BOOL, int for integral kinds, int/float for floating kinds,
  str or None for STRING).
- validator: Unset, a Validator, or a plain predicate (wrapped without message).

Quick example:
    >>> table = FlagTable()
    >>> level = Cell(0)
    >>> @validator("must be between 0 and 10")
    ... def small(value):
    ...     return 0 <= value <= 10
    >>> flag = table.register_with_validator("level", level, Kind.INT, "verbosity level", small)
    >>> table.lookup("level") is level
    True
"""
import re

from .faults import CapacityError, DuplicateFlagWarning, FaultCode, ValidationError, trigger
from .kinds import Kind
from .utils import *
from .utils import RecordType

RESERVED = "help"


class Cell[_T]:
    """
    Caller-owned mutable holder bound to one or more flags of the same kind.

    The kind is fixed the first time the cell is registered; registering it
    again under a different kind is rejected.
    """
    __slots__ = ("value", "_kind")

    def __init__(self, value=None, /):
        self.value = value
        self._kind = Unset

    @property
    def kind(self):
        return coalesce(self._kind)

    def decode(self, kind, /):
        """
        Return the held value after checking the cell was registered as `kind`.
        """
        if not isinstance(kind, Kind):
            raise TypeError("decode() argument must be a kind")
        if self._kind is not kind:
            raise TypeError(f"cell holds a {self._kind.value if self._kind else 'unbound'} value, not {kind.value}")
        return self.value

    def _bind(self, kind):
        if self._kind is not Unset and self._kind is not kind:
            raise TypeError(f"cell is already bound as {self._kind.value}, cannot bind it as {kind.value}")
        if not kind.accepts(self.value):
            raise TypeError(f"cell value {self.value!r} cannot be stored as {kind.value}")
        self._kind = kind

    def __repr__(self):
        return f"cell({self.value!r})"


class Validator(metaclass=RecordType):
    """
    Predicate over a converted value with the message reported on failure.

    The predicate must be free of side effects; it receives the converted
    value (never the raw token) and returns a truthy result to accept it.
    """
    __introspectable__ = (
        "predicate",
        "message",
    )

    def __init__(self, predicate, /, message=Unset):
        if not callable(predicate):
            raise TypeError(f"{type(self).__typename__} predicate must be callable")
        if not isinstance(message, str | Unset):
            raise TypeError(f"{type(self).__typename__} message must be a string")
        elif isinstance(message, str) and not (message := message.strip()):
            raise ValueError(f"{type(self).__typename__} message cannot be empty")
        self._predicate = predicate
        self._message = coalesce(message)

    def __call__(self, value, /):
        return bool(self._predicate(value))


def validator(message=Unset, /):
    """
    Decorator turning a predicate function into a Validator.

    Usage
        @validator("must be between 0 and 10")
        def small(value):
            return 0 <= value <= 10
    """
    @rename("validator")
    def wrapper(predicate, /):
        if not callable(predicate):
            raise TypeError("@validator() must be applied to a callable")
        return Validator(predicate, message)

    return wrapper


def _sanitize_name(cls, name):
    if not isinstance(name, str):
        raise TypeError(f"{cls.__typename__} name must be a string")
    elif not name:
        raise ValueError(f"{cls.__typename__} name cannot be empty")
    elif name == RESERVED:
        raise ValueError(f"{cls.__typename__} name {RESERVED!r} is reserved")
    elif not re.fullmatch(r"[^\s=\-][^\s=]*", name):
        raise ValueError(f"{cls.__typename__} name {name!r} must not start with '-' nor contain spaces or '='")
    return name


def _sanitize_descr(cls, descr):
    if not isinstance(descr, str | Unset):
        raise TypeError(f"{cls.__typename__} description must be a string")
    return coalesce(descr, "").strip()


class Flag(metaclass=RecordType):
    """
    Named, typed command-line option bound to a caller-owned cell.

    Flags are created by FlagTable.register(...); they are never built or
    destroyed on their own.
    """
    __introspectable__ = (
        "name",
        "cell",
        "kind",
        "descr",
        "required",
        "validator",
    )
    __displayable__ = (
        "name",
        "kind",
        "required",
        "value",
    )

    def __init__(self, name, cell, kind, descr=Unset, required=False, validator=Unset):
        if not isinstance(cell, Cell):
            raise TypeError(f"{type(self).__typename__} cell must be a cell")
        if not isinstance(kind, Kind):
            raise TypeError(f"{type(self).__typename__} kind must be a kind")
        self._name = _sanitize_name(type(self), name)
        self._descr = _sanitize_descr(type(self), descr)
        self._required = bool(required)
        self._validator = None
        if validator is not Unset:
            self.set_validator(validator)
        cell._bind(kind)
        self._cell = cell
        self._kind = kind

    @property
    def value(self):
        return self._cell.value

    def set_validator(self, validator, /):
        """
        Attach (or replace) the validator; plain predicates are wrapped.
        """
        if callable(validator) and not isinstance(validator, Validator):
            validator = Validator(validator)
        if not isinstance(validator, Validator):
            raise TypeError(f"{type(self).__typename__} validator must be callable")
        self._validator = validator
        return self

    def validate(self, value, /):
        """
        Run the validator (if any) over a converted value.

        A predicate that raises is reported the same way as one that rejects,
        with the exception attached to the fault options.
        """
        if self._validator is None:
            return
        exception = None
        try:
            accepted = self._validator(value)
        except Exception as error:
            accepted, exception = False, error
        if accepted:
            return
        if self._validator.message:
            message = "invalid value for flag %r: %s" % (self._name, self._validator.message)
        else:
            message = "invalid value for flag %r" % self._name
        raise ValidationError(
            message,
            title="validation failed",
            code=FaultCode.VALIDATION_FAILED,
            hint="run with '-help' to see what '-%s' expects" % self._name,
            flag=self._name,
            value=value,
            exception=exception,
        )

    def assign(self, token, /):
        """
        Convert `token`, validate it and store it in the cell (last write wins).
        """
        value = self._kind.parse(token, self._name)
        self.validate(value)
        self._cell.value = value
        return value


class FlagTable(metaclass=RecordType):
    """
    Ordered collection of flags with an optional capacity.

    Registration order is the lookup order (first match wins) and the help
    listing order. The table owns flag metadata only; values live in cells.
    """
    __introspectable__ = (
        "capacity",
        "flags",
    )

    def __init__(self, capacity=None, /, *, owner=Unset):
        if capacity is not None:
            if not isinstance(capacity, int) or isinstance(capacity, bool):
                raise TypeError(f"{type(self).__typename__} capacity must be an integer")
            if capacity < 0:
                raise ValueError(f"{type(self).__typename__} capacity cannot be negative")
        self._capacity = capacity
        self._flags = []
        self._owner = owner
        self._sealed = False

    def register(self, name, cell, kind, descr=Unset, required=False, validator=Unset):
        """
        Add a flag bound to `cell` and return it.

        Raises
        - CapacityError when the table is full.
        - RuntimeError once the owning context has parsed or closed.
        - TypeError/ValueError on invalid name, kind, cell or validator.
        """
        if self._sealed:
            raise RuntimeError(f"{type(self).__typename__} no longer accepts registrations")
        if self._capacity is not None and len(self._flags) >= self._capacity:
            raise CapacityError(f"{type(self).__typename__} is full, cannot add flag {name!r} (capacity {self._capacity})")

        flag = Flag(name, cell, kind, descr, required, validator)

        if self.find(flag.name) is not None:
            self._warn(DuplicateFlagWarning(
                "flag %r is registered more than once; only the first one is reachable" % flag.name,
                title="duplicate flag",
                code=FaultCode.DUPLICATE_FLAG,
                hint="rename one of the '%s' flags" % flag.name,
                flag=flag.name,
            ))

        self._flags.append(flag)
        return flag

    def register_with_validator(self, name, cell, kind, descr, validator, required=False):
        return self.register(name, cell, kind, descr, required, validator)

    def find(self, name, /):
        for flag in self._flags:
            if flag.name == name:
                return flag
        return None

    def lookup(self, name, /):
        """
        Return the cell bound to `name`, or None when no flag has that name.
        """
        flag = self.find(name)
        return flag.cell if flag is not None else None

    def _warn(self, warning):
        if self._owner is not Unset:
            self._owner.trigger(warning)
        else:
            trigger(warning)

    def _seal(self):
        self._sealed = True

    def __iter__(self):
        return iter(self._flags)

    def __len__(self):
        return len(self._flags)

    def __contains__(self, name):
        return self.find(name) is not None


def value_of(table, name, /):
    """
    Return the cell bound to `name` in `table`, or None.
    """
    if not isinstance(table, FlagTable):
        raise TypeError("value_of() first argument must be a flag table")
    return table.lookup(name)


__all__ = (
    "Cell",
    "Validator",
    "Flag",
    "FlagTable",
    "validator",
    "value_of",
)
