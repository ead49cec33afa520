r"""
Pennant type registry: the closed set of value kinds a flag may carry.

Overview
- Kind: enumeration of every supported kind. The member value is the display
  name used in help output ("int8_t", "char *", ...).
- Kind.parse(token, name): convert a raw argv token into the kind's Python value,
  raising MalformedValueError (not a number of that kind) or ValueRangeError
  (does not fit the destination width) with the flag name in the message.
- Kind.accepts(value): whether a Python value may live in a cell of that kind.
- literal(token): the boolean reading of a token ("true"/"false", any case), or
  Unset when the token is not a boolean literal.

Widths
- Fixed kinds (int8_t ... uint64_t) use their nominal widths.
- Native kinds (int, unsigned int, size_t, uintptr_t) follow the running
  platform, as reported by ctypes.

Syntax
- Integers: optional sign followed by ASCII digits only (r"[+-]?[0-9]+").
  Unsigned kinds reject negative values as out of range.
- Floating kinds: decimal or exponent notation, plus "inf"/"infinity"/"nan".
  A finite spelling that overflows to infinity, or a nonzero spelling that
  underflows to zero, is out of range; single precision values are rounded to
  the nearest representable float first.
- Strings: taken verbatim.

Quick examples
    >>> Kind.INT8.parse("127", "level")
    127
    >>> Kind.UINT8.parse("256", "level")
    Traceback (most recent call last):
    ...
    pennant.faults.ValueRangeError: uint8_t value '256' for flag 'level' is out of range
"""
import ctypes
import math
import re
import struct
from enum import Enum

from .faults import FaultCode, MalformedValueError, ValueRangeError
from .utils import Unset

_INTEGER = re.compile(r"[+-]?[0-9]+")
_FLOATING = re.compile(r"[+-]?(?:(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|inf(?:inity)?|nan)", re.IGNORECASE)
_INFINITY = re.compile(r"[+-]?inf(?:inity)?", re.IGNORECASE)
_EXPONENT = re.compile(r"[eE]")
_NONZERO = re.compile(r"[1-9]")
_DIGITS = 20


def _bits(ctype):
    return ctypes.sizeof(ctype) * 8


def literal(token, /):
    """
    Boolean reading of a token, or Unset when the token is not a boolean literal.
    """
    if not isinstance(token, str):
        return Unset
    match token.lower():
        case "true":
            return True
        case "false":
            return False
        case _:
            return Unset


def _malformed(kind, token, name):
    return MalformedValueError(
        "invalid %s value %r for flag %r" % (kind.value, token, name),
        title="malformed value",
        code=FaultCode.MALFORMED_VALUE,
        hint="pass a valid %s after '-%s'" % (kind.value, name),
        flag=name,
        token=token,
        kind=kind,
    )


def _overflow(kind, token, name):
    low, high = kind.bounds
    if low is None:
        hint = "pass a value that fits in a %s" % kind.value
    else:
        hint = "pass a value between %d and %d" % (low, high)
    return ValueRangeError(
        "%s value %r for flag %r is out of range" % (kind.value, token, name),
        title="value out of range",
        code=FaultCode.VALUE_RANGE,
        hint=hint,
        flag=name,
        token=token,
        kind=kind,
    )


class Kind(Enum):
    """
    value kinds supported by flags; the value is the display name.
    """
    BOOL    = "bool"
    INT     = "int"
    SIZE_T  = "size_t"
    INT8    = "int8_t"
    INT16   = "int16_t"
    INT32   = "int32_t"
    INT64   = "int64_t"
    UINT    = "unsigned int"
    UINT8   = "uint8_t"
    UINT16  = "uint16_t"
    UINT32  = "uint32_t"
    UINT64  = "uint64_t"
    UINTPTR = "uintptr_t"
    FLOAT   = "float"
    DOUBLE  = "double"
    STRING  = "char *"

    @property
    def typename(self):
        return self.value

    @property
    def integral(self):
        return self in _WIDTHS

    @property
    def floating(self):
        return self in (Kind.FLOAT, Kind.DOUBLE)

    @property
    def bounds(self):
        """
        (low, high) inclusive range of an integral kind, (None, None) otherwise.
        """
        try:
            bits, signed = _WIDTHS[self]
        except KeyError:
            return None, None
        if signed:
            return -(1 << (bits - 1)), (1 << (bits - 1)) - 1
        return 0, (1 << bits) - 1

    def accepts(self, value, /):
        """
        Whether a Python value may be stored in a cell of this kind.

        bool is a subclass of int, so it is refused explicitly for numeric kinds.
        """
        if self is Kind.BOOL:
            return isinstance(value, bool)
        if self is Kind.STRING:
            return isinstance(value, str | None)
        if isinstance(value, bool):
            return False
        if self.integral:
            return isinstance(value, int)
        return self.floating and isinstance(value, int | float)

    def parse(self, token, name="?", /):
        """
        Convert a raw token into this kind's value.

        Booleans never fail: anything but "false" reads as True (presence).
        """
        if self is Kind.BOOL:
            return literal(token) is not False
        if self is Kind.STRING:
            return token
        if self.integral:
            if not _INTEGER.fullmatch(token):
                raise _malformed(self, token, name)
            # no integral kind holds more than 20 significant digits
            if len(digits := token.lstrip("+-").lstrip("0")) > _DIGITS:
                raise _overflow(self, token, name)
            value = -int(digits or "0") if token.startswith("-") else int(digits or "0")
            low, high = self.bounds
            if not low <= value <= high:
                raise _overflow(self, token, name)
            return value
        if not self.floating:
            raise TypeError(f"cannot parse a {self.value} value")
        if not _FLOATING.fullmatch(token):
            raise _malformed(self, token, name)
        value = float(token)
        if self is Kind.FLOAT:
            try:
                value, = struct.unpack("f", struct.pack("f", value))
            except OverflowError:
                raise _overflow(self, token, name) from None
        # overflow to infinity, or underflow of a nonzero spelling to zero
        if math.isinf(value) and not _INFINITY.fullmatch(token):
            raise _overflow(self, token, name)
        if value == 0.0 and _NONZERO.search(_EXPONENT.split(token)[0]):
            raise _overflow(self, token, name)
        return value


# (bits, signed) of each integral kind.
_WIDTHS = {
    Kind.INT: (_bits(ctypes.c_int), True),
    Kind.INT8: (8, True),
    Kind.INT16: (16, True),
    Kind.INT32: (32, True),
    Kind.INT64: (64, True),
    Kind.UINT: (_bits(ctypes.c_uint), False),
    Kind.UINT8: (8, False),
    Kind.UINT16: (16, False),
    Kind.UINT32: (32, False),
    Kind.UINT64: (64, False),
    Kind.SIZE_T: (_bits(ctypes.c_size_t), False),
    Kind.UINTPTR: (_bits(ctypes.c_void_p), False),
}


__all__ = (
    "Kind",
    "literal",
)
