#!/usr/bin/env python3
# -*- encoding: utf-8 -*-
# File: oscwire/osctypetags.py
# <pep8 compliant>
"""OSC argument values and their type tags.

Supported atomic data types
---------------------------

===================  ====================================
    Value class         Type tag and corresponding data
===================  ====================================
OSCint32             ``i`` with int32
OSCfloat32           ``f`` with float32
OSCstring            ``s`` with string
OSCbool(True)        ``T`` without data
OSCbool(False)       ``F`` without data
OSCnil               ``N`` without data
OSCblob              ``b`` with raw binary
===================  ====================================

Arguments are always given with an explicit value class, the codec never
guess a type tag from a Python value. The :func:`wrap_value` and
:func:`wrap_arguments` helpers are for the code *calling* the codec
(ex. JSON values coming from a remote tool call).
"""

from collections import namedtuple
import struct

from .oscerrors import OSCInvalidDataError

__all__ = [
    "OSCint32",
    "OSCfloat32",
    "OSCstring",
    "OSCbool",
    "OSCnil",
    "OSCblob",
    "OSC_TRUE",
    "OSC_FALSE",
    "OSC_NIL",
    "tag_for",
    "tags_for",
    "wrap_value",
    "wrap_arguments",
    ]

# Type tags characters.
OSCTYPE_INT32 = 'i'
OSCTYPE_FLOAT32 = 'f'
OSCTYPE_STRING = 's'
OSCTYPE_BLOB = 'b'
OSCTYPE_TRUE = 'T'
OSCTYPE_FALSE = 'F'
OSCTYPE_NIL = 'N'

BEGIN_TYPETAG = ','

INT32_MIN = -2 ** 31
INT32_MAX = 2 ** 31 - 1


class _OSCValue(object):
    """Common behavior of argument value classes.

    Two values are equal only if they have same class and same content,
    so OSCint32(1), OSCfloat32(1.0) and OSCbool(True) are all different.
    """
    __slots__ = ()

    def __eq__(self, other):
        if type(self) is not type(other):
            return False
        return tuple.__eq__(self, other)

    def __ne__(self, other):
        return not self.__eq__(other)

    def __hash__(self):
        return hash((self.__class__.__name__,) + tuple(self))


class OSCint32(_OSCValue, namedtuple('OSCint32', 'value')):
    """32-bit big-endian two's complement integer.
    """
    __slots__ = ()

    def __new__(cls, value):
        if isinstance(value, bool) or not isinstance(value, int):
            raise OSCInvalidDataError("OSC int32 value must be an int, "
                                      "not {!r}".format(value))
        if not INT32_MIN <= value <= INT32_MAX:
            raise OSCInvalidDataError("OSC int32 value {} out of 32 bits "
                                      "range".format(value))
        return super().__new__(cls, value)


class OSCfloat32(_OSCValue, namedtuple('OSCfloat32', 'value')):
    """32-bit big-endian IEEE 754 floating point number.

    The value is stored already rounded to single precision, so what you
    read back from the wire equals what you built.
    """
    __slots__ = ()

    def __new__(cls, value):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise OSCInvalidDataError("OSC float32 value must be a number, "
                                      "not {!r}".format(value))
        try:
            value = struct.unpack(">f", struct.pack(">f", float(value)))[0]
        except (TypeError, ValueError, OverflowError, struct.error) as e:
            raise OSCInvalidDataError("OSC float32 value {!r} cannot fill "
                                      "in 32 bits".format(value)) from e
        return super().__new__(cls, value)


class OSCstring(_OSCValue, namedtuple('OSCstring', 'value')):
    """Text string, sent as a zero terminated and padded byte string.
    """
    __slots__ = ()

    def __new__(cls, value):
        if not isinstance(value, str):
            raise OSCInvalidDataError("OSC string value must be a str, "
                                      "not {!r}".format(value))
        return super().__new__(cls, value)


class OSCbool(_OSCValue, namedtuple('OSCbool', 'value')):
    """True or False, directly encoded in the type tag.
    """
    __slots__ = ()

    def __new__(cls, value):
        return super().__new__(cls, bool(value))


class OSCnil(_OSCValue, namedtuple('OSCnil', '')):
    """Nil, directly encoded in the type tag.
    """
    __slots__ = ()


class OSCblob(_OSCValue, namedtuple('OSCblob', 'value')):
    """Raw binary data, sent with a int32 size prefix.
    """
    __slots__ = ()

    def __new__(cls, value):
        if not isinstance(value, (bytes, bytearray, memoryview)):
            raise OSCInvalidDataError("OSC blob value must be bytes, "
                                      "not {!r}".format(value))
        return super().__new__(cls, bytes(value))


OSC_TRUE = OSCbool(True)
OSC_FALSE = OSCbool(False)
OSC_NIL = OSCnil()

# Correspondance of value classes with their type tag. Booleans are
# processed apart as the tag depends on the value.
osctypes_tagrefs = {
    OSCint32: OSCTYPE_INT32,
    OSCfloat32: OSCTYPE_FLOAT32,
    OSCstring: OSCTYPE_STRING,
    OSCnil: OSCTYPE_NIL,
    OSCblob: OSCTYPE_BLOB,
    }


def tag_for(value):
    """Return the type tag char for an argument value.

    :param value: argument value.
    :type value: one of the OSC value classes
    :return: type tag char
    :rtype: str
    """
    if type(value) is OSCbool:
        return OSCTYPE_TRUE if value.value else OSCTYPE_FALSE
    try:
        return osctypes_tagrefs[type(value)]
    except KeyError:
        raise OSCInvalidDataError("OSC argument {!r} is not an OSC "
                "value".format(value.__class__.__name__)) from None


def tags_for(values):
    """Build the type tags string for a sequence of argument values.

    :param values: argument values, in message order.
    :type values: list or tuple
    :return: type tags with the heading ','
    :rtype: str
    """
    return BEGIN_TYPETAG + ''.join(tag_for(v) for v in values)


def wrap_value(pyval):
    """Build the OSC argument value corresponding to a Python value.

    :param pyval: value to wrap, an OSC value is returned as is.
    :type pyval: bool, None, int, float, str, bytes or bytearray
    :return: OSC argument value
    """
    if isinstance(pyval, _OSCValue):
        return pyval
    # bool must be checked before int.
    if isinstance(pyval, bool):
        return OSC_TRUE if pyval else OSC_FALSE
    elif pyval is None:
        return OSC_NIL
    elif isinstance(pyval, int):
        return OSCint32(pyval)
    elif isinstance(pyval, float):
        return OSCfloat32(pyval)
    elif isinstance(pyval, str):
        return OSCstring(pyval)
    elif isinstance(pyval, (bytes, bytearray)):
        return OSCblob(pyval)
    raise OSCInvalidDataError("OSC cannot map Python value {!r} to an "
                              "OSC argument".format(pyval))


def wrap_arguments(pyvals):
    """Apply :func:`wrap_value` to a sequence of Python values.

    :return: tuple of OSC argument values
    :rtype: tuple
    """
    return tuple(wrap_value(v) for v in pyvals)
