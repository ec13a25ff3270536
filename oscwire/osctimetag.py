#!/usr/bin/env python3
# -*- encoding: utf-8 -*-
# File: oscwire/osctimetag.py
# <pep8 compliant>
"""Conversion between Unix time and OSC time tags.

OSC time tags are represented on the wire by a 64 bit fixed point number
of seconds relative to 1/1/1900, same as Internet NTP timestamps: the
first 32 bits specify the number of seconds, the last 32 bits specify
fractional parts of a second.

On the Python side, an :class:`OSCtimetag` only keeps an integral count
of milliseconds since the Unix epoch (1/1/1970), or None for the special
"immediately" time tag.
Encoding then decoding a time tag keeps milliseconds exactly; decoding
then encoding raw data with sub-millisecond fraction is not loss-free.
"""

from collections import namedtuple
import struct
import time

from .oscerrors import OSCInvalidDataError, OSCTruncatedRawError

__all__ = [
    "OSCtimetag",
    "OSC_IMMEDIATELY",
    "OSCTIME_1_JAN1970",
    "encode_timetag",
    "decode_timetag",
    "timetag2ntp",
    "ntp2timetag",
    "timetag2unixtime",
    "unixtime2timetag",
    ]

# Number of seconds between 1/1/1900 (NTP base time) and 1/1/1970 (Unix epoch).
# See http://www.fourmilab.ch/documents/calendar/
OSCTIME_1_JAN1970 = 2208988800

# The time tag value consisting of 63 zero bits followed by a one in
# the least signifigant bit is a special case meaning "immediately."
NTP_IMMEDIATELY = (0x0, 0x01)

# Denominator of the 32 bits fractional part.
FRACTION_SCALE = 0xFFFFFFFF

TIMETAG_BYTES = 8


class OSCtimetag(namedtuple('OSCtimetag', 'millis')):
    """
    :code:`OSCtimetag(millis)` → named tuple

    :ivar millis: milliseconds since 1/1/1970, or None for the
        "immediately" time tag.
    :type millis: int or None
    """
    __slots__ = ()

    def __new__(cls, millis):
        if millis is not None:
            millis = int(round(millis))
        return super().__new__(cls, millis)

    @property
    def immediate(self):
        return self.millis is None

    def __str__(self):
        if self.millis is None:
            return "OSCtimetag(immediately)"
        return "OSCtimetag({} ms)".format(self.millis)


OSC_IMMEDIATELY = OSCtimetag(None)


def timetag2ntp(timetag):
    """Convert a time tag into its NTP seconds and fraction integers.

    :param timetag: the time tag to convert
    :type timetag: OSCtimetag
    :return: NTP seconds since 1/1/1900, 32 bits fraction of second
    :rtype: (int, int)
    """
    if timetag.millis is None:
        return NTP_IMMEDIATELY
    sec, ms = divmod(timetag.millis, 1000)
    # Integer rounding of ms / 1000 * 0xFFFFFFFF.
    frac = (ms * FRACTION_SCALE + 500) // 1000
    return sec + OSCTIME_1_JAN1970, frac


def ntp2timetag(sec, frac):
    """Convert NTP seconds and fraction integers into a time tag.

    The fraction is rounded to the nearest millisecond (a fraction close
    to one second carries into the seconds).

    :return: corresponding time tag
    :rtype: OSCtimetag
    """
    if (sec, frac) == NTP_IMMEDIATELY:
        return OSC_IMMEDIATELY
    ms = (frac * 1000 + FRACTION_SCALE // 2) // FRACTION_SCALE
    return OSCtimetag((sec - OSCTIME_1_JAN1970) * 1000 + ms)


def encode_timetag(timetag):
    """Build the 8 bytes OSC representation of a time tag.

    :param timetag: the time tag to encode
    :type timetag: OSCtimetag
    :return: big-endian NTP seconds then fraction
    :rtype: bytes
    """
    if not isinstance(timetag, OSCtimetag):
        raise OSCInvalidDataError("OSC time tag {!r} is not an "
                                  "OSCtimetag".format(timetag))
    sec, frac = timetag2ntp(timetag)
    try:
        return struct.pack(">II", sec, frac)
    except struct.error as e:
        raise OSCInvalidDataError("OSC time tag {} out of NTP 32 bits "
                                  "seconds range".format(timetag)) from e


def decode_timetag(rawoscdata):
    """Decode 8 bytes of OSC raw data into a time tag.

    :param rawoscdata: raw OSC data, only the first 8 bytes are used
    :type rawoscdata: bytes or memoryview
    :return: decoded time tag
    :rtype: OSCtimetag
    """
    if len(rawoscdata) < TIMETAG_BYTES:
        raise OSCTruncatedRawError("OSC time tag needs {} bytes, only {} "
                    "available".format(TIMETAG_BYTES, len(rawoscdata)))
    sec, frac = struct.unpack(">II", rawoscdata[:TIMETAG_BYTES])
    return ntp2timetag(sec, frac)


def timetag2unixtime(timetag):
    """Convert a time tag into a float value of seconds from 1/1/1970.

    :param timetag: the time tag to convert
    :type timetag: OSCtimetag
    :return: time in unix seconds, with decimal part, or None for the
        immediately time tag.
    :rtype: float or None
    """
    if timetag.millis is None:
        return None
    return timetag.millis / 1000


def unixtime2timetag(ftime=None):
    """Convert a float value of seconds from 1/1/1970 into a time tag.

    :param ftime: number of seconds to convert, with decimal part.
                  If not specified, the function use current Python time.time().
    :type ftime: float
    :return: time tag with the nearest millisecond
    :rtype: OSCtimetag
    """
    if ftime is None:
        ftime = time.time()
    return OSCtimetag(ftime * 1000)
