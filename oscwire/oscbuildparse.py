#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# File: oscwire/oscbuildparse.py
# <pep8 compliant>
"""Support for building (encoding) and parsing (decoding) OSC packets.

See http://opensoundcontrol.org/ for complete OSC documentation.

This module translates OSC 1.0 packets from/to Python values, it does no
I/O and keeps no state between calls, so it can be used from any thread.

Packets
-------

A packet is either an :class:`OSCMessage` or an :class:`OSCBundle`,
bundles elements being themselves messages or bundles.
Message arguments are explicit OSC values (see :mod:`oscwire.osctypetags`).

Tolerant decoding
-----------------

Received data may be clipped or come from sloppy senders. By default
decoding never fails on such data, it logs the problem and returns what
could be decoded:

- a message cut inside its arguments keeps the arguments decoded before
  the cut,
- a message without type tags string has no argument,
- an unknown type tag is passed by skipping 4 bytes of data,
- a bundle element with a zero size or a size overrunning the data stops
  the bundle decoding, keeping elements decoded before,
- a bundle with too many elements is truncated, a bundle nested too
  deeply is dropped.

Out Of Band
-----------

A collection of options can be transmitted to modify some processing.
This is realized via an ``oob`` dictionary parameter given optionally in
top-level functions and transmitted to other functions while processing:

``str_encode`` / ``str_decode``
    ``(codec, errors)`` tuples for strings, default to
    ``('utf-8', 'strict')`` and ``('utf-8', 'replace')``.
``strict_decode``
    raise decoding errors in place of returning partial results.
``bundle_max_elements``
    maximum elements count in one bundle, default 100.
``bundle_max_depth``
    maximum bundles nesting level, default 16.
``logger``
    Python logger to trace decoding problems.
``decode_packet_dumpraw`` / ``encode_packet_dumpraw`` / ``dumpfile``
    hexa dump of raw packets.
"""

from collections import namedtuple
import struct
import sys

from .oscerrors import (OSCError, OSCInvalidDataError, OSCInvalidAddressError,
                        OSCInvalidRawError, OSCTruncatedRawError,
                        OSCMalformedBundleError, OSCUnknownTypetagError)
from .osctimetag import (OSCtimetag, OSC_IMMEDIATELY, OSCTIME_1_JAN1970,
                         encode_timetag, decode_timetag, timetag2ntp,
                         ntp2timetag, timetag2unixtime, unixtime2timetag)
from .osctypetags import (OSCint32, OSCfloat32, OSCstring, OSCbool, OSCnil,
                          OSCblob, OSC_TRUE, OSC_FALSE, OSC_NIL, tag_for,
                          tags_for, wrap_value, wrap_arguments,
                          BEGIN_TYPETAG)
from .oscargs import (encode_argument, decode_argument, encode_oscstring,
                      decode_oscstring, UNKNOWN_TYPETAG_SKIP, _dumpmv)

__all__ = [
    # Main functions for users.
    "encode_packet",
    "decode_packet",
    "encode_message",
    "decode_message",
    "encode_bundle",
    "decode_bundle",
    "is_bundle",
    "unbundle",
    # Top-level structures for OSC encoding/decoding.
    "OSCBundle",
    "OSCMessage",
    # Second level structures for OSC messages arguments.
    "OSCint32",
    "OSCfloat32",
    "OSCstring",
    "OSCbool",
    "OSCnil",
    "OSCblob",
    "OSCtimetag",
    "tag_for",
    "tags_for",
    "wrap_value",
    "wrap_arguments",
    # Exceptions classes.
    "OSCError",
    "OSCInvalidDataError",
    "OSCInvalidAddressError",
    "OSCInvalidRawError",
    "OSCTruncatedRawError",
    "OSCMalformedBundleError",
    "OSCUnknownTypetagError",
    # Top level useful constants.
    "OSC_IMMEDIATELY",
    "OSC_TRUE",
    "OSC_FALSE",
    "OSC_NIL",
    "OSCTIME_1_JAN1970",
    # Timetag conversion functions.
    "encode_timetag",
    "decode_timetag",
    "timetag2ntp",
    "ntp2timetag",
    "timetag2unixtime",
    "unixtime2timetag",
    # Other functions.
    'dumphex_buffer',
    ]

BEGIN_BUNDLE = b'#bundle\000'
BEGIN_ADDRPATTERN = '/'
BEGIN_TYPETAG_CODE = BEGIN_TYPETAG.encode('ascii')

# Defaults for decoding limits (DOS prevention on adversarial packets).
BUNDLE_MAX_ELEMENTS = 100
BUNDLE_MAX_DEPTH = 16


class OSCMessage(namedtuple('OSCMessage', 'addrpattern arguments')):
    """
    :code:`OSCMessage(addrpattern, arguments)` → named tuple

    :ivar string addrpattern: a string beginning by ``/`` and used by OSC
        dispatching protocol (only checked when encoding).
    :ivar tuple arguments: OSC values, see :mod:`oscwire.osctypetags`.
    """
    __slots__ = ()

    def __new__(cls, addrpattern, arguments=()):
        return super().__new__(cls, addrpattern, tuple(arguments))

    @property
    def typetags(self):
        """Type tags string of the arguments, with the heading ``,``."""
        return tags_for(self.arguments)


class OSCBundle(namedtuple('OSCBundle', 'timetag elements')):
    """
    :code:`OSCBundle(timetag, elements)` → named tuple

    :ivar OSCtimetag timetag: when the bundle should be executed, the codec
        never act upon it.
    :ivar tuple elements: mixed OSCMessage / OSCBundle values
    """
    __slots__ = ()

    def __new__(cls, timetag=OSC_IMMEDIATELY, elements=()):
        return super().__new__(cls, timetag, tuple(elements))


def _tolerate(error, oob):
    """Raise error in strict decoding mode, else just log it.
    """
    if oob.get('strict_decode', False):
        raise error
    logger = oob.get('logger', None)
    if logger is not None:
        logger.warning("OSC tolerated decoding problem: %s", error)


#==================== FUNCTIONS FOR MESSAGES ================================
def _decode_message(rawoscdata, oob):
    """Decode a raw OSC message into an OSCMessage named tuple.

    :param rawoscdata: raw OSC data to decode
    :type rawoscdata: memoryview
    :param oob: out of band extra parameters / options
    :type oob: dict
    :return: count of decoded bytes, decoded content
    :rtype: int, OSCMessage
    """
    totalcount = 0
    # Address pattern is not checked, anything up to the zero is accepted.
    try:
        count, addrpattern = decode_oscstring(rawoscdata, oob)
    except OSCTruncatedRawError as e:
        _tolerate(e, oob)
        strcodec, error = oob.get('str_decode', ('utf-8', 'replace'))
        addrpattern = bytes(rawoscdata).decode(strcodec, error)
        return len(rawoscdata), OSCMessage(addrpattern)
    totalcount += count
    rawoscdata = rawoscdata[count:]

    if bytes(rawoscdata[:1]) != BEGIN_TYPETAG_CODE:
        # Note: some older implementations of OSC may omit the OSC
        # Type Tag string. Until all such implementations are updated,
        # OSC implementations should be robust in the case of a
        # missing OSC Type Tag String.
        return totalcount, OSCMessage(addrpattern)

    try:
        count, typetags = decode_oscstring(rawoscdata, oob)
    except OSCTruncatedRawError as e:
        _tolerate(e, oob)
        count = len(rawoscdata)
        typetags = bytes(rawoscdata).decode('ascii', 'replace')
    totalcount += count
    rawoscdata = rawoscdata[count:]

    count, arguments = _decode_arguments(typetags[1:], rawoscdata, oob)
    totalcount += count
    return totalcount, OSCMessage(addrpattern, arguments)


def _decode_arguments(typetags, rawoscdata, oob):
    """Decode arguments left to right, stop at first truncated one.

    :param typetags: type tags, without the heading ','
    :type typetags: str
    :param rawoscdata: raw OSC data to decode
    :type rawoscdata: memoryview
    :param oob: out of band extra parameters / options
    :type oob: dict
    :return: count of decoded bytes, decoded arguments
    :rtype: int, tuple
    """
    logger = oob.get('logger', None)
    totalcount = 0
    arguments = []
    for tag in typetags:
        try:
            count, arg = decode_argument(rawoscdata, tag, oob)
        except OSCUnknownTypetagError as e:
            _tolerate(e, oob)
            # FIXME: fixed skip misaligns if the unknown type is not 4 bytes.
            if len(rawoscdata) < UNKNOWN_TYPETAG_SKIP:
                break
            if logger is not None:
                logger.debug("OSC skipping %d bytes for type tag %r",
                             UNKNOWN_TYPETAG_SKIP, tag)
            totalcount += UNKNOWN_TYPETAG_SKIP
            rawoscdata = rawoscdata[UNKNOWN_TYPETAG_SKIP:]
            continue
        except OSCTruncatedRawError as e:
            _tolerate(e, oob)
            if logger is not None:
                logger.warning("OSC partial message, %d of %d arguments "
                               "decoded", len(arguments), len(typetags))
            break
        totalcount += count
        rawoscdata = rawoscdata[count:]
        arguments.append(arg)

    return totalcount, tuple(arguments)


def _encode_message(message, tobuffer, oob):
    """Build OSC representation of a message at the end of tobuffer.

    :param message: message object to encode.
    :type message: OSCMessage
    :param tobuffer: bytes collection to collect built result.
    :type tobuffer: bytearray
    :param oob: out of band extra parameters / options
    :type oob: dict
    :return: count of bytes produced.
    :rtype: int
    """
    addrpattern, arguments = message
    if not isinstance(addrpattern, str) or \
            not addrpattern.startswith(BEGIN_ADDRPATTERN):
        raise OSCInvalidAddressError("OSC invalid addrpattern {!r}: "
                                     "missing /".format(addrpattern))
    if '\000' in addrpattern:
        raise OSCInvalidAddressError("OSC invalid addrpattern {!r}: "
                                     "contains zero char".format(addrpattern))

    # Computed first, so a non OSC value fails before anything is written.
    typetags = tags_for(arguments)

    totalcount = 0
    totalcount += encode_oscstring(addrpattern, tobuffer, oob)
    totalcount += encode_oscstring(typetags, tobuffer, oob)
    for arg in arguments:
        totalcount += encode_argument(arg, tobuffer, oob)
    return totalcount


#==================== FUNCTIONS FOR BUNDLES =================================
def _decode_bundle(rawoscdata, oob, depth):
    """Decode an OSC bundle raw data into an OSCBundle object.

    :param rawoscdata: sequences of bytes containing OSC data, starting
        with the bundle marker.
    :type rawoscdata: memoryview
    :param oob: out of band extra parameters / options
    :type oob: dict
    :param depth: nesting level of this bundle, 1 for top level.
    :type depth: int
    :return: count of consumed bytes, decoded value
    :rtype: int, OSCBundle
    """
    # An OSC Bundle consists of the OSC-string "#bundle" followed by an OSC
    # Time Tag, followed by zero or more OSC Bundle Elements.
    #
    # An OSC Bundle Element consists of its size and its contents.
    # The size is an int32 representing the number of 8-bit bytes in the
    # contents. The contents are either an OSC Message or an OSC Bundle.
    totalcount = len(BEGIN_BUNDLE)
    rawoscdata = rawoscdata[len(BEGIN_BUNDLE):]

    try:
        timetag = decode_timetag(rawoscdata)
    except OSCTruncatedRawError as e:
        _tolerate(e, oob)
        return totalcount + len(rawoscdata), OSCBundle(OSC_IMMEDIATELY)
    totalcount += 8
    rawoscdata = rawoscdata[8:]

    maxelements = oob.get('bundle_max_elements', BUNDLE_MAX_ELEMENTS)
    maxdepth = oob.get('bundle_max_depth', BUNDLE_MAX_DEPTH)

    elements = []
    elemcount = 0
    while len(rawoscdata) >= 4:
        elemcount += 1
        if elemcount > maxelements:
            _tolerate(OSCMalformedBundleError("OSC bundle truncated to {} "
                        "elements".format(maxelements)), oob)
            break
        size, = struct.unpack(">i", rawoscdata[:4])
        if size <= 0 or size > len(rawoscdata) - 4:
            _tolerate(OSCMalformedBundleError("OSC invalid bundle element {} "
                    "size {} for remaining {} bytes: {}".format(elemcount,
                    size, len(rawoscdata) - 4, _dumpmv(rawoscdata))), oob)
            break

        subpart = rawoscdata[4:4 + size]
        totalcount += 4 + size
        rawoscdata = rawoscdata[4 + size:]

        if is_bundle(subpart) and depth >= maxdepth:
            _tolerate(OSCMalformedBundleError("OSC bundle element {} dropped, "
                    "nesting deeper than {} levels".format(elemcount,
                    maxdepth)), oob)
            continue
        elements.append(_decode_element(subpart, oob, depth))

    return totalcount, OSCBundle(timetag, elements)


def _encode_bundle(bundle, tobuffer, oob):
    """Build OSC representation of a bundle at the end of tobuffer.

    Note: OSC doc indicates that contained bundles must have timetag greater
    or equal than container bundle, but this is not enforced neither checked
    by this function.

    :param bundle: bundle object to encode.
    :type bundle: OSCBundle
    :param tobuffer: bytes collection to collect built result.
    :type tobuffer: bytearray
    :param oob: out of band extra parameters / options
    :type oob: dict
    :return: count of bytes produced.
    :rtype: int
    """
    timetag, elements = bundle
    totalcount = 0
    tobuffer.extend(BEGIN_BUNDLE)
    totalcount += len(BEGIN_BUNDLE)
    rawtimetag = encode_timetag(timetag)
    tobuffer.extend(rawtimetag)
    totalcount += len(rawtimetag)
    for elem in elements:
        # Preserve room for element size.
        elemsizeindex = len(tobuffer)
        tobuffer.extend(b'\000' * 4)
        elemsize = _encode_element(elem, tobuffer, oob)
        # Update element size inside bundle encoded data.
        tobuffer[elemsizeindex:elemsizeindex + 4] = struct.pack(">i", elemsize)
        totalcount += 4 + elemsize
    return totalcount


#==================== COMMON PACKET / ELEMENT CODE ==========================
def _decode_element(rawoscdata, oob, depth=0):
    """Internal function - decode bundle element / packet content.

    (common code for packet content and bundle element content)

    :param depth: nesting level of the bundle containing the data, 0 for
        a whole packet.
    :type depth: int
    :return: decoded content of the raw data
    :rtype: OSCBundle or OSCMessage
    """
    if is_bundle(rawoscdata):
        count, res = _decode_bundle(rawoscdata, oob, depth + 1)
    else:
        count, res = _decode_message(rawoscdata, oob)
    if count < len(rawoscdata):
        logger = oob.get('logger', None)
        if logger is not None:
            logger.debug("OSC %d remaining bytes ignored after %s",
                         len(rawoscdata) - count, res.__class__.__name__)
    return res


def _encode_element(content, tobuffer, oob):
    if isinstance(content, OSCBundle):
        return _encode_bundle(content, tobuffer, oob)
    elif isinstance(content, OSCMessage):
        return _encode_message(content, tobuffer, oob)
    raise OSCInvalidDataError("OSC content {!r} is not OSCBundle or "
                              "OSCMessage.".format(content.__class__.__name__))


def _asmemoryview(rawoscdata):
    rawoscdata = memoryview(rawoscdata)
    if rawoscdata.format != 'B':
        raise OSCInvalidRawError("OSC packet base type must be bytes.")
    return rawoscdata


def is_bundle(rawoscdata):
    """Test if raw data starts with the bundle marker.

    :param rawoscdata: raw OSC data.
    :type rawoscdata: bytes or bytearray or memoryview
    :rtype: bool
    """
    return bytes(rawoscdata[:len(BEGIN_BUNDLE)]) == BEGIN_BUNDLE


def decode_message(rawoscdata, oob=None):
    """Decode raw data of one OSC message.

    :param rawoscdata: content of message data to decode.
    :type rawoscdata: bytes or bytearray or memoryview
    :param oob: out of band extra parameters.
    :type oob: dict
    :return: decoded message, possibly with only first arguments.
    :rtype: OSCMessage
    """
    if oob is None:
        oob = {}
    count, msg = _decode_message(_asmemoryview(rawoscdata), oob)
    return msg


def decode_bundle(rawoscdata, oob=None):
    """Decode raw data of one OSC bundle.

    :param rawoscdata: content of bundle data to decode, must begin with
        the ``#bundle`` marker.
    :type rawoscdata: bytes or bytearray or memoryview
    :param oob: out of band extra parameters.
    :type oob: dict
    :return: decoded bundle, possibly with only first elements.
    :rtype: OSCBundle
    """
    if oob is None:
        oob = {}
    rawoscdata = _asmemoryview(rawoscdata)
    if not is_bundle(rawoscdata):
        raise OSCInvalidRawError("OSC invalid bundle header in raw data: "
                                 "{}".format(_dumpmv(rawoscdata)))
    count, bundle = _decode_bundle(rawoscdata, oob, 1)
    return bundle


def encode_message(message, oob=None):
    """Build OSC raw data of a message.

    :param message: the message to encode
    :type message: OSCMessage
    :param oob: out of band extra parameters.
    :type oob: dict
    :rtype: bytes
    """
    if oob is None:
        oob = {}
    tobuffer = bytearray()
    _encode_message(message, tobuffer, oob)
    return bytes(tobuffer)


def encode_bundle(bundle, oob=None):
    """Build OSC raw data of a bundle and its elements, recursively.

    :param bundle: the bundle to encode
    :type bundle: OSCBundle
    :param oob: out of band extra parameters.
    :type oob: dict
    :rtype: bytes
    """
    if oob is None:
        oob = {}
    tobuffer = bytearray()
    _encode_bundle(bundle, tobuffer, oob)
    return bytes(tobuffer)


def decode_packet(rawoscdata, oob=None):
    """From a raw OSC packet, extract the OSCMessage or OSCBundle.

    Generally the packet come from an OSC transport reader (ex. one UDP
    datagram). The function identify bundle by its marker, else consider
    the packet as a message.

    This function map a memoryview on top of the raw data. This allow
    sub-called functions to not duplicate data when processing.

    :param rawoscdata: content of packet data to decode.
    :type rawoscdata: bytes or bytearray or memoryview (indexable bytes)
    :param oob: out of band extra parameters.
    :type oob: dict
    :return: decoded OSC packet, possibly partial (see module doc).
    :rtype: OSCMessage or OSCBundle
    """
    rawoscdata = _asmemoryview(rawoscdata)

    if oob is None:
        oob = {}

    if oob.get('decode_packet_dumpraw', False):
        print("OSC decoding packet:", file=oob.get('dumpfile', sys.stdout))
        dumphex_buffer(rawoscdata, oob.get('dumpfile', None))

    size = len(rawoscdata)
    if size == 0:
        _tolerate(OSCTruncatedRawError("OSC empty packet"), oob)
        return OSCMessage("")
    if size % 4 != 0:
        _tolerate(OSCTruncatedRawError("OSC packet must be a multiple of "
                        "4 bytes length: {}".format(_dumpmv(rawoscdata))), oob)

    return _decode_element(rawoscdata, oob)


def encode_packet(content, oob=None):
    """From an OSCBundle or an OSCMessage, build OSC raw packet.

    :param content: data of packet to encode
    :type content: OSCMessage or OSCBundle
    :param oob: out of band extra parameters.
    :type oob: dict
    :return: raw representation of the packet
    :rtype: bytes
    """
    if oob is None:
        oob = {}

    tobuffer = bytearray()
    _encode_element(content, tobuffer, oob)

    if oob.get('encode_packet_dumpraw', False):
        print("OSC encoded packet:", file=oob.get('dumpfile', sys.stdout))
        dumphex_buffer(tobuffer, oob.get('dumpfile', None))

    return bytes(tobuffer)


def unbundle(packet, timetag=OSC_IMMEDIATELY):
    """Walk a packet tree and generate its messages in wire order.

    Nothing is scheduled here, time tags are just reported along with
    messages.

    :param packet: the packet to walk
    :type packet: OSCMessage or OSCBundle
    :param timetag: time tag reported for a message outside any bundle.
    :type timetag: OSCtimetag
    :return: generator of (timetag, message), where timetag is the one of
        the innermost bundle containing the message.
    """
    if isinstance(packet, OSCMessage):
        yield timetag, packet
    elif isinstance(packet, OSCBundle):
        for elem in packet.elements:
            yield from unbundle(elem, packet.timetag)
    else:
        raise OSCInvalidDataError("OSC unknown packet kind {!r}".format(
                                  packet.__class__.__name__))


#============================== EXTRA TOOLS =================================
def dumphex_buffer(rawdata, tofile=None):
    """Dump hexa codes of OSC stream, group by 4 bytes to identify parts.

    :param data: some raw data to format.
    :type data: bytes
    :param tofile: output stream to receive dump
    :type tofile: file (or file-like)
    """
    if tofile is None:
        tofile = sys.stdout

    rawdata = bytes(rawdata)
    for ofs in range(0, len(rawdata), 16):
        line = rawdata[ofs:ofs + 16]
        hexa = ' '.join(line[i:i + 4].hex() for i in range(0, len(line), 4))
        text = ''.join(chr(v) if 32 <= v <= 126 else '.' for v in line)
        print("{:03d}:{:40s}{}".format(ofs, hexa, text), file=tofile)
