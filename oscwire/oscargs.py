#!/usr/bin/env python3
# -*- encoding: utf-8 -*-
# File: oscwire/oscargs.py
# <pep8 compliant>
"""Encoding and decoding of OSC arguments payload bytes.

Each supported type tag is described in the :data:`osctypes_refs` table,
with either a struct format for fixed size values, or special functions
for variable size values (strings and blobs).

Functions work with a memoryview on raw data, starting at the argument
to decode, and return the count of consumed bytes with the value.
"""

from collections import namedtuple
import struct

from .oscerrors import (OSCInvalidDataError, OSCTruncatedRawError,
                        OSCUnknownTypetagError)
from .osctypetags import (OSCint32, OSCfloat32, OSCstring, OSCblob,
                          OSC_TRUE, OSC_FALSE, OSC_NIL, tag_for,
                          OSCTYPE_INT32, OSCTYPE_FLOAT32, OSCTYPE_STRING,
                          OSCTYPE_BLOB, OSCTYPE_TRUE, OSCTYPE_FALSE,
                          OSCTYPE_NIL)

__all__ = [
    "encode_argument",
    "decode_argument",
    "encode_oscstring",
    "decode_oscstring",
    "UNKNOWN_TYPETAG_SKIP",
    ]

# Bytes for padding to fill 4 bytes alignment and eventually a zero termination
# at end of a string. Note: for string, you must add 4 padding bytes in case
# of a string length multiple of 4 bytes (ie there must be a zero after
# the content).
padding = {}
for i in range(0, 5):
    padding[i] = b'\000' * i

# Count of bytes passed when decoding an unknown type tag.
# Only right for 4 bytes types, misalign following arguments otherwise.
UNKNOWN_TYPETAG_SKIP = 4


def _dumpmv(data, length=20):
    """Return printable version of a sequence of bytes.

    This function is called everywhere we raise an error and wants to
    attach part of raw data to the exception.

    :param data: some raw data to format.
    :type data: bytes or memoryview
    :param length: how many bytes to dump, length<=0 to dump all bytes.
        Default to 20 bytes.
    :type length: int
    """
    if length <= 0 or length > len(data):
        length = len(data)
    data = bytes(data[:length])
    linetext = ["({} bytes) ".format(length)]
    linetext.extend("{:02x} ".format(v) for v in data)
    linetext.append('   ')
    for v in data:
        if 32 <= v <= 126:
            linetext.append(chr(v))
        else:
            linetext.append('.')
    return "".join(linetext)


#========================= STRINGS ==========================================
def decode_oscstring(rawoscdata, oob):
    """Decode an OSC-string (zero terminated, padded to 4 bytes).

    If the padding bytes are missing at the end of raw data, the string
    is still accepted and only remaining bytes are consumed.

    :param rawoscdata: raw OSC data to decode
    :type rawoscdata: memoryview
    :param oob: out of band extra parameters / options
    :type oob: dict
    :return: count of decoded bytes, decoded content
    :rtype: int, str
    """
    zeroindex = bytes(rawoscdata).find(b'\000')
    if zeroindex < 0:
        raise OSCTruncatedRawError("OSC non terminated string in raw data "
                                   "for {}".format(_dumpmv(rawoscdata)))
    byteslength = min((zeroindex // 4) * 4 + 4, len(rawoscdata))
    strcodec, error = oob.get('str_decode', ('utf-8', 'replace'))
    val = bytes(rawoscdata[:zeroindex]).decode(strcodec, error)
    return byteslength, val


def encode_oscstring(val, tobuffer, oob):
    """Append the OSC-string representation of a str at end of tobuffer.

    :param val: the string to encode.
    :type val: str
    :param tobuffer: bytes collection to collect built result.
    :type tobuffer: bytearray
    :param oob: out of band extra parameters / options
    :type oob: dict
    :return: count of bytes produced.
    :rtype: int
    """
    strcodec, error = oob.get('str_encode', ('utf-8', 'strict'))
    try:
        val = val.encode(strcodec, error)
    except UnicodeError as e:
        raise OSCInvalidDataError("OSC string {!r} cannot be encoded "
                                  "with {}".format(val, strcodec)) from e
    if b'\000' in val:
        raise OSCInvalidDataError("OSC string cannot contain zero byte")

    # Always at least one zero byte after the content.
    padbytes = padding[4 - len(val) % 4]
    tobuffer.extend(val)
    tobuffer.extend(padbytes)
    return len(val) + len(padbytes)


def _decode_str(rawoscdata, typerefs, oob):
    count, val = decode_oscstring(rawoscdata, oob)
    return count, OSCstring(val)


def _encode_str(val, typerefs, tobuffer, oob):
    return encode_oscstring(val.value, tobuffer, oob)


#========================= BLOBS ============================================
def _decode_blob(rawoscdata, typerefs, oob):
    """
    :param rawoscdata: raw OSC data to decode
    :type rawoscdata: memoryview
    :param typerefs: references for the OSC type
    :type typerefs: OSCTypeRef
    :param oob: out of band extra parameters / options
    :type oob: dict
    :return: count of decoded bytes, decoded content
    :rtype: int, OSCblob
    """
    if len(rawoscdata) < 4:
        raise OSCTruncatedRawError("OSC missing blob size in raw data for "
                                   "{}".format(_dumpmv(rawoscdata)))
    length, = struct.unpack(">i", rawoscdata[:4])
    if length < 0 or 4 + length > len(rawoscdata):
        raise OSCTruncatedRawError("OSC invalid length {} for blob in "
                    "raw data for {}".format(length, _dumpmv(rawoscdata)))
    val = OSCblob(rawoscdata[4:4 + length])
    # Padding may be clipped at the end of raw data.
    totalsize = min(4 + length + (-length % 4), len(rawoscdata))
    return totalsize, val


def _encode_blob(val, typerefs, tobuffer, oob):
    """
    :param tobuffer: bytes collection to collect built result.
    :type tobuffer: bytearray
    :param oob: out of band extra parameters / options
    :type oob: dict
    :return: count of bytes produced.
    :rtype: int
    """
    data = val.value
    length = len(data)
    padbytes = -length % 4
    tobuffer.extend(struct.pack(">i", length))
    tobuffer.extend(data)
    tobuffer.extend(padding[padbytes])
    return 4 + length + padbytes


#======================= TYPE TAGS REFERENCES ===============================

# A named tuple to store references for encoding/decoding data.
OSCTypeRef = namedtuple('OSCTypeRef', 'typetag typename pytype byteslen '
                                      'defvalue decode encode')

NODEFAULT = "nodefault"     # To be able to have None as real default value.
osctypes_refs = {
    OSCTYPE_INT32:
        # 32-bit big-endian two's complement integer.
        OSCTypeRef('i', "int32", OSCint32, 4, NODEFAULT, ">i", ">i"),
    OSCTYPE_FLOAT32:
        # 32-bit big-endian IEEE 754 floating point number.
        OSCTypeRef('f', "float32", OSCfloat32, 4, NODEFAULT, ">f", ">f"),
    OSCTYPE_STRING:
        # A sequence of non-null characters followed by a null,
        # followed by 0-3 additional null characters to make the total number
        # of bits a multiple of 32.
        OSCTypeRef('s', "string", OSCstring, None, NODEFAULT, _decode_str,
                                                              _encode_str),
    OSCTYPE_BLOB:
        # An int32 size count, followed by that many 8-bit bytes of arbitrary
        # binary data, followed by 0-3 additional zero bytes to make the total
        # number of bits a multiple of 32.
        OSCTypeRef('b', "blob", OSCblob, None, NODEFAULT, _decode_blob,
                                                          _encode_blob),
    OSCTYPE_TRUE:
        # No bytes are allocated in the argument data.
        OSCTypeRef('T', "booltrue", None, 0, OSC_TRUE, None, None),
    OSCTYPE_FALSE:
        OSCTypeRef('F', "boolfalse", None, 0, OSC_FALSE, None, None),
    OSCTYPE_NIL:
        OSCTypeRef('N', "nil", None, 0, OSC_NIL, None, None),
    }


def decode_argument(rawoscdata, typetag, oob):
    """Decode an OSC stream into a single argument value from its type tag.

    Remaining bytes in the stream must be processed elsewhere (offset by
    count bytes returned).

    .. Note:: the count of consumed bytes may be zero for values directly
              encoded in the type tag.

    :param rawoscdata: sequences of bytes containing OSC data,
    :type rawoscdata: memoryview
    :param typetag: char of the tag to identify data type.
    :type typetag: str
    :param oob: out of band extra parameters / options
    :type oob: dict
    :return: count of consumed bytes, decoded value
    """
    try:
        typerefs = osctypes_refs[typetag]
    except KeyError:
        # Transform the exception - make it more selectable.
        raise OSCUnknownTypetagError("OSC unknown type tag {!r} when "
                                     "decoding".format(typetag)) from None

    if callable(typerefs.decode):
        return typerefs.decode(rawoscdata, typerefs, oob)

    if typerefs.decode is None:
        # Value directly inside type tag (booleans true/false, nil).
        return 0, typerefs.defvalue

    if len(rawoscdata) < typerefs.byteslen:
        raise OSCTruncatedRawError("OSC {} needs {} bytes in raw data for "
                "{}".format(typerefs.typename, typerefs.byteslen,
                _dumpmv(rawoscdata)))
    val, = struct.unpack(typerefs.decode, rawoscdata[:typerefs.byteslen])
    return typerefs.byteslen, typerefs.pytype(val)


def encode_argument(val, tobuffer, oob):
    """Encode a single argument value as OSC data at the end of a buffer.

    .. Note:: the count of produced bytes may be zero for values directly
              encoded in the type tag.

    :param val: value to encode.
    :type val: one of the OSC value classes
    :param tobuffer: bytes collection to collect built result.
    :type tobuffer: bytearray
    :param oob: out of band extra parameters / options
    :type oob: dict
    :return: count of bytes produced.
    :rtype: int
    """
    typerefs = osctypes_refs[tag_for(val)]

    if callable(typerefs.encode):
        return typerefs.encode(val, typerefs, tobuffer, oob)

    if typerefs.encode is None:
        return 0

    try:
        rawoscdata = struct.pack(typerefs.encode, val.value)
    except struct.error as e:
        raise OSCInvalidDataError("OSC cannot encode {!r} as {}".format(
                                  val, typerefs.typename)) from e
    tobuffer.extend(rawoscdata)
    return len(rawoscdata)
