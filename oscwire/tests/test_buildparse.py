#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# File: oscwire/tests/test_buildparse.py
# <pep8 compliant>

import array
import io
import logging

import pytest

from oscwire.oscbuildparse import *

# Example from OSC documentation at http://opensoundcontrol.org/
RAW_FOO = bytes([0x2f, 0x66, 0x6f, 0x6f,    # 2f (/)  66 (f)  6f (o)  6f (o)
                 0x00, 0x00, 0x00, 0x00,    # 0 ()    0 ()    0 ()    0 ()
                 0x2c, 0x69, 0x69, 0x73,    # 2c (,)  69 (i)  69 (i)  73 (s)
                 0x66, 0x66, 0x00, 0x00,    # 66 (f)  66 (f)  0 ()    0 ()
                 0x00, 0x00, 0x03, 0xe8,    # 0 ()    0 ()    3 ()    e8 (è)
                 0xff, 0xff, 0xff, 0xff,    # ff (ÿ)  ff (ÿ)  ff (ÿ)  ff (ÿ)
                 0x68, 0x65, 0x6c, 0x6c,    # 68 (h)  65 (e)  6c (l)  6c (l)
                 0x6f, 0x00, 0x00, 0x00,    # 6f (o)  0 ()    0 ()    0 ()
                 0x3f, 0x9d, 0xf3, 0xb6,    # 3f (?)  9d ()   f3 (ó)  b6 (¶)
                 0x40, 0xb5, 0xb2, 0x2d,    # 40 (@)  b5 (µ)  b2 (”)  2d (-)
                 ])
MSG_FOO = OSCMessage("/foo", [OSCint32(1000), OSCint32(-1),
                              OSCstring("hello"), OSCfloat32(1.234),
                              OSCfloat32(5.678)])

RAW_FREQ = bytes.fromhex("2f73796e74682f6672657100"
                         "2c660000"
                         "43dc0000")

SAMPLE_MESSAGES = [
    OSCMessage("/trigger"),
    OSCMessage("/synth/freq", [OSCfloat32(440.0)]),
    OSCMessage("/basetypes", [OSCint32(1), OSCfloat32(2.3),
                              OSCstring("mystring")]),
    OSCMessage("/constants", [OSCint32(42), OSC_NIL, OSC_TRUE, OSC_FALSE]),
    OSCMessage("/strings", [OSCstring(""), OSCstring("abc"),
                            OSCstring("abcd"), OSCstring("Avé la façon ♪")]),
    OSCMessage("/blob", [OSCint32(42), OSCblob(b'A first blob'),
                         OSCblob(b''), OSCblob(b'1234')]),
    OSCMessage("/a", [OSCint32(-2 ** 31), OSCint32(2 ** 31 - 1),
                      OSCfloat32(-0.0), OSCfloat32(float('inf'))]),
    ]


def test_encode_frequency_message():
    raw = encode_message(OSCMessage("/synth/freq", [OSCfloat32(440.0)]))
    assert raw == RAW_FREQ
    assert raw[:12] == b"/synth/freq\000"
    assert raw[12:16] == b",f\000\000"
    assert raw[16:] == bytes([0x43, 0xdc, 0x00, 0x00])


def test_decode_frequency_message():
    msg = decode_message(RAW_FREQ)
    assert msg == OSCMessage("/synth/freq", [OSCfloat32(440.0)])
    assert msg.typetags == ",f"
    assert decode_packet(RAW_FREQ) == msg


def test_encode_message_without_argument():
    raw = encode_message(OSCMessage("/trigger", []))
    assert raw == b"/trigger\000\000\000\000" + b",\000\000\000"


def test_documentation_example():
    assert decode_packet(RAW_FOO) == MSG_FOO
    assert encode_packet(MSG_FOO) == RAW_FOO


@pytest.mark.parametrize("msg", SAMPLE_MESSAGES)
def test_round_trip(msg):
    raw = encode_packet(msg)
    assert len(raw) % 4 == 0
    assert decode_packet(raw) == msg


def test_string_padding():
    # Always at least one zero, total multiple of 4.
    for text, size in [("", 4), ("a", 4), ("abc", 4), ("abcd", 8),
                       ("abcdefg", 8)]:
        raw = encode_message(OSCMessage("/s", [OSCstring(text)]))
        assert len(raw) == 4 + 4 + size


def test_blob_encoding():
    raw = encode_message(OSCMessage("/b", [OSCblob(b'\001\002\003')]))
    assert raw[8:] == b'\000\000\000\003\001\002\003\000'


def test_invalid_addresses():
    for addr in ["", "abc", "/a\000b", None]:
        with pytest.raises(OSCInvalidAddressError):
            encode_message(OSCMessage(addr, []))
    # Address errors are encoding errors.
    assert issubclass(OSCInvalidAddressError, OSCInvalidDataError)


def test_encode_refuses_plain_values():
    with pytest.raises(OSCInvalidDataError):
        encode_packet(OSCMessage("/x", [1, 2.0]))
    with pytest.raises(OSCInvalidDataError):
        encode_packet(OSCMessage("/x", [OSCstring("a\000b")]))
    with pytest.raises(OSCInvalidDataError):
        encode_packet(("/x", ()))


def test_encode_string_codec():
    msg = OSCMessage("/x", [OSCstring("é")])
    with pytest.raises(OSCInvalidDataError):
        encode_packet(msg, {'str_encode': ('ascii', 'strict')})
    raw = encode_packet(msg, {'str_encode': ('latin-1', 'strict')})
    assert decode_packet(raw, {'str_decode': ('latin-1', 'strict')}) == msg


def test_decode_address_not_checked():
    msg = decode_message(b"abc\000,i\000\000\000\000\000\007")
    assert msg == OSCMessage("abc", [OSCint32(7)])


def test_decode_without_typetags():
    assert decode_packet(b"/abc\000\000\000\000") == OSCMessage("/abc")
    assert decode_packet(b"/abcdef\000") == OSCMessage("/abcdef")


def test_decode_without_address_terminator():
    assert decode_packet(b"/abc") == OSCMessage("/abc")


def test_decode_bad_utf8_is_replaced():
    msg = decode_packet(b"/a\377\000,s\000\000x\377\000\000")
    assert msg.addrpattern == "/a\ufffd"
    assert msg.arguments == (OSCstring("x\ufffd"),)


def test_truncated_message_keeps_first_arguments():
    msg = OSCMessage("/t", [OSCint32(1), OSCint32(2), OSCstring("abc"),
                            OSCfloat32(1.0)])
    raw = encode_packet(msg)
    assert len(raw) == 28
    assert decode_packet(raw[:18]).arguments == (OSCint32(1),)
    assert decode_packet(raw[:20]).arguments == (OSCint32(1), OSCint32(2))
    assert decode_packet(raw[:21]).arguments == (OSCint32(1), OSCint32(2))
    assert decode_packet(raw[:24]).arguments == (OSCint32(1), OSCint32(2),
                                                 OSCstring("abc"))
    assert decode_packet(raw[:12]).arguments == ()


def test_truncated_message_in_strict_mode():
    raw = encode_packet(OSCMessage("/t", [OSCint32(1), OSCint32(2)]))
    with pytest.raises(OSCTruncatedRawError):
        decode_packet(raw[:12], {'strict_decode': True})
    with pytest.raises(OSCInvalidRawError):
        decode_packet(raw[:14], {'strict_decode': True})


def test_truncated_blob():
    raw = encode_packet(OSCMessage("/b", [OSCint32(5),
                                          OSCblob(b'0123456789')]))
    assert decode_packet(raw[:-4]).arguments == (OSCint32(5),)


def test_zero_payload_tags_after_cut():
    # Type tags without terminator, T and F need no data.
    msg = decode_packet(b"/x\000\000,TF")
    assert msg.arguments == (OSC_TRUE, OSC_FALSE)


def test_unknown_typetag_skips_four_bytes():
    raw = (b"/x\000\000" + b",ixi\000\000\000\000" +
           b"\000\000\000\001" + b"\377\377\377\377" + b"\000\000\000\002")
    msg = decode_packet(raw)
    assert msg == OSCMessage("/x", [OSCint32(1), OSCint32(2)])
    with pytest.raises(OSCUnknownTypetagError):
        decode_packet(raw, {'strict_decode': True})


def test_unknown_typetag_without_data():
    msg = decode_packet(b"/x\000\000,iq\000\000\000\000\001")
    assert msg.arguments == (OSCint32(1),)


def test_empty_packet():
    assert decode_packet(b"") == OSCMessage("")
    with pytest.raises(OSCTruncatedRawError):
        decode_packet(b"", {'strict_decode': True})


def test_unaligned_packet():
    raw = encode_packet(OSCMessage("/i", [OSCint32(3)]))
    assert decode_packet(raw + b"\000\000") == OSCMessage("/i", [OSCint32(3)])
    with pytest.raises(OSCTruncatedRawError):
        decode_packet(raw + b"\000\000", {'strict_decode': True})


def test_decode_accepts_buffers():
    raw = encode_packet(MSG_FOO)
    assert decode_packet(bytearray(raw)) == MSG_FOO
    assert decode_packet(memoryview(raw)) == MSG_FOO
    with pytest.raises(OSCInvalidRawError):
        decode_packet(memoryview(array.array('i', [1, 2])))


def test_tolerated_problems_are_logged(logger, caplog):
    raw = encode_packet(OSCMessage("/t", [OSCint32(1), OSCint32(2)]))
    with caplog.at_level(logging.DEBUG, logger="osc"):
        msg = decode_packet(raw[:-2], {'logger': logger})
    assert msg.arguments == (OSCint32(1),)
    assert "OSC partial message" in caplog.text


def test_dumphex_buffer():
    out = io.StringIO()
    dumphex_buffer(RAW_FREQ, out)
    lines = out.getvalue().splitlines()
    assert len(lines) == 2
    assert lines[0].startswith("000:2f73796e 74682f66 72657100 2c660000")
    assert lines[0].endswith("/synth/freq.,f..")
    assert lines[1].startswith("016:43dc0000")


def test_dump_option():
    out = io.StringIO()
    raw = encode_packet(MSG_FOO, {'encode_packet_dumpraw': True,
                                  'dumpfile': out})
    decode_packet(raw, {'decode_packet_dumpraw': True, 'dumpfile': out})
    text = out.getvalue()
    assert "OSC encoded packet:" in text
    assert "OSC decoding packet:" in text
