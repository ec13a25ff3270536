#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# File: oscwire/tests/test_bundles.py
# <pep8 compliant>

import struct

import pytest

from oscwire.oscbuildparse import *

IMMEDIATE_RAW = b'\000\000\000\000\000\000\000\001'

MSG_A = OSCMessage("/a")
MSG_B = OSCMessage("/b", [OSCint32(1)])


def _bundle_depth(bundle):
    depth = 0
    while isinstance(bundle, OSCBundle):
        depth += 1
        bundle = bundle.elements[0] if bundle.elements else None
    return depth


def test_immediate_bundle_with_two_messages():
    bundle = OSCBundle(OSC_IMMEDIATELY, [MSG_A, MSG_B])
    raw = encode_packet(bundle)
    assert raw[:8] == b'#bundle\000'
    assert raw[8:16] == IMMEDIATE_RAW
    assert struct.unpack(">i", raw[16:20])[0] == 8
    assert raw[20:28] == encode_packet(MSG_A)
    assert struct.unpack(">i", raw[28:32])[0] == 12
    assert raw[32:] == encode_packet(MSG_B)
    decoded = decode_packet(raw)
    assert decoded == bundle
    assert decoded.elements == (MSG_A, MSG_B)
    assert decode_bundle(raw) == bundle
    assert encode_bundle(bundle) == raw


def test_nested_bundles_round_trip():
    tree = OSCBundle(OSCtimetag(1700000000123), [
                OSCBundle(OSCtimetag(1700000000500), [
                    OSCMessage("/deep", [OSCstring("x"), OSC_NIL]),
                    ]),
                ])
    raw = encode_packet(tree)
    assert len(raw) % 4 == 0
    decoded = decode_packet(raw)
    assert decoded == tree
    assert isinstance(decoded.elements[0], OSCBundle)
    assert isinstance(decoded.elements[0].elements[0], OSCMessage)


def test_mixed_elements_round_trip():
    tree = OSCBundle(unixtime2timetag(), [
                MSG_A,
                OSCBundle(OSC_IMMEDIATELY, [MSG_B]),
                OSCBundle(OSC_IMMEDIATELY, []),
                OSCMessage("/blob", [OSCblob(b'abcde')]),
                ])
    raw = encode_packet(tree)
    assert len(raw) % 4 == 0
    assert decode_packet(raw) == tree


def test_element_size_overrun():
    raw = bytearray(encode_packet(OSCBundle(OSC_IMMEDIATELY, [MSG_A, MSG_B])))
    raw[28:32] = struct.pack(">i", 1000)
    decoded = decode_packet(bytes(raw))
    assert decoded == OSCBundle(OSC_IMMEDIATELY, [MSG_A])
    with pytest.raises(OSCMalformedBundleError):
        decode_packet(bytes(raw), {'strict_decode': True})


def test_element_size_zero_or_negative():
    for size in (0, -4):
        raw = bytearray(encode_packet(OSCBundle(OSC_IMMEDIATELY,
                                                [MSG_A, MSG_B])))
        raw[16:20] = struct.pack(">i", size)
        assert decode_packet(bytes(raw)).elements == ()


def test_truncated_bundle_header():
    assert decode_packet(b'#bundle\000\000\000\000\001') == \
        OSCBundle(OSC_IMMEDIATELY, [])
    with pytest.raises(OSCTruncatedRawError):
        decode_packet(b'#bundle\000\000\000\000\001', {'strict_decode': True})


def test_bundle_trailing_bytes_ignored():
    raw = encode_packet(OSCBundle(OSC_IMMEDIATELY, [MSG_B]))
    assert decode_packet(raw + b'\000\000') == OSCBundle(OSC_IMMEDIATELY,
                                                          [MSG_B])


def test_elements_count_limit():
    messages = [OSCMessage("/m", [OSCint32(i)]) for i in range(150)]
    raw = encode_packet(OSCBundle(OSC_IMMEDIATELY, messages))
    decoded = decode_packet(raw)
    assert decoded.elements == tuple(messages[:100])
    decoded = decode_packet(raw, {'bundle_max_elements': 200})
    assert decoded.elements == tuple(messages)
    with pytest.raises(OSCMalformedBundleError):
        decode_packet(raw, {'strict_decode': True})


def test_nesting_depth_limit():
    bundle = OSCBundle(OSC_IMMEDIATELY, [MSG_A])
    for i in range(19):
        bundle = OSCBundle(OSC_IMMEDIATELY, [bundle])
    raw = encode_packet(bundle)
    decoded = decode_packet(raw)
    assert _bundle_depth(decoded) == 16
    assert list(unbundle(decoded)) == []
    decoded = decode_packet(raw, {'bundle_max_depth': 32})
    assert decoded == bundle
    with pytest.raises(OSCMalformedBundleError):
        decode_packet(raw, {'strict_decode': True})


def test_adversarial_nesting_terminates():
    raw = encode_packet(MSG_A)
    for i in range(2000):
        raw = b'#bundle\000' + IMMEDIATE_RAW + struct.pack(">i", len(raw)) + raw
    decoded = decode_packet(raw)
    assert _bundle_depth(decoded) == 16


def test_is_bundle():
    assert is_bundle(encode_packet(OSCBundle(OSC_IMMEDIATELY, [])))
    assert not is_bundle(encode_packet(MSG_A))
    assert not is_bundle(b'#bund')
    with pytest.raises(OSCInvalidRawError):
        decode_bundle(encode_packet(MSG_A))


def test_encode_invalid_elements():
    with pytest.raises(OSCInvalidDataError):
        encode_packet(OSCBundle(OSC_IMMEDIATELY, ["/a"]))
    with pytest.raises(OSCInvalidAddressError):
        encode_packet(OSCBundle(OSC_IMMEDIATELY, [OSCMessage("a")]))
    with pytest.raises(OSCInvalidDataError):
        encode_packet(OSCBundle((0, 1), [MSG_A]))


def test_unbundle_order_and_timetags():
    inner = OSCtimetag(5000)
    outer = OSCtimetag(4000)
    tree = OSCBundle(outer, [MSG_A, OSCBundle(inner, [MSG_B]),
                             OSCMessage("/c")])
    assert list(unbundle(tree)) == [(outer, MSG_A), (inner, MSG_B),
                                    (outer, OSCMessage("/c"))]
    assert list(unbundle(MSG_A)) == [(OSC_IMMEDIATELY, MSG_A)]
    with pytest.raises(OSCInvalidDataError):
        list(unbundle("/a"))
