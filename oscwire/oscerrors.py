#!/usr/bin/env python3
# -*- encoding: utf-8 -*-
# File: oscwire/oscerrors.py
# <pep8 compliant>
"""Hierarchy of exceptions raised by OSC packets processing.

Encoding problems are always raised to the caller.
Decoding problems are normally caught inside the codec and transformed
into partial results, unless ``strict_decode`` is set in the out of band
options.
"""

__all__ = [
    "OSCError",
    "OSCInvalidDataError",
    "OSCInvalidAddressError",
    "OSCInvalidRawError",
    "OSCTruncatedRawError",
    "OSCMalformedBundleError",
    "OSCUnknownTypetagError",
    ]


class OSCError(Exception):
    """Parent class for OSC errors.
    """
    pass


class OSCInvalidDataError(OSCError):
    """Problem detected in OSC data encoding.
    """
    pass


class OSCInvalidAddressError(OSCInvalidDataError):
    """Address pattern refused at encoding time (empty or missing /).
    """
    pass


class OSCInvalidRawError(OSCError):
    """Problem detected in raw OSC input decoding.
    """
    pass


class OSCTruncatedRawError(OSCInvalidRawError):
    """Raw data ended in the middle of a field.
    """
    pass


class OSCMalformedBundleError(OSCInvalidRawError):
    """Bundle element with a zero size or a size overrunning the packet,
    or a bundle exceeding elements count / nesting limits.
    """
    pass


class OSCUnknownTypetagError(OSCError):
    """Found an invalid (unknown) type tag.
    """
    pass
