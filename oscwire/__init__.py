#!/usr/bin/env python3
# -*- encoding: utf-8 -*-
# File: oscwire/__init__.py
"""Encode and decode OpenSoundControl 1.0 packets with Python3.
"""

__version__ = "1.0.0"

__all__ = []
