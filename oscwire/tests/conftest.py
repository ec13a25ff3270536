#!/usr/bin/env python3
# -*- encoding: utf-8 -*-
# File: oscwire/tests/conftest.py
# <pep8 compliant>
"""Common setup for test modules: package path and logger.
"""

import sys
from os.path import abspath, dirname
# Make oscwire available.
PACKAGE_PATH = dirname(dirname(dirname(abspath(__file__))))
if PACKAGE_PATH not in sys.path:
    sys.path.insert(0, PACKAGE_PATH)

import logging

import pytest

# A logger to monitor activity... and debug.
logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')


@pytest.fixture
def logger():
    logger = logging.getLogger("osc")
    logger.setLevel(logging.DEBUG)
    return logger
