#!/bin/env python
# -*- coding: utf-8 -*-

from setuptools import setup
import io

setup(
    name='oscwire',
    version='1.0.0',
    description='Python3 codec for Open Sound Control (OSC) 1.0 packets.',
    packages=['oscwire'],
    keywords=['communication', 'sound', "network", "osc"],
    python_requires='>=3.6',
    extras_require={
        'test': ['pytest'],
        },
    classifiers=[
                'Intended Audience :: Developers',
                'Natural Language :: English',
                'Operating System :: OS Independent',
                'Programming Language :: Python :: 3',
                'Topic :: Software Development :: Libraries :: Python Modules',
                'Topic :: Multimedia :: Sound/Audio',
             ],
    long_description=io.open("README.txt", encoding='utf-8').read(),
    )
