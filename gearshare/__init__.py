#!/usr/bin/env python

"""
    GearShare, shared equipment reservations

    :copyright: (c) 2015 by AUTHORS
    :license: see LICENSE for more details
"""

__version__ = '0.1.0'
