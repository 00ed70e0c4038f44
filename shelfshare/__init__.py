#!/usr/bin/env python

"""
    Shelfshare, peer-to-peer book lending and free-to-good-home giveaways

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

__version__ = '0.1.0'
