#!/usr/bin/env python

"""
    Core module for Shelfshare: persistence, the lending and claim
    engines, and the read-side notification queries.

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""
