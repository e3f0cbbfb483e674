"""
timingsign.stats.common
=======================

Generic, scheme-independent statistical algorithms.
"""
