"""
timingsign.core
===============

Ledger contracts, typed names, errors and component base classes.
"""
