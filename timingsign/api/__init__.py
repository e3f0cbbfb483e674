"""
timingsign.api - User-Friendly Facade
=====================================

Off-the-shelf entry points organised by what a tester wants to do, in the
vocabulary of security testing rather than of the statistical machinery.

Examples
--------
>>> # Sequential check with a named sensitivity
>>> from timingsign.api.timing_test import injection_check
>>> loop = injection_check("search_param", sensitivity="balanced")
>>>
>>> # One-shot test over recorded timings
>>> from timingsign.api.timing_test import fixed_sample_test

Unified Interface
-----------------
- `injection_check()`: configured `SequentialDecisionLoop`
- `run_injection_check()`: sequential check over recorded timings
- `fixed_sample_test()`: single bootstrap test, no early stopping
- `BootstrapConfig`: validated configuration
"""
