"""
timingsign.stats.common.tags
============================

Literal tags used on ledger rows written by the timing components.
"""

from typing import Literal

# Statistics tags
BootstrapIntervalTag = Literal["stat:bootstrap_interval"]
BOOTSTRAP_INTERVAL_TAG: BootstrapIntervalTag = "stat:bootstrap_interval"

# Decision tags
IntervalDecisionTag = Literal["bootstrap:decision"]
INTERVAL_DECISION_TAG: IntervalDecisionTag = "bootstrap:decision"
