"""Convergence engines.

Submodules:
    conditions -- ConvergenceCondition (per-kind classifier) and the
                  PredicateCondition adapter for positional predicates.
    engine     -- BaseWaiter deadline arbitration and the watch-driven
                  ConvergenceWaiter with silent reconnect.
    poll       -- PollWaiter, the fixed-interval variant.
"""

from kubewait.waiters.conditions import ConvergenceCondition, PredicateCondition
from kubewait.waiters.engine import BaseWaiter, ConvergenceWaiter, wait_for
from kubewait.waiters.poll import PollWaiter

__all__ = [
    "BaseWaiter",
    "ConvergenceCondition",
    "ConvergenceWaiter",
    "PollWaiter",
    "PredicateCondition",
    "wait_for",
]
