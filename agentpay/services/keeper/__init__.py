"""
Keeper.

Discovers due AgentPay agents and submits their executions.
"""

from .classifier import classify_entity, is_underfunded
from .executor import KeeperExecutor
from .scheduler import KeeperScheduler, is_rate_limited

__all__ = [
    "KeeperExecutor",
    "KeeperScheduler",
    "classify_entity",
    "is_rate_limited",
    "is_underfunded",
]
