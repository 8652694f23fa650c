"""
Live quote feed module.

Per-symbol subscriber sets sharing one recurring poll task, created on the
first subscription and torn down with the last.
"""

from .registry import PollTask, SubscriptionHandle, SubscriptionRegistry

__all__ = ["PollTask", "SubscriptionHandle", "SubscriptionRegistry"]
