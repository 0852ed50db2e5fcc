"""
Completion coordination: the notification hub, the poll loop and the
dual-path waiter that races them.

Modules
-------
hub       NotificationHub (signal / await_completion / subscribe)
poller    Poller (fixed-interval reads of the queue store)
waiter    DualPathWaiter (first settled wins, loser cancelled)
"""

from relay.coordination.hub import NotificationHub, SignalOutcome
from relay.coordination.poller import Poller
from relay.coordination.waiter import DualPathWaiter

__all__ = ["DualPathWaiter", "NotificationHub", "Poller", "SignalOutcome"]
