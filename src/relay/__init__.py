"""
Relay - hand queries to a remote agent through a shared JSON queue.

The dispatcher appends a request to the queue document on the worker host,
then waits for the answer on two paths at once: a webhook pushed by the
worker-side notifier, and a poll of the queue. The queue stays the source of
truth; the webhook only makes the wait shorter.
"""

__version__ = "0.3.0"

from relay.dispatcher import RequestDispatcher  # noqa: E402

__all__ = ["RequestDispatcher", "__version__"]
