"""
Worker-side operations: the queue helper and the webhook notifier.

Both run on the agent host against the local queue file (``transport=local``)
or, for debugging, against the remote one over ssh.
"""

from relay.ops.notifier import WebhookNotifier
from relay.ops.queue_admin import initialize_store, list_pending, respond

__all__ = ["WebhookNotifier", "initialize_store", "list_pending", "respond"]
