"""
Notification / audit sink.

Each completed transition publishes one event after the surrounding
transaction commits. Receivers run through send_robust: their failures
are logged and never reach the caller, and nothing is retried.
"""

import logging

from django.db import transaction
from django.dispatch import Signal

logger = logging.getLogger(__name__)

# Sent with: event (str), actor_id, resource (str), resource_id, payload (dict)
transition_completed = Signal()


def _dispatch(event, actor_id, resource, resource_id, payload):
    responses = transition_completed.send_robust(
        sender=None,
        event=event,
        actor_id=actor_id,
        resource=resource,
        resource_id=resource_id,
        payload=payload,
    )
    for receiver, response in responses:
        if isinstance(response, Exception):
            logger.warning(
                'Audit receiver %r failed for %s on %s %s: %s',
                receiver, event, resource, resource_id, response,
            )


def publish(event, actor, resource, resource_id, **payload):
    actor_id = getattr(actor, 'pk', None)
    transaction.on_commit(
        lambda: _dispatch(event, actor_id, resource, resource_id, payload)
    )
