import logging

from django.dispatch import receiver

from library.events import transition_completed

audit_logger = logging.getLogger('library.audit')


@receiver(transition_completed)
def log_transition(sender, event, actor_id, resource, resource_id, payload, **kwargs):
    """Write every completed lending transition to the audit log."""
    audit_logger.info(
        'event=%s actor=%s %s=%s %s',
        event,
        actor_id,
        resource,
        resource_id,
        ' '.join(f'{key}={value}' for key, value in sorted(payload.items())),
    )
