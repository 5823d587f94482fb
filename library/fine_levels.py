"""
Fine level administration.

Tariffs are referenced by fines through a protected foreign key; the
amount on a fine is a snapshot, so editing a level never touches
existing fines.
"""

import logging

from django.db import transaction

from library import guard
from library.exceptions import NotFound, ValidationError
from library.forms import FineLevelForm
from library.guard import Action
from library.models import FineLevel

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ('name', 'amount', 'description')


def list_levels(actor):
    guard.check(Action.VIEW_QUEUES, actor)
    return list(FineLevel.objects.order_by('name'))


def _get(level_id):
    try:
        return FineLevel.objects.get(pk=level_id)
    except (FineLevel.DoesNotExist, ValueError, TypeError):
        raise NotFound('Fine level not found.')


def create_level(actor, data):
    guard.check(Action.MANAGE_FINE_LEVELS, actor)
    form = FineLevelForm({field: data.get(field, '') for field in EDITABLE_FIELDS})
    if not form.is_valid():
        raise ValidationError.from_form(form)
    level = form.save()
    level.refresh_from_db()
    logger.info('Fine level %s (%s) created by user %s', level.name, level.amount, actor.pk)
    return level


def update_level(actor, level_id, data):
    guard.check(Action.MANAGE_FINE_LEVELS, actor)
    level = _get(level_id)
    if not any(field in data for field in EDITABLE_FIELDS):
        raise ValidationError('Provide at least one field to update.')

    payload = {field: data.get(field, getattr(level, field)) for field in EDITABLE_FIELDS}
    form = FineLevelForm(payload, instance=level)
    if not form.is_valid():
        raise ValidationError.from_form(form)
    level = form.save()
    level.refresh_from_db()
    logger.info('Fine level %s updated by user %s', level.pk, actor.pk)
    return level


def delete_level(actor, level_id):
    guard.check(Action.MANAGE_FINE_LEVELS, actor)
    with transaction.atomic():
        level = _get(level_id)
        if level.fines.exists():
            raise ValidationError(
                f'Cannot delete "{level.name}" because fines reference it.'
            )
        name = level.name
        level.delete()
    logger.info('Fine level %s deleted by user %s', name, actor.pk)
    return name
