"""
Account administration.

Readers register themselves and wait in `pending` until an
administrator approves them. Administrators can reject, activate,
disable and re-role accounts, but the library must always keep at least
one active administrator.
"""

import logging

from django.db import transaction

from accounts.forms.user_forms import ReaderRegistrationForm
from accounts.models import (
    CustomUser,
    ROLE_ADMIN,
    ROLE_CHOICES,
    ROLE_READER,
    STATUS_ACTIVE,
    STATUS_DISABLED,
    STATUS_PENDING,
    STATUS_REJECTED,
    ACCOUNT_STATUS_CHOICES,
)
from library import guard
from library.conf import lending_setting
from library.exceptions import InvalidStateTransition, NotFound, ValidationError
from library.guard import Action
from library.validators import clean_text

logger = logging.getLogger(__name__)


def register_reader(data):
    form = ReaderRegistrationForm(data)
    if not form.is_valid():
        raise ValidationError.from_form(form)

    user = form.save(commit=False)
    user.role = ROLE_READER
    user.account_status = STATUS_PENDING
    user.set_password(form.cleaned_data['password'])
    user.save()
    logger.info('Reader %s registered and awaits approval', user.username)
    return user


def _get_user(user_id):
    try:
        return CustomUser.objects.select_for_update().get(pk=user_id)
    except (CustomUser.DoesNotExist, ValueError, TypeError):
        raise NotFound('User not found.')


def _is_last_active_admin(user):
    if user.role != ROLE_ADMIN or user.account_status != STATUS_ACTIVE:
        return False
    others = CustomUser.objects.filter(role=ROLE_ADMIN, account_status=STATUS_ACTIVE).exclude(pk=user.pk)
    return not others.exists()


def _set_status(actor, user, status, **extra):
    user.account_status = status
    for name, value in extra.items():
        setattr(user, name, value)
    user.save(update_fields=['account_status'] + list(extra))
    logger.info('User %s set to %s by user %s', user.username, status, actor.pk)
    return user


def list_users(actor, status=None, role=None):
    guard.check(Action.MANAGE_ACCOUNTS, actor)
    users = CustomUser.objects.all()
    if status:
        if status not in dict(ACCOUNT_STATUS_CHOICES):
            raise ValidationError('Unknown account status.')
        users = users.filter(account_status=status)
    if role:
        if role not in dict(ROLE_CHOICES):
            raise ValidationError('Unknown role.')
        users = users.filter(role=role)
    return list(users)


@transaction.atomic
def approve(actor, user_id):
    guard.check(Action.MANAGE_ACCOUNTS, actor)
    user = _get_user(user_id)
    if user.account_status != STATUS_PENDING:
        raise InvalidStateTransition('Only pending accounts can be approved.')
    return _set_status(actor, user, STATUS_ACTIVE, rejection_reason='')


@transaction.atomic
def reject(actor, user_id, reason):
    guard.check(Action.MANAGE_ACCOUNTS, actor)
    reason = clean_text(reason, 'reason', 'Rejection reason', lending_setting('MAX_REASON_LENGTH'))
    user = _get_user(user_id)
    if user.account_status != STATUS_PENDING:
        raise InvalidStateTransition('Only pending accounts can be rejected.')
    return _set_status(actor, user, STATUS_REJECTED, rejection_reason=reason)


@transaction.atomic
def activate(actor, user_id):
    guard.check(Action.MANAGE_ACCOUNTS, actor)
    user = _get_user(user_id)
    if user.account_status == STATUS_ACTIVE:
        raise InvalidStateTransition('This account is already active.')
    return _set_status(actor, user, STATUS_ACTIVE, rejection_reason='')


@transaction.atomic
def disable(actor, user_id):
    guard.check(Action.MANAGE_ACCOUNTS, actor)
    user = _get_user(user_id)
    if user.pk == actor.pk:
        raise ValidationError('You cannot disable your own account.')
    if user.account_status == STATUS_DISABLED:
        raise InvalidStateTransition('This account is already disabled.')
    if _is_last_active_admin(user):
        raise ValidationError('The last active administrator cannot be disabled.')
    return _set_status(actor, user, STATUS_DISABLED)


@transaction.atomic
def assign_role(actor, user_id, role):
    guard.check(Action.MANAGE_ACCOUNTS, actor)
    if role not in dict(ROLE_CHOICES):
        raise ValidationError('Unknown role.', errors={'role': ['Choose reader, librarian or admin.']})

    user = _get_user(user_id)
    if user.account_status != STATUS_ACTIVE:
        raise InvalidStateTransition('Roles can only be assigned to active accounts.')
    if user.role == role:
        raise ValidationError(f'User already has the {user.get_role_display().lower()} role.')
    if role != ROLE_ADMIN and _is_last_active_admin(user):
        raise ValidationError('The last active administrator cannot be demoted.')

    previous = user.role
    user.role = role
    user.save(update_fields=['role'])
    logger.info('User %s role changed from %s to %s by user %s', user.username, previous, role, actor.pk)
    return user
