"""
Authorization Guard

Single gate in front of every lending transition and every guarded
query. The decision table lives here and nowhere else; the state
machines only accept the Permit that check() hands out.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum

from accounts.models import ROLE_ADMIN, ROLE_LIBRARIAN, ROLE_READER, STATUS_ACTIVE
from library.exceptions import AccountNotActive, Forbidden

logger = logging.getLogger(__name__)

_ISSUER = object()


class Action(Enum):
    # Reader transitions on owned resources
    SUBMIT = 'submit'
    CANCEL = 'cancel'
    EXTEND = 'extend'
    REQUEST_RETURN = 'request_return'
    PAY = 'pay'

    # Staff transitions
    CONFIRM = 'confirm'
    REJECT = 'reject'
    CONFIRM_RETURN = 'confirm_return'
    CONFIRM_PAYMENT = 'confirm_payment'
    REJECT_PAYMENT = 'reject_payment'

    # Queries and administration
    BROWSE_CATALOG = 'browse_catalog'
    VIEW_OWN_RECORDS = 'view_own_records'
    VIEW_FINE = 'view_fine'
    VIEW_QUEUES = 'view_queues'
    VIEW_REPORTS = 'view_reports'
    MANAGE_CATALOG = 'manage_catalog'
    MANAGE_FINE_LEVELS = 'manage_fine_levels'
    MANAGE_ACCOUNTS = 'manage_accounts'


OWNER_ACTIONS = frozenset({
    Action.SUBMIT,
    Action.CANCEL,
    Action.EXTEND,
    Action.REQUEST_RETURN,
    Action.PAY,
    Action.VIEW_OWN_RECORDS,
})

STAFF_ACTIONS = frozenset({
    Action.CONFIRM,
    Action.REJECT,
    Action.CONFIRM_RETURN,
    Action.CONFIRM_PAYMENT,
    Action.REJECT_PAYMENT,
    Action.VIEW_QUEUES,
    Action.VIEW_REPORTS,
    Action.MANAGE_CATALOG,
})

ADMIN_ACTIONS = frozenset({
    Action.MANAGE_FINE_LEVELS,
    Action.MANAGE_ACCOUNTS,
})


def can_transition(actor_role, actor_id, resource_owner_id, action):
    """
    Pure role/ownership decision. Account status is checked separately
    by check() because it must fail with its own error first.
    """
    if action is Action.BROWSE_CATALOG:
        return actor_role in (ROLE_READER, ROLE_LIBRARIAN, ROLE_ADMIN)
    if action is Action.VIEW_FINE:
        if actor_role in (ROLE_LIBRARIAN, ROLE_ADMIN):
            return True
        return actor_role == ROLE_READER and actor_id == resource_owner_id
    if action in OWNER_ACTIONS:
        return actor_role == ROLE_READER and resource_owner_id is not None and actor_id == resource_owner_id
    if action in STAFF_ACTIONS:
        return actor_role in (ROLE_LIBRARIAN, ROLE_ADMIN)
    if action in ADMIN_ACTIONS:
        return actor_role == ROLE_ADMIN
    return False


@dataclass(frozen=True)
class Permit:
    """
    Proof that the guard approved `action` for `actor` on a resource owned
    by `owner_id`. Only check() can issue one; require() repeats the
    decision before a state machine acts on it.
    """
    action: Action
    actor: object
    owner_id: object = None
    _issuer: object = field(default=None, repr=False, compare=False)

    def __post_init__(self):
        if self._issuer is not _ISSUER:
            raise Forbidden('Permits are issued by the guard only.')

    def require(self, action):
        if self.action is not action:
            raise Forbidden(f'Permit for {self.action.value} cannot be used for {action.value}.')
        ensure_active(self.actor, action)
        if not can_transition(self.actor.role, self.actor.pk, self.owner_id, action):
            raise Forbidden()
        return self.actor


def ensure_active(actor, action):
    """Refuse anyone whose account is missing or not active."""
    if actor is None or getattr(actor, 'account_status', None) != STATUS_ACTIVE:
        logger.warning(
            'Denied %s: account %s is not active',
            action.value, getattr(actor, 'pk', None),
        )
        raise AccountNotActive()
    return actor


def check(action, actor, resource_owner_id=None):
    """Approve `action` for `actor` or raise AccountNotActive / Forbidden."""
    ensure_active(actor, action)

    if not can_transition(actor.role, actor.pk, resource_owner_id, action):
        logger.warning(
            'Denied %s for user %s (role=%s, owner=%s)',
            action.value, actor.pk, actor.role, resource_owner_id,
        )
        raise Forbidden()

    return Permit(action=action, actor=actor, owner_id=resource_owner_id, _issuer=_ISSUER)
