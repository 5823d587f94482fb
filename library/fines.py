"""
Fine Assessment & Settlement State Machine

    unpaid -> pending_confirmation -> paid
    pending_confirmation -> rejected -> (pay again) -> pending_confirmation

Fines are assessed only while a return is being confirmed, with the
amount copied from the fine level at that moment. Paid is terminal.
"""

from django.utils import timezone

from library.conf import lending_setting
from library.exceptions import InvalidStateTransition
from library.guard import Action
from library.models import (
    Fine,
    FINE_PAID,
    FINE_PENDING,
    FINE_REJECTED,
    FINE_UNPAID,
)
from library.transitions import apply_changes, compare_and_swap
from library.validators import clean_text

PAYABLE_STATES = (FINE_UNPAID, FINE_REJECTED)


def require_state(fine, *states):
    if fine.state not in states:
        raise InvalidStateTransition(
            f'Fine is {fine.get_state_display().lower()}; this action is not allowed.'
        )


def assess(permit, loan, reason_code, fine_level, note='', today=None):
    """Create an unpaid fine for `loan`; runs inside the return confirmation."""
    permit.require(Action.CONFIRM_RETURN)
    return Fine.objects.create(
        loan=loan,
        reader_id=loan.reader_id,
        fine_level=fine_level,
        reason_code=reason_code,
        amount=fine_level.amount,
        note=note or '',
        state=FINE_UNPAID,
        fine_date=today or timezone.localdate(),
    )


def pay(permit, fine, payment_proof):
    """Reader submits proof of payment; staff still have to verify it."""
    permit.require(Action.PAY)
    require_state(fine, *PAYABLE_STATES)
    payment_proof = clean_text(
        payment_proof, 'payment_proof', 'Payment proof',
        lending_setting('MAX_PAYMENT_PROOF_LENGTH'),
    )

    changes = compare_and_swap(
        Fine, fine, fine.state,
        state=FINE_PENDING,
        payment_proof=payment_proof,
        rejection_reason='',
        submitted_at=timezone.now(),
    )
    return apply_changes(fine, changes)


def confirm_payment(permit, fine):
    staff = permit.require(Action.CONFIRM_PAYMENT)
    require_state(fine, FINE_PENDING)
    changes = compare_and_swap(
        Fine, fine, FINE_PENDING,
        state=FINE_PAID,
        confirmed_by=staff,
        confirmed_at=timezone.now(),
    )
    return apply_changes(fine, changes)


def reject_payment(permit, fine, reason):
    staff = permit.require(Action.REJECT_PAYMENT)
    require_state(fine, FINE_PENDING)
    reason = clean_text(reason, 'reason', 'Rejection reason', lending_setting('MAX_REASON_LENGTH'))
    changes = compare_and_swap(
        Fine, fine, FINE_PENDING,
        state=FINE_REJECTED,
        rejection_reason=reason,
        rejected_by=staff,
        rejected_at=timezone.now(),
    )
    return apply_changes(fine, changes)
