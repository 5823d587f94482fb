"""
Return State Machine

A reader asks to return a copy that is on loan (the loan moves to
return_pending and gets exactly one open ReturnRequest). Staff then
confirm the return with the condition of the copy; the loan closes, the
copy goes back to the right inventory bucket and any fines are assessed,
all in one transaction.
"""

from dataclasses import dataclass, field
from typing import List

from django.db import IntegrityError, transaction
from django.utils import timezone

from library import fines as fine_machine
from library import inventory
from library.conf import lending_setting
from library.exceptions import (
    InvalidStateTransition,
    NotFound,
    StaleStateConflict,
    ValidationError,
)
from library.guard import Action
from library.loans import require_state as require_loan_state
from library.models import (
    BOOK_CONDITION_CHOICES,
    CONDITION_DAMAGED,
    CONDITION_LOST,
    CONDITION_NORMAL,
    Fine,
    FineLevel,
    Loan,
    LOAN_BORROWED,
    LOAN_RETURN_PENDING,
    LOAN_RETURNED,
    REASON_OVERDUE,
    RETURN_CONFIRMED,
    RETURN_PENDING,
    ReturnRequest,
)
from library.transitions import apply_changes, compare_and_swap
from library.validators import clean_text

RETURN_BUCKETS = {
    CONDITION_NORMAL: inventory.AVAILABLE,
    CONDITION_DAMAGED: inventory.DAMAGED,
    CONDITION_LOST: inventory.LOST,
}


@dataclass
class ReturnOutcome:
    loan: Loan
    return_request: ReturnRequest
    fines: List[Fine] = field(default_factory=list)


def request_return(permit, loan):
    permit.require(Action.REQUEST_RETURN)
    require_loan_state(loan, LOAN_BORROWED)
    if loan.return_requests.filter(state=RETURN_PENDING).exists():
        raise InvalidStateTransition('A return request for this loan is already waiting for confirmation.')

    with transaction.atomic():
        changes = compare_and_swap(Loan, loan, LOAN_BORROWED, state=LOAN_RETURN_PENDING)
        try:
            with transaction.atomic():
                return_request = ReturnRequest.objects.create(
                    loan=loan,
                    request_date=timezone.localdate(),
                    state=RETURN_PENDING,
                )
        except IntegrityError:
            raise StaleStateConflict()
    apply_changes(loan, changes)
    return return_request


def _fine_level(fine_level_id, field_name):
    try:
        return FineLevel.objects.get(pk=fine_level_id)
    except (FineLevel.DoesNotExist, ValueError, TypeError):
        raise NotFound('Fine level not found.', errors={field_name: ['Unknown fine level.']})


def _plan_fines(condition, days_overdue, fine_level_id, late_fine_level_id, note):
    """
    Decide which fines the return needs, as (reason, fine_level, note)
    tuples, or raise ValidationError when a required input is missing.
    """
    planned = []
    if condition in (CONDITION_DAMAGED, CONDITION_LOST):
        if not fine_level_id:
            raise ValidationError('Select a fine level for the damaged or lost copy.',
                                  errors={'fine_level_id': ['This field is required.']})
        fine_level = _fine_level(fine_level_id, 'fine_level_id')
        planned.append((condition, fine_level, note))

        if days_overdue:
            late_level = fine_level
            if late_fine_level_id:
                late_level = _fine_level(late_fine_level_id, 'late_fine_level_id')
            planned.append((REASON_OVERDUE, late_level, f'Returned {days_overdue} day(s) late'))

    elif days_overdue:
        if not fine_level_id:
            raise ValidationError('Select a late-return fine level.',
                                  errors={'fine_level_id': ['This field is required.']})
        planned.append((REASON_OVERDUE, _fine_level(fine_level_id, 'fine_level_id'),
                        f'Returned {days_overdue} day(s) late'))
    return planned


def confirm_return(permit, return_request, book_condition, fine_level_id=None,
                   late_fine_level_id=None, note=None):
    staff = permit.require(Action.CONFIRM_RETURN)
    if return_request.state != RETURN_PENDING:
        raise InvalidStateTransition('This return request has already been processed.')
    loan = return_request.loan
    require_loan_state(loan, LOAN_RETURN_PENDING)

    if book_condition not in dict(BOOK_CONDITION_CHOICES):
        raise ValidationError('Select the condition of the returned copy.',
                              errors={'book_condition': ['Choose normal, damaged or lost.']})
    note = clean_text(
        note, 'note', 'Note', lending_setting('MAX_REASON_LENGTH'),
        required=book_condition in (CONDITION_DAMAGED, CONDITION_LOST),
    )

    today = timezone.localdate()
    planned = _plan_fines(book_condition, loan.days_overdue(today),
                          fine_level_id, late_fine_level_id, note)

    with transaction.atomic():
        inventory.lock_pool(loan.book_id)
        request_changes = compare_and_swap(
            ReturnRequest, return_request, RETURN_PENDING,
            state=RETURN_CONFIRMED,
            book_condition=book_condition,
            staff_note=note,
            confirmed_by=staff,
            confirmed_at=timezone.now(),
        )
        loan_changes = compare_and_swap(
            Loan, loan, LOAN_RETURN_PENDING,
            state=LOAN_RETURNED,
            return_date=today,
            book_condition=book_condition,
        )
        inventory.move_copy(loan.book_id, inventory.BORROWED, RETURN_BUCKETS[book_condition])
        assessed = [
            fine_machine.assess(permit, loan, reason, level, fine_note, today)
            for reason, level, fine_note in planned
        ]

    apply_changes(return_request, request_changes)
    apply_changes(loan, loan_changes)
    return ReturnOutcome(loan=loan, return_request=return_request, fines=assessed)
