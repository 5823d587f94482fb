"""
Loan State Machine

    pending_confirmation -> borrowed -> return_pending -> returned
    pending_confirmation -> rejected | cancelled

Every transition takes the Permit issued by library.guard and writes
through compare-and-swap on the current state: if another caller moved
the loan first, StaleStateConflict is raised and nothing is written.
"""

from datetime import timedelta

from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone

from library import inventory
from library.conf import lending_setting
from library.exceptions import (
    AlreadyExtended,
    InvalidStateTransition,
    OutOfStock,
    ValidationError,
)
from library.guard import Action
from library.models import (
    ACTIVE_LOAN_STATES,
    Fine,
    Loan,
    LOAN_BORROWED,
    LOAN_CANCELLED,
    LOAN_PENDING,
    LOAN_REJECTED,
    OUTSTANDING_FINE_STATES,
    RETURN_PENDING,
)
from library.transitions import apply_changes, compare_and_swap
from library.validators import clean_text


def require_state(loan, *states):
    if loan.state not in states:
        raise InvalidStateTransition(
            f'Loan is {loan.get_state_display().lower()}; this action is not allowed.'
        )


def clean_borrow_days(borrow_days):
    if borrow_days in (None, ''):
        return lending_setting('DEFAULT_BORROW_DAYS')
    low, high = lending_setting('MIN_BORROW_DAYS'), lending_setting('MAX_BORROW_DAYS')
    try:
        borrow_days = int(borrow_days)
    except (TypeError, ValueError):
        raise ValidationError('Borrow period must be a whole number of days.',
                              errors={'borrow_days': ['Must be an integer.']})
    if not low <= borrow_days <= high:
        message = f'Borrow period must be between {low} and {high} days.'
        raise ValidationError(message, errors={'borrow_days': [message]})
    return borrow_days


def submit(permit, book, borrow_days=None):
    """Create a borrow request. No copy is held until staff confirm it."""
    reader = permit.require(Action.SUBMIT)
    borrow_days = clean_borrow_days(borrow_days)

    if inventory.get_available_quantity(book.pk) <= 0:
        raise OutOfStock('This book is out of stock. Please try again later.')

    with transaction.atomic():
        # one submission at a time per reader, so the limits below hold
        get_user_model().objects.select_for_update().get(pk=reader.pk)

        max_active = lending_setting('MAX_ACTIVE_LOANS')
        active = Loan.objects.filter(reader=reader, state__in=ACTIVE_LOAN_STATES).count()
        if active >= max_active:
            raise ValidationError(f'You have reached the limit of {max_active} active loans.')

        if Fine.objects.filter(reader=reader, state__in=OUTSTANDING_FINE_STATES).exists():
            raise ValidationError('You have unpaid fines. Please settle them before borrowing.')

        if Loan.objects.filter(reader=reader, book=book, state=LOAN_PENDING).exists():
            raise ValidationError('You already have a pending request for this book.')

        return Loan.objects.create(
            book=book,
            reader=reader,
            borrow_days=borrow_days,
            state=LOAN_PENDING,
        )


def confirm(permit, loan):
    """
    Hand the copy over: available -> borrowed, due date set from today.
    Stock is re-checked here; a request that was valid when submitted may
    fail with OutOfStock and stays pending.
    """
    staff = permit.require(Action.CONFIRM)
    require_state(loan, LOAN_PENDING)

    today = timezone.localdate()
    with transaction.atomic():
        inventory.lock_pool(loan.book_id)
        changes = compare_and_swap(
            Loan, loan, LOAN_PENDING,
            state=LOAN_BORROWED,
            borrow_date=today,
            due_date=today + timedelta(days=loan.borrow_days),
            confirmed_by=staff,
            confirmed_at=timezone.now(),
        )
        inventory.move_copy(loan.book_id, inventory.AVAILABLE, inventory.BORROWED)
    return apply_changes(loan, changes)


def reject(permit, loan, reason):
    staff = permit.require(Action.REJECT)
    require_state(loan, LOAN_PENDING)
    reason = clean_text(reason, 'reason', 'Rejection reason', lending_setting('MAX_REASON_LENGTH'))

    changes = compare_and_swap(
        Loan, loan, LOAN_PENDING,
        state=LOAN_REJECTED,
        rejection_reason=reason,
        rejected_by=staff,
        rejected_at=timezone.now(),
    )
    return apply_changes(loan, changes)


def cancel(permit, loan):
    permit.require(Action.CANCEL)
    require_state(loan, LOAN_PENDING)
    changes = compare_and_swap(
        Loan, loan, LOAN_PENDING,
        state=LOAN_CANCELLED,
        cancelled_at=timezone.now(),
    )
    return apply_changes(loan, changes)


def extend(permit, loan):
    """Push the due date out by a fixed number of days, once per loan."""
    permit.require(Action.EXTEND)
    require_state(loan, LOAN_BORROWED)
    if loan.extended_once:
        raise AlreadyExtended('This loan has already been extended. Only one extension is allowed.')
    if loan.return_requests.filter(state=RETURN_PENDING).exists():
        raise InvalidStateTransition('A return has already been requested for this loan.')
    if loan.is_overdue():
        raise InvalidStateTransition('Overdue loans cannot be extended. Please return the book.')

    changes = compare_and_swap(
        Loan, loan, LOAN_BORROWED,
        match={'extended_once': False, 'due_date': loan.due_date},
        due_date=loan.due_date + timedelta(days=lending_setting('EXTENSION_DAYS')),
        extended_once=True,
    )
    return apply_changes(loan, changes)
