"""
Workflow Orchestrator

Public entry point for every lending transition. Each operation:
  1. refuses inactive accounts,
  2. loads the resource (NotFound),
  3. asks the guard for a Permit (Forbidden),
  4. delegates to the loan / return / fine machine,
  5. logs the outcome and publishes an audit event.

Views, management commands and tests all come through here, so there is
exactly one code path per state change.
"""

import logging
from functools import wraps

from django.db import transaction

from library import events, guard
from library import fines as fine_machine
from library import loans as loan_machine
from library import returns as return_machine
from library.exceptions import ConsistencyError, LendingError, NotFound
from library.guard import Action
from library.models import Book, Fine, Loan, ReturnRequest

logger = logging.getLogger(__name__)


def _load(model, pk, label, related=()):
    try:
        return model.objects.select_related(*related).get(pk=pk)
    except (model.DoesNotExist, ValueError, TypeError):
        raise NotFound(f'{label} not found.')


def transition(action):
    """
    Run a workflow operation as one atomic unit and log its success,
    refusal or inconsistency.
    """
    def decorator(func):
        @wraps(func)
        def wrapper(actor, resource_id, *args, **kwargs):
            try:
                guard.ensure_active(actor, action)
                with transaction.atomic():
                    result = func(actor, resource_id, *args, **kwargs)
            except LendingError as e:
                logger.warning(
                    '%s refused for user %s on %s: %s (%s)',
                    action.value, getattr(actor, 'pk', None), resource_id, e.message, e.code,
                )
                raise
            except ConsistencyError:
                logger.error(
                    '%s aborted on %s: inventory inconsistency',
                    action.value, resource_id, exc_info=True,
                )
                raise
            logger.info('%s completed by user %s on %s', action.value, actor.pk, resource_id)
            return result
        return wrapper
    return decorator


# Loan

@transition(Action.SUBMIT)
def submit_borrow(actor, book_id, borrow_days=None):
    book = _load(Book, book_id, 'Book')
    permit = guard.check(Action.SUBMIT, actor, resource_owner_id=actor.pk)
    loan = loan_machine.submit(permit, book, borrow_days)
    events.publish('loan.submitted', actor, 'loan', loan.pk, book=book.pk, borrow_days=loan.borrow_days)
    return loan


@transition(Action.CONFIRM)
def confirm_loan(actor, loan_id):
    loan = _load(Loan, loan_id, 'Loan', related=('book', 'reader'))
    permit = guard.check(Action.CONFIRM, actor, resource_owner_id=loan.reader_id)
    loan = loan_machine.confirm(permit, loan)
    events.publish('loan.confirmed', actor, 'loan', loan.pk, book=loan.book_id, due_date=loan.due_date)
    return loan


@transition(Action.REJECT)
def reject_loan(actor, loan_id, reason):
    loan = _load(Loan, loan_id, 'Loan', related=('book', 'reader'))
    permit = guard.check(Action.REJECT, actor, resource_owner_id=loan.reader_id)
    loan = loan_machine.reject(permit, loan, reason)
    events.publish('loan.rejected', actor, 'loan', loan.pk, reason=loan.rejection_reason)
    return loan


@transition(Action.CANCEL)
def cancel_loan(actor, loan_id):
    loan = _load(Loan, loan_id, 'Loan', related=('book',))
    permit = guard.check(Action.CANCEL, actor, resource_owner_id=loan.reader_id)
    loan = loan_machine.cancel(permit, loan)
    events.publish('loan.cancelled', actor, 'loan', loan.pk)
    return loan


@transition(Action.EXTEND)
def extend_loan(actor, loan_id):
    loan = _load(Loan, loan_id, 'Loan', related=('book',))
    permit = guard.check(Action.EXTEND, actor, resource_owner_id=loan.reader_id)
    loan = loan_machine.extend(permit, loan)
    events.publish('loan.extended', actor, 'loan', loan.pk, due_date=loan.due_date)
    return loan


# Return

@transition(Action.REQUEST_RETURN)
def request_return(actor, loan_id):
    loan = _load(Loan, loan_id, 'Loan', related=('book',))
    permit = guard.check(Action.REQUEST_RETURN, actor, resource_owner_id=loan.reader_id)
    return_request = return_machine.request_return(permit, loan)
    events.publish('return.requested', actor, 'return_request', return_request.pk, loan=loan.pk)
    return return_request


@transition(Action.CONFIRM_RETURN)
def confirm_return(actor, return_request_id, book_condition, fine_level_id=None,
                   late_fine_level_id=None, note=None):
    return_request = _load(ReturnRequest, return_request_id, 'Return request',
                           related=('loan', 'loan__book', 'loan__reader'))
    permit = guard.check(Action.CONFIRM_RETURN, actor, resource_owner_id=return_request.loan.reader_id)
    outcome = return_machine.confirm_return(
        permit, return_request, book_condition,
        fine_level_id=fine_level_id,
        late_fine_level_id=late_fine_level_id,
        note=note,
    )
    events.publish(
        'return.confirmed', actor, 'return_request', return_request.pk,
        loan=outcome.loan.pk, condition=book_condition,
        fines=','.join(str(f.pk) for f in outcome.fines) or '-',
    )
    return outcome


# Fine

@transition(Action.PAY)
def pay_fine(actor, fine_id, payment_proof):
    fine = _load(Fine, fine_id, 'Fine')
    permit = guard.check(Action.PAY, actor, resource_owner_id=fine.reader_id)
    fine = fine_machine.pay(permit, fine, payment_proof)
    events.publish('fine.payment_submitted', actor, 'fine', fine.pk, amount=fine.amount)
    return fine


@transition(Action.CONFIRM_PAYMENT)
def confirm_payment(actor, fine_id):
    fine = _load(Fine, fine_id, 'Fine')
    permit = guard.check(Action.CONFIRM_PAYMENT, actor, resource_owner_id=fine.reader_id)
    fine = fine_machine.confirm_payment(permit, fine)
    events.publish('fine.paid', actor, 'fine', fine.pk, amount=fine.amount)
    return fine


@transition(Action.REJECT_PAYMENT)
def reject_payment(actor, fine_id, reason):
    fine = _load(Fine, fine_id, 'Fine')
    permit = guard.check(Action.REJECT_PAYMENT, actor, resource_owner_id=fine.reader_id)
    fine = fine_machine.reject_payment(permit, fine, reason)
    events.publish('fine.payment_rejected', actor, 'fine', fine.pk, reason=fine.rejection_reason)
    return fine
