"""
End-to-end borrow, return and fine settlement flows through the
orchestrator, as librarians and readers would drive them.
"""

from datetime import timedelta

import pytest

from library import workflow
from library.exceptions import InvalidStateTransition, ValidationError
from library.models import (
    Fine,
    FINE_PAID,
    FINE_PENDING,
    FINE_REJECTED,
    FINE_UNPAID,
    LOAN_BORROWED,
    LOAN_PENDING,
    LOAN_RETURN_PENDING,
    LOAN_RETURNED,
    REASON_OVERDUE,
    RETURN_PENDING,
)
from tests.helpers import make_overdue, pool


def test_borrow_and_confirm(reader, librarian, book):
    loan = workflow.submit_borrow(reader, book.pk, 14)
    assert loan.state == LOAN_PENDING

    loan = workflow.confirm_loan(librarian, loan.pk)
    assert loan.state == LOAN_BORROWED
    assert pool(book)[1] == 0
    assert loan.due_date == loan.borrow_date + timedelta(days=14)


def test_on_time_normal_return_creates_no_fine(reader, librarian, book, borrowed_loan):
    request = workflow.request_return(reader, borrowed_loan.pk)
    assert request.state == RETURN_PENDING

    outcome = workflow.confirm_return(librarian, request.pk, 'normal')
    assert outcome.loan.state == LOAN_RETURNED
    assert pool(book)[1] == 1
    assert outcome.fines == []
    assert not Fine.objects.exists()


def test_overdue_normal_return_creates_late_fine(reader, librarian, book, borrowed_loan, late_fee):
    make_overdue(borrowed_loan, 3)
    request = workflow.request_return(reader, borrowed_loan.pk)

    outcome = workflow.confirm_return(librarian, request.pk, 'normal', fine_level_id=late_fee.pk)

    assert outcome.loan.state == LOAN_RETURNED
    [fine] = Fine.objects.filter(loan=borrowed_loan)
    assert fine.reason_code == REASON_OVERDUE
    assert fine.amount == late_fee.amount
    assert fine.state == FINE_UNPAID


def test_fine_rejected_then_paid(reader, librarian, borrowed_loan, late_fee):
    make_overdue(borrowed_loan, 3)
    request = workflow.request_return(reader, borrowed_loan.pk)
    [fine] = workflow.confirm_return(librarian, request.pk, 'normal', fine_level_id=late_fee.pk).fines

    assert workflow.pay_fine(reader, fine.pk, 'TX123').state == FINE_PENDING
    assert workflow.reject_payment(librarian, fine.pk, 'proof illegible').state == FINE_REJECTED
    assert workflow.pay_fine(reader, fine.pk, 'TX124').state == FINE_PENDING
    assert workflow.confirm_payment(librarian, fine.pk).state == FINE_PAID

    with pytest.raises(InvalidStateTransition):
        workflow.pay_fine(reader, fine.pk, 'TX125')


def test_lost_without_note_changes_nothing(reader, librarian, book, borrowed_loan, loss_fee):
    request = workflow.request_return(reader, borrowed_loan.pk)
    before = pool(book)

    with pytest.raises(ValidationError) as exc:
        workflow.confirm_return(librarian, request.pk, 'lost', fine_level_id=loss_fee.pk)
    assert 'note' in exc.value.errors

    borrowed_loan.refresh_from_db()
    request.refresh_from_db()
    assert borrowed_loan.state == LOAN_RETURN_PENDING
    assert request.state == RETURN_PENDING
    assert pool(book) == before
    assert not Fine.objects.exists()


def test_settled_reader_can_borrow_again(reader, librarian, make_book, borrowed_loan, late_fee):
    make_overdue(borrowed_loan, 1)
    request = workflow.request_return(reader, borrowed_loan.pk)
    [fine] = workflow.confirm_return(librarian, request.pk, 'normal', fine_level_id=late_fee.pk).fines

    next_book = make_book(title='Arrow of God')
    with pytest.raises(ValidationError):
        workflow.submit_borrow(reader, next_book.pk, 14)

    workflow.pay_fine(reader, fine.pk, 'TX9')
    workflow.confirm_payment(librarian, fine.pk)
    loan = workflow.submit_borrow(reader, next_book.pk, 14)
    assert loan.state == LOAN_PENDING
