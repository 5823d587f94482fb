"""
Reader Views
Catalog browsing, borrow requests, returns and fine payments for readers
"""

from accounts.decorators import json_endpoint, request_data, success
from library import catalog, queries, workflow
from library.exceptions import ValidationError
from library.forms import BorrowRequestForm, PaymentForm
from library.serializers import (
    book_to_dict,
    category_to_dict,
    fine_to_dict,
    loan_to_dict,
    money,
    return_request_to_dict,
)


@json_endpoint(methods=('GET',))
def reader_books(request):
    """Browse the catalog with optional ?search= and ?category= filters"""
    books = queries.list_books(
        request.user,
        search=request.GET.get('search', '').strip(),
        category_id=request.GET.get('category') or None,
    )
    return success(data={'books': [book_to_dict(b) for b in books]})


@json_endpoint(methods=('GET',))
def reader_categories(request):
    categories = catalog.list_categories(request.user)
    return success(data={'categories': [category_to_dict(c) for c in categories]})


@json_endpoint(methods=('GET',))
def reader_book_detail(request, book_id):
    book = queries.book_detail(request.user, book_id)
    return success(data={'book': book_to_dict(book)})


@json_endpoint(methods=('POST',))
def reader_submit_loan(request):
    """Submit a borrow request for one copy of a book"""
    form = BorrowRequestForm(request_data(request))
    if not form.is_valid():
        raise ValidationError.from_form(form)

    loan = workflow.submit_borrow(
        request.user,
        form.cleaned_data['book_id'],
        form.cleaned_data.get('borrow_days'),
    )
    return success(
        message=f'Borrow request for "{loan.book.title}" submitted. Please wait for confirmation.',
        data={'loan': loan_to_dict(loan)},
        status=201,
    )


@json_endpoint(methods=('GET',))
def reader_loan_history(request):
    history = queries.loan_history(request.user, request.GET.get('status') or None)
    return success(data={
        'loans': [loan_to_dict(loan) for loan in history['loans']],
        'counts': history['counts'],
    })


@json_endpoint(methods=('POST',))
def reader_cancel_loan(request, loan_id):
    loan = workflow.cancel_loan(request.user, loan_id)
    return success(message='Borrow request cancelled.', data={'loan': loan_to_dict(loan)})


@json_endpoint(methods=('POST',))
def reader_extend_loan(request, loan_id):
    loan = workflow.extend_loan(request.user, loan_id)
    return success(
        message=f'Loan extended. New due date: {loan.due_date:%Y-%m-%d}.',
        data={'loan': loan_to_dict(loan)},
    )


@json_endpoint(methods=('POST',))
def reader_request_return(request, loan_id):
    return_request = workflow.request_return(request.user, loan_id)
    return success(
        message='Return requested. Please hand the book to the librarian.',
        data={'return_request': return_request_to_dict(return_request)},
        status=201,
    )


@json_endpoint(methods=('GET',))
def reader_fines(request):
    result = queries.my_fines(request.user, request.GET.get('state') or None)
    return success(data={
        'fines': [fine_to_dict(f) for f in result['fines']],
        'counts': result['counts'],
        'outstanding_amount': money(result['outstanding_amount']),
    })


@json_endpoint(methods=('GET',))
def reader_fine_detail(request, fine_id):
    fine = queries.fine_detail(request.user, fine_id)
    return success(data={'fine': fine_to_dict(fine)})


@json_endpoint(methods=('POST',))
def reader_pay_fine(request, fine_id):
    """Submit proof of payment for staff to verify"""
    form = PaymentForm(request_data(request))
    form.is_valid()
    fine = workflow.pay_fine(request.user, fine_id, form.cleaned_data.get('payment_proof'))
    return success(
        message='Payment proof submitted. Awaiting confirmation.',
        data={'fine': fine_to_dict(fine)},
    )
